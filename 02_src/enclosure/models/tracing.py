"""Tracing and observability data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Topic(str, Enum):
    """EventBus topics."""

    STATE = "state"  # send-controller transitions, selection cleared, dismissed
    NOTICE = "notice"  # user-facing toasts
    DELIVERY = "delivery"  # per-message delivery outcomes


@dataclass
class BusMessage:
    """A message exchanged through EventBus."""

    id: str
    topic: Topic
    payload: dict
    source: str
    timestamp: datetime


@dataclass
class TraceEvent:
    """A single pipeline observability event."""

    id: str
    event_type: str  # e.g. "asset_uploaded", "batch_joined"
    actor: str
    data: dict = field(default_factory=dict)
    timestamp: datetime | None = None
