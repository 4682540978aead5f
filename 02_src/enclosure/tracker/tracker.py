"""Tracker: persists pipeline and send-flow trace events."""

import uuid
from datetime import datetime, timezone
from typing import Protocol

from ..event_bus import IEventBus
from ..logging_config import get_logger
from ..models import BusMessage, Topic, TraceEvent
from ..storage import IStorage

logger = get_logger(__name__)

# Trace event type recorded for each bus topic
_TOPIC_EVENTS = {
    Topic.STATE: "state_changed",
    Topic.NOTICE: "notice_shown",
    Topic.DELIVERY: "delivery_reported",
}

# Payload keys copied from bus messages into trace data
_TRACED_KEYS = (
    "conversation",
    "batch_id",
    "model_id",
    "from",
    "to",
    "event",
    "reason",
    "text",
    "success",
    "error",
    "failed_indices",
)


class ITracker(Protocol):
    """Records trace events from direct calls and from the event bus."""

    async def track(self, event_type: str, actor: str, data: dict) -> None:
        """Create TraceEvent and save to Storage."""
        ...


class Tracker:
    """Writes a TraceEvent for every track() call and every bus message."""

    def __init__(self, event_bus: IEventBus, storage: IStorage):
        self._event_bus = event_bus
        self._storage = storage

    async def start(self) -> None:
        for topic in Topic:
            self._event_bus.subscribe(topic, self._on_bus_message)

    async def stop(self) -> None:
        for topic in Topic:
            self._event_bus.unsubscribe(topic, self._on_bus_message)

    async def _on_bus_message(self, bus_message: BusMessage) -> None:
        data = {k: bus_message.payload[k] for k in _TRACED_KEYS if k in bus_message.payload}
        data["bus_message_id"] = bus_message.id
        await self.track(_TOPIC_EVENTS[bus_message.topic], bus_message.source, data)

    async def track(self, event_type: str, actor: str, data: dict) -> None:
        """Create TraceEvent and save to Storage."""
        event = TraceEvent(
            id=str(uuid.uuid4()),
            event_type=event_type,
            actor=actor,
            data=data,
            timestamp=datetime.now(timezone.utc),
        )
        try:
            await self._storage.save_trace_event(event)
        except RuntimeError as e:
            # Storage already closed (shutdown in progress)
            logger.warning("Dropped trace event %s: %s", event_type, e)
