"""Core data models for the Enclosure media core."""

from .assets import (
    Asset,
    AssetFailure,
    BatchOutcome,
    ExportedImage,
    MediaKind,
    UploadedAsset,
)
from .groups import GroupMember, GroupModel, UserActiveContactModel
from .messages import (
    ChatMessage,
    Conversation,
    DataType,
    EmojiModel,
    SelectionBunchModel,
)
from .tracing import BusMessage, Topic, TraceEvent

__all__ = [
    # Messages
    "ChatMessage",
    "Conversation",
    "DataType",
    "EmojiModel",
    "SelectionBunchModel",
    # Assets
    "Asset",
    "AssetFailure",
    "BatchOutcome",
    "ExportedImage",
    "MediaKind",
    "UploadedAsset",
    # Identity
    "GroupMember",
    "GroupModel",
    "UserActiveContactModel",
    # Bus / tracing
    "BusMessage",
    "Topic",
    "TraceEvent",
]
