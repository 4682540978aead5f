"""Multi-asset upload: fan-out pipeline, message building, send flow."""

from .builder import build_bunch_message, build_messages, format_aspect_ratio
from .controller import (
    BatchSendController,
    SelectionState,
    SendReport,
    SendState,
    delivery_failure_text,
    upload_failure_text,
)
from .pipeline import UploadPipeline
from .share import ShareResult, ShareService

__all__ = [
    "UploadPipeline",
    "build_messages",
    "build_bunch_message",
    "format_aspect_ratio",
    "BatchSendController",
    "SelectionState",
    "SendReport",
    "SendState",
    "upload_failure_text",
    "delivery_failure_text",
    "ShareResult",
    "ShareService",
]
