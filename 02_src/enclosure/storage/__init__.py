"""Storage module."""

from .storage import (
    STATUS_FAILED,
    STATUS_PENDING,
    STATUS_UPLOADING,
    IStorage,
    Storage,
)

__all__ = [
    "IStorage",
    "Storage",
    "STATUS_PENDING",
    "STATUS_UPLOADING",
    "STATUS_FAILED",
]
