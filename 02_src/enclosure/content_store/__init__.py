"""Content store module."""

from .store import HttpContentStore, IContentStore, LocalContentStore, storage_path

__all__ = ["IContentStore", "HttpContentStore", "LocalContentStore", "storage_path"]
