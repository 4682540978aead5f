"""Local media handling: export and app-private cache."""

from .cache import LocalMediaCache
from .exporter import FileAssetExporter, IAssetExporter

__all__ = ["LocalMediaCache", "FileAssetExporter", "IAssetExporter"]
