"""Downloads module."""

from .manager import DownloadManager, is_video_file

__all__ = ["DownloadManager", "is_video_file"]
