"""Enclosure media core: multi-asset upload, delivery and local media cache."""

from .app import Application, IApplication
from .backend import BackendClient
from .config import Settings
from .content_store import HttpContentStore, IContentStore, LocalContentStore
from .delivery import DeliveryResult, HttpDeliveryService, IDeliveryService
from .downloads import DownloadManager
from .event_bus import EventBus, IEventBus
from .media import FileAssetExporter, IAssetExporter, LocalMediaCache
from .models import (
    Asset,
    AssetFailure,
    BatchOutcome,
    BusMessage,
    ChatMessage,
    Conversation,
    MediaKind,
    Topic,
    TraceEvent,
    UploadedAsset,
)
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker
from .upload import BatchSendController, ShareService, UploadPipeline

__all__ = [
    # Application
    "Application",
    "IApplication",
    "Settings",
    # Models
    "Asset",
    "AssetFailure",
    "BatchOutcome",
    "BusMessage",
    "ChatMessage",
    "Conversation",
    "MediaKind",
    "Topic",
    "TraceEvent",
    "UploadedAsset",
    # Components
    "IStorage",
    "Storage",
    "IEventBus",
    "EventBus",
    "ITracker",
    "Tracker",
    "IAssetExporter",
    "FileAssetExporter",
    "LocalMediaCache",
    "IContentStore",
    "HttpContentStore",
    "LocalContentStore",
    "IDeliveryService",
    "HttpDeliveryService",
    "DeliveryResult",
    "UploadPipeline",
    "BatchSendController",
    "ShareService",
    "BackendClient",
    "DownloadManager",
]
