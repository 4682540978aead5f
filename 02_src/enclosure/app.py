"""Application bootstrap and lifecycle management."""

from typing import Protocol

from .backend import BackendClient
from .config import DATA_DIR, Settings, resolve_db_path
from .content_store import HttpContentStore, IContentStore, LocalContentStore
from .delivery import HttpDeliveryService, IDeliveryService
from .downloads import DownloadManager
from .event_bus import EventBus
from .logging_config import get_logger
from .media import FileAssetExporter, IAssetExporter, LocalMediaCache
from .models import Conversation
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker
from .upload import BatchSendController, ShareService, UploadPipeline

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self) -> None:
        """Clear pending messages and trace events."""
        ...


class Application:
    """Main application bootstrap."""

    def __init__(
        self,
        settings: Settings | None = None,
        db_path: str | None = None,
        exporter: IAssetExporter | None = None,
        store: IContentStore | None = None,
        delivery: IDeliveryService | None = None,
    ):
        self._settings = settings or Settings.from_env()
        self._db_path = resolve_db_path(
            db_path if db_path is not None else self._settings.database_url
        )

        # Injected ports win over the defaults built in start()
        self._exporter = exporter
        self._store = store
        self._delivery = delivery

        self._storage: IStorage | None = None
        self._event_bus: EventBus | None = None
        self._tracker: Tracker | None = None
        self._cache: LocalMediaCache | None = None
        self._pipeline: UploadPipeline | None = None
        self._backend: BackendClient | None = None
        self._downloads: DownloadManager | None = None

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")

        # 1. Storage (no dependencies)
        self._storage = Storage(self._db_path)
        await self._storage.init()
        logger.info("Storage initialized")

        # 2. EventBus
        self._event_bus = EventBus()

        # 3. Tracker (depends on EventBus + Storage)
        self._tracker = Tracker(self._event_bus, self._storage)
        await self._tracker.start()

        # 4. Media cache, content store, exporter
        self._cache = LocalMediaCache(self._settings.media_dir)
        if self._store is None:
            if self._settings.store_url:
                self._store = HttpContentStore(
                    self._settings.store_url, timeout=self._settings.http_timeout
                )
            else:
                self._store = LocalContentStore(DATA_DIR / "store")
        if self._exporter is None:
            self._exporter = FileAssetExporter(
                quality=self._settings.image_quality,
                thumbnail_size=self._settings.thumbnail_size,
            )
        logger.info("Content store: %s", type(self._store).__name__)

        # 5. Delivery and upload pipeline
        if self._delivery is None:
            self._delivery = HttpDeliveryService(self._settings)
        self._pipeline = UploadPipeline(
            exporter=self._exporter,
            store=self._store,
            cache=self._cache,
            settings=self._settings,
            tracker=self._tracker,
        )

        # 6. Backend API and downloads
        self._backend = BackendClient(self._settings)
        self._downloads = DownloadManager(
            timeout=self._settings.http_timeout, tracker=self._tracker
        )
        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._downloads:
            await self._downloads.close()
        if self._backend:
            await self._backend.close()
        for component in (self._delivery, self._store):
            close = getattr(component, "close", None)
            if close:
                await close()
        if self._tracker:
            await self._tracker.stop()
        if self._storage:
            await self._storage.close()
            logger.info("Storage closed")

    async def reset(self) -> None:
        """Clear pending messages and trace events."""
        if self._storage:
            await self._storage.clear()
            logger.info("Storage cleared")

    def controller_for(
        self, conversation: Conversation, grouped: bool = False
    ) -> BatchSendController:
        """New send controller bound to ``conversation``."""
        if not self._pipeline:
            raise RuntimeError("Application not started")
        return BatchSendController(
            conversation=conversation,
            pipeline=self._pipeline,
            delivery=self.delivery,
            storage=self.storage,
            event_bus=self.event_bus,
            settings=self._settings,
            tracker=self._tracker,
            grouped=grouped,
        )

    def share_service(self, grouped: bool = False) -> ShareService:
        return ShareService(lambda conversation: self.controller_for(conversation, grouped))

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def storage(self) -> IStorage:
        """Get storage instance."""
        if not self._storage:
            raise RuntimeError("Application not started")
        return self._storage

    @property
    def event_bus(self) -> EventBus:
        if not self._event_bus:
            raise RuntimeError("Application not started")
        return self._event_bus

    @property
    def tracker(self) -> ITracker:
        if not self._tracker:
            raise RuntimeError("Application not started")
        return self._tracker

    @property
    def delivery(self) -> IDeliveryService:
        if not self._delivery:
            raise RuntimeError("Application not started")
        return self._delivery

    @property
    def pipeline(self) -> UploadPipeline:
        if not self._pipeline:
            raise RuntimeError("Application not started")
        return self._pipeline

    @property
    def content_store(self) -> IContentStore:
        if not self._store:
            raise RuntimeError("Application not started")
        return self._store

    @property
    def cache(self) -> LocalMediaCache:
        if not self._cache:
            raise RuntimeError("Application not started")
        return self._cache

    @property
    def backend(self) -> BackendClient:
        """Get backend API client."""
        if not self._backend:
            raise RuntimeError("Application not started")
        return self._backend

    @property
    def downloads(self) -> DownloadManager:
        if not self._downloads:
            raise RuntimeError("Application not started")
        return self._downloads
