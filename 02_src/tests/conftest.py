"""Pytest configuration and fixtures."""

import asyncio
import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from enclosure.config import Settings  # noqa: E402
from enclosure.delivery import DeliveryResult  # noqa: E402
from enclosure.errors import DataUnavailable, ThumbnailGenerationFailed, UploadFailed  # noqa: E402
from enclosure.models import Asset, Conversation, ExportedImage, MediaKind  # noqa: E402


class FakeExporter:
    """Exporter that fabricates bytes; per-asset delays and failures."""

    def __init__(
        self,
        delays: dict[str, float] | None = None,
        fail: set[str] | None = None,
        fail_thumbnail: set[str] | None = None,
    ):
        self.delays = delays or {}
        self.fail = fail or set()
        self.fail_thumbnail = fail_thumbnail or set()
        self.exported: list[str] = []

    async def export_image(self, asset: Asset) -> ExportedImage:
        await asyncio.sleep(self.delays.get(asset.local_id, 0))
        if asset.local_id in self.fail:
            raise DataUnavailable(f"{asset.local_id} unavailable")
        self.exported.append(asset.local_id)
        return ExportedImage(
            data=f"jpeg:{asset.local_id}".encode(),
            width=asset.width,
            height=asset.height,
        )

    async def export_video(self, asset: Asset) -> bytes:
        await asyncio.sleep(self.delays.get(asset.local_id, 0))
        if asset.local_id in self.fail:
            raise DataUnavailable(f"{asset.local_id} unavailable")
        self.exported.append(asset.local_id)
        return f"mp4:{asset.local_id}".encode()

    async def thumbnail(self, asset: Asset) -> bytes:
        if asset.local_id in self.fail_thumbnail:
            raise ThumbnailGenerationFailed()
        return f"thumb:{asset.local_id}".encode()

    async def export_document(self, asset: Asset) -> bytes:
        await asyncio.sleep(self.delays.get(asset.local_id, 0))
        if asset.local_id in self.fail:
            raise DataUnavailable(f"{asset.local_id} unavailable")
        self.exported.append(asset.local_id)
        return asset.path.read_bytes()


class FakeStore:
    """In-memory content store; paths containing a marker in ``fail`` are rejected."""

    def __init__(self, fail: set[str] | None = None, missing_url: set[str] | None = None):
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.fail = fail or set()
        self.missing_url = missing_url or set()

    async def put(self, path: str, data: bytes, content_type: str) -> None:
        if any(marker in path for marker in self.fail):
            raise UploadFailed("network down")
        self.objects[path] = (data, content_type)

    async def resolve(self, path: str) -> str:
        from enclosure.errors import DownloadURLMissing

        if path not in self.objects or any(m in path for m in self.missing_url):
            raise DownloadURLMissing(path)
        return f"https://store.test/{path}"


class FakeDelivery:
    """Records delivered messages; ids in ``fail`` are rejected, ``explode`` picks messages that raise."""

    def __init__(
        self,
        fail: set[str] | None = None,
        fail_all: bool = False,
        explode=None,
    ):
        self.fail = fail or set()
        self.fail_all = fail_all
        self.explode = explode
        self.calls: list[dict] = []

    async def deliver(self, message, token, file_path=None, group=False, created_by=""):
        self.calls.append(
            {
                "message": message,
                "token": token,
                "file_path": file_path,
                "group": group,
                "created_by": created_by,
            }
        )
        if self.explode and self.explode(message):
            raise ConnectionResetError("connection reset by peer")
        if self.fail_all or message.id in self.fail:
            return DeliveryResult(success=False, error="Receiver not found")
        return DeliveryResult(success=True)


def image(local_id: str, width: int = 100, height: int = 100) -> Asset:
    return Asset(local_id=local_id, kind=MediaKind.IMAGE, width=width, height=height)


def video(local_id: str, width: int = 1920, height: int = 1080) -> Asset:
    return Asset(local_id=local_id, kind=MediaKind.VIDEO, width=width, height=height)


def document(local_id: str, directory: Path, data: bytes = b"%PDF-1.7") -> Asset:
    """Write ``{local_id}.pdf`` under ``directory`` and return it as an asset."""
    path = directory / f"{local_id}.pdf"
    path.write_bytes(data)
    return Asset(local_id=local_id, kind=MediaKind.DOCUMENT, path=path)


@pytest.fixture
def settings(tmp_path):
    """Settings isolated to a temporary directory."""
    return Settings(
        base_url="https://api.test/",
        fcm_token="fcm-token",
        device_type="1",
        media_dir=tmp_path / "Media",
        upload_root=tmp_path,
        database_url=":memory:",
    )


@pytest.fixture
def conversation():
    return Conversation(kind="individual", sender_id="alice", recipient_id="bob")


@pytest.fixture
def group_conversation():
    return Conversation(
        kind="group", sender_id="alice", recipient_id="group42", group_name="Hikers"
    )


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from enclosure.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest.fixture
def event_bus():
    """Create EventBus."""
    from enclosure.event_bus import EventBus

    return EventBus()


@pytest.fixture
def tracker(storage, event_bus):
    """Create Tracker with storage and event bus."""
    from enclosure.tracker import Tracker

    return Tracker(event_bus=event_bus, storage=storage)


@pytest.fixture
def cache(settings):
    from enclosure.media import LocalMediaCache

    return LocalMediaCache(settings.media_dir)


@pytest.fixture
def exporter():
    return FakeExporter()


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def delivery():
    return FakeDelivery()


@pytest.fixture
def pipeline(exporter, store, cache, settings, tracker):
    from enclosure.upload import UploadPipeline

    return UploadPipeline(exporter, store, cache, settings, tracker=tracker)


@pytest.fixture
def bus_log(event_bus):
    """Collects every message published on the bus, per topic."""
    from enclosure.models import Topic

    log: dict = {topic: [] for topic in Topic}

    def make_handler(topic):
        async def handler(message):
            log[topic].append(message.payload)

        return handler

    for topic in Topic:
        event_bus.subscribe(topic, make_handler(topic))
    return log
