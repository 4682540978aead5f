"""Tests for DownloadManager."""

import asyncio

import httpx
import pytest

from enclosure.downloads import DownloadManager, is_video_file
from enclosure.errors import DownloadError


def manager_serving(payload: bytes, calls: list, delay: float = 0.0, status: int = 200, **kwargs):
    async def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        await asyncio.sleep(delay)
        return httpx.Response(status, content=payload)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return DownloadManager(client=client, **kwargs)


class TestDownload:
    """Downloading to a destination."""

    async def test_downloads_to_destination(self, tmp_path):
        calls = []
        manager = manager_serving(b"x" * 1000, calls, chunk_size=100)
        progress = []

        path = await manager.download(
            "https://cdn.test/a.jpg", "a.jpg", tmp_path / "Images" / "a.jpg", progress.append
        )

        assert path.read_bytes() == b"x" * 1000
        assert progress[-1] == pytest.approx(100.0)
        assert progress == sorted(progress)
        assert not manager.is_downloading("a.jpg")
        assert list((tmp_path / "Images").iterdir()) == [path]

    async def test_existing_destination_skips_network(self, tmp_path):
        calls = []
        manager = manager_serving(b"new", calls)
        destination = tmp_path / "a.jpg"
        destination.write_bytes(b"old")

        path = await manager.download("https://cdn.test/a.jpg", "a.jpg", destination)

        assert calls == []
        assert path.read_bytes() == b"old"

    async def test_concurrent_requests_share_one_transfer(self, tmp_path):
        calls = []
        manager = manager_serving(b"data", calls, delay=0.05)
        destination = tmp_path / "v.mp4"

        first = asyncio.create_task(manager.download("https://cdn.test/v.mp4", "v.mp4", destination))
        await asyncio.sleep(0)
        assert manager.is_downloading("v.mp4")
        second = await manager.download("https://cdn.test/v.mp4", "v.mp4", destination)

        assert await first == second == destination
        assert len(calls) == 1

    async def test_http_error_raises_and_cleans_up(self, tmp_path):
        calls = []
        manager = manager_serving(b"", calls, status=404)

        with pytest.raises(DownloadError):
            await manager.download("https://cdn.test/a.jpg", "a.jpg", tmp_path / "a.jpg")

        assert list(tmp_path.iterdir()) == []
        assert not manager.is_downloading("a.jpg")

    async def test_unsupported_scheme(self, tmp_path, tracker, storage):
        manager = DownloadManager(tracker=tracker)

        with pytest.raises(DownloadError):
            await manager.download("gs://bucket/a.jpg", "a.jpg", tmp_path / "a.jpg")

        events = await storage.get_trace_events(event_types=["download_failed"])
        assert events[0].data["file_name"] == "a.jpg"
        await manager.close()

    async def test_tracks_completion(self, tmp_path, tracker, storage):
        manager = manager_serving(b"data", [], tracker=tracker)

        await manager.download("https://cdn.test/v.mp4", "v.mp4", tmp_path / "v.mp4")

        events = await storage.get_trace_events(event_types=["download_completed"])
        assert events[0].data == {"file_name": "v.mp4", "video": True}


class TestIsVideoFile:
    """Extension check."""

    @pytest.mark.parametrize(
        "name,expected",
        [("a.MP4", True), ("b.mov", True), ("c.jpg", False), ("noext", False)],
    )
    def test_is_video_file(self, name, expected):
        assert is_video_file(name) is expected
