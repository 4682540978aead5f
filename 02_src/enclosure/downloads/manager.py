"""Background downloads into the local media cache."""

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Callable

import httpx

from ..errors import DownloadError
from ..logging_config import get_logger
from ..tracker import ITracker

logger = get_logger(__name__)

ProgressCallback = Callable[[float], None]

VIDEO_EXTENSIONS = {"mp4", "mov", "avi", "m4v", "mkv", "3gp", "webm"}


def is_video_file(file_name: str) -> bool:
    return Path(file_name).suffix.lower().lstrip(".") in VIDEO_EXTENSIONS


class DownloadManager:
    """
    Downloads remote files to local destinations.

    Concurrent requests for the same file name share one transfer; the
    progress callback of the first requester is the one that gets called.
    A destination that already exists is returned without any network call.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        tracker: ITracker | None = None,
        chunk_size: int = 64 * 1024,
    ):
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout
        self._tracker = tracker
        self._chunk_size = chunk_size
        self._active: dict[str, asyncio.Task[Path]] = {}
        self._progress: dict[str, float] = {}

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Cancel in-flight downloads and release the HTTP client."""
        for task in list(self._active.values()):
            task.cancel()
        if self._active:
            await asyncio.gather(*self._active.values(), return_exceptions=True)
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def is_downloading(self, file_name: str) -> bool:
        return file_name in self._active

    def progress(self, file_name: str) -> float | None:
        """Percent complete of an in-flight download, if known."""
        return self._progress.get(file_name)

    async def download(
        self,
        url: str,
        file_name: str,
        destination: Path,
        on_progress: ProgressCallback | None = None,
    ) -> Path:
        """Download ``url`` to ``destination``; returns the destination path."""
        destination = Path(destination)
        if destination.exists():
            logger.debug("File already exists: %s", file_name)
            return destination

        task = self._active.get(file_name)
        if task is None:
            task = asyncio.create_task(
                self._run(url, file_name, destination, on_progress)
            )
            self._active[file_name] = task
            task.add_done_callback(lambda t: self._finished(file_name, t))
        else:
            logger.info("Already downloading: %s", file_name)

        # Shield so one cancelled waiter does not abort the shared transfer
        return await asyncio.shield(task)

    def _finished(self, file_name: str, task: asyncio.Task) -> None:
        if self._active.get(file_name) is task:
            del self._active[file_name]
        self._progress.pop(file_name, None)

    async def _run(
        self,
        url: str,
        file_name: str,
        destination: Path,
        on_progress: ProgressCallback | None,
    ) -> Path:
        if not url.startswith(("http://", "https://")):
            await self._track("download_failed", file_name, reason="unsupported URL")
            raise DownloadError(f"unsupported URL for {file_name}: {url}")

        destination.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=destination.parent, prefix=".download-")
        client = await self._get_client()
        try:
            with os.fdopen(fd, "wb") as out:
                async with client.stream("GET", url) as response:
                    response.raise_for_status()
                    total = int(response.headers.get("Content-Length") or 0)
                    received = 0
                    async for chunk in response.aiter_bytes(self._chunk_size):
                        out.write(chunk)
                        received += len(chunk)
                        if total > 0:
                            percent = received / total * 100.0
                            self._progress[file_name] = percent
                            if on_progress:
                                on_progress(percent)
            os.replace(tmp_name, destination)
        except httpx.HTTPError as e:
            Path(tmp_name).unlink(missing_ok=True)
            await self._track("download_failed", file_name, reason=str(e))
            raise DownloadError(f"download of {file_name} failed: {e}") from e
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info("Downloaded %s to %s", file_name, destination)
        await self._track("download_completed", file_name, video=is_video_file(file_name))
        return destination

    async def _track(self, event_type: str, file_name: str, **data) -> None:
        if self._tracker:
            await self._tracker.track(
                event_type, "download_manager", {"file_name": file_name, **data}
            )
