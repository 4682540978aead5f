"""Path-addressed blob storage for uploaded media."""

import asyncio
from pathlib import Path, PurePosixPath
from typing import Protocol

import httpx

from ..errors import DownloadURLMissing, UploadFailed
from ..logging_config import get_logger

logger = get_logger(__name__)


def storage_path(root: str, key: str, file_name: str) -> str:
    """Store path ``{root}/{key}/{file_name}``."""
    for part in (root, key, file_name):
        if not part or "/" in part or part in (".", ".."):
            raise ValueError(f"invalid storage path segment: {part!r}")
    return f"{root}/{key}/{file_name}"


class IContentStore(Protocol):
    """Put bytes at a path and resolve the path to a durable URL."""

    async def put(self, path: str, data: bytes, content_type: str) -> None:
        """Upload ``data`` to ``path``. Raises UploadFailed."""
        ...

    async def resolve(self, path: str) -> str:
        """Durable URL for ``path``. Raises DownloadURLMissing."""
        ...


class HttpContentStore:
    """Content store reached over HTTP (PUT to upload, GET ?meta=1 to resolve)."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def put(self, path: str, data: bytes, content_type: str) -> None:
        client = await self._get_client()
        try:
            response = await client.put(
                f"{self._base_url}/{path}",
                content=data,
                headers={"Content-Type": content_type},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UploadFailed(f"HTTP {e.response.status_code} for {path}") from e
        except httpx.HTTPError as e:
            raise UploadFailed(str(e) or type(e).__name__) from e

    async def resolve(self, path: str) -> str:
        client = await self._get_client()
        try:
            response = await client.get(
                f"{self._base_url}/{path}", params={"meta": "1"}
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as e:
            raise UploadFailed(str(e) or type(e).__name__) from e
        except ValueError as e:
            raise DownloadURLMissing(path) from e

        url = body.get("download_url") if isinstance(body, dict) else None
        if not url:
            raise DownloadURLMissing(path)
        return url


class LocalContentStore:
    """Content store backed by a local directory; resolves to file:// URIs."""

    def __init__(self, root: Path):
        self._root = Path(root)

    def _target(self, path: str) -> Path:
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts:
            raise UploadFailed(f"path escapes store root: {path}")
        return self._root.joinpath(*relative.parts)

    async def put(self, path: str, data: bytes, content_type: str) -> None:
        target = self._target(path)
        try:
            await asyncio.to_thread(self._write, target, data)
        except OSError as e:
            raise UploadFailed(str(e)) from e
        logger.debug("Stored %s (%s, %d bytes)", path, content_type, len(data))

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    async def resolve(self, path: str) -> str:
        target = self._target(path)
        if not target.exists():
            raise DownloadURLMissing(path)
        return target.resolve().as_uri()
