"""App-private media cache laid out as Images / Videos / Documents."""

import asyncio
import os
import tempfile
from pathlib import Path

from ..logging_config import get_logger
from ..models import MediaKind, SelectionBunchModel

logger = get_logger(__name__)

_SUBDIRS = {
    MediaKind.IMAGE: "Images",
    MediaKind.VIDEO: "Videos",
    MediaKind.DOCUMENT: "Documents",
}


class LocalMediaCache:
    """Write-once file cache; a second save of the same name is a no-op."""

    def __init__(self, root: Path):
        self._root = Path(root)
        self._in_flight: set[Path] = set()

    @property
    def root(self) -> Path:
        return self._root

    def directory(self, kind: MediaKind) -> Path:
        """Directory for ``kind``, created on first use."""
        directory = self._root / _SUBDIRS[kind]
        directory.mkdir(parents=True, exist_ok=True)
        return directory

    def path_for(self, kind: MediaKind, file_name: str) -> Path:
        return self.directory(kind) / file_name

    def exists(self, kind: MediaKind, file_name: str) -> bool:
        return self.path_for(kind, file_name).exists()

    async def save(self, kind: MediaKind, file_name: str, data: bytes) -> bool:
        """
        Save ``data`` under ``file_name`` unless it is already cached.

        Returns:
            True if the file was written, False if the write was skipped
        """
        path = self.path_for(kind, file_name)
        if path.exists() or path in self._in_flight:
            logger.debug("Already cached: %s", path)
            return False

        self._in_flight.add(path)
        try:
            await asyncio.to_thread(self._write, path, data)
        finally:
            self._in_flight.discard(path)

        logger.info(
            "Cached %s (%.2f MB)", path.name, len(data) / 1024.0 / 1024.0
        )
        return True

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        # Write to a sibling temp file so a reader never sees a partial file
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".part-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def resolve(self, kind: MediaKind, bunch: SelectionBunchModel) -> str | None:
        """Local path if the attachment is cached, else its remote URL."""
        if bunch.file_name:
            local = self._root / _SUBDIRS[kind] / bunch.file_name
            if local.exists():
                return str(local)
        return bunch.img_url or None
