"""Asset export: turn a locally-chosen asset into transportable bytes."""

import asyncio
import io
from pathlib import Path
from typing import Protocol

from PIL import Image, ImageOps

from ..errors import DataUnavailable, ThumbnailGenerationFailed
from ..models import Asset, ExportedImage

# Pillow raises OSError (UnidentifiedImageError included) for unreadable data
_DECODE_ERRORS = (OSError, ValueError, Image.DecompressionBombError)


class IAssetExporter(Protocol):
    """Reads assets out of the device media store."""

    async def export_image(self, asset: Asset) -> ExportedImage:
        """Re-encoded JPEG bytes plus pixel dimensions."""
        ...

    async def export_video(self, asset: Asset) -> bytes:
        """Video bytes in a standard container (mp4)."""
        ...

    async def thumbnail(self, asset: Asset) -> bytes:
        """JPEG thumbnail for a video asset."""
        ...

    async def export_document(self, asset: Asset) -> bytes:
        """Document bytes as stored on disk."""
        ...


def encode_jpeg(image: Image.Image, quality: int) -> bytes:
    """Encode ``image`` as baseline JPEG, flattening modes JPEG cannot hold."""
    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


class FileAssetExporter:
    """
    Exporter for assets that already live on the local filesystem.

    Images are decoded with Pillow, turned upright according to their EXIF
    orientation and re-encoded as JPEG at ``quality``; the reported width and
    height are those of the upright image. Video thumbnails come from the
    asset's ``thumbnail_path`` and are scaled to fit ``thumbnail_size``.
    """

    def __init__(self, quality: int = 85, thumbnail_size: int = 800):
        self._quality = quality
        self._thumbnail_size = thumbnail_size

    async def export_image(self, asset: Asset) -> ExportedImage:
        data = await self._read(asset.path, DataUnavailable)
        try:
            return await asyncio.to_thread(self._encode_image, data)
        except _DECODE_ERRORS as e:
            raise DataUnavailable(f"{asset.path}: not a readable image ({e})") from e

    async def export_video(self, asset: Asset) -> bytes:
        return await self._read(asset.path, DataUnavailable)

    async def thumbnail(self, asset: Asset) -> bytes:
        data = await self._read(asset.thumbnail_path, ThumbnailGenerationFailed)
        try:
            return await asyncio.to_thread(self._encode_thumbnail, data)
        except _DECODE_ERRORS as e:
            raise ThumbnailGenerationFailed(
                f"{asset.thumbnail_path}: not a readable image ({e})"
            ) from e

    async def export_document(self, asset: Asset) -> bytes:
        return await self._read(asset.path, DataUnavailable)

    def _encode_image(self, data: bytes) -> ExportedImage:
        with Image.open(io.BytesIO(data)) as image:
            upright = ImageOps.exif_transpose(image)
            width, height = upright.size
            return ExportedImage(
                data=encode_jpeg(upright, self._quality), width=width, height=height
            )

    def _encode_thumbnail(self, data: bytes) -> bytes:
        with Image.open(io.BytesIO(data)) as image:
            upright = ImageOps.exif_transpose(image)
            upright.thumbnail((self._thumbnail_size, self._thumbnail_size))
            return encode_jpeg(upright, self._quality)

    @staticmethod
    async def _read(path: Path | None, error: type[Exception]) -> bytes:
        if path is None:
            raise error("no file for asset")
        try:
            data = await asyncio.to_thread(Path(path).read_bytes)
        except OSError as e:
            raise error(f"{path}: {e.strerror or e}") from e
        if not data:
            raise error(f"{path} is empty")
        return data
