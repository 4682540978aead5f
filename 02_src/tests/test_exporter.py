"""Tests for FileAssetExporter."""

import io

import pytest
from PIL import Image

from enclosure.errors import DataUnavailable, ThumbnailGenerationFailed
from enclosure.media import FileAssetExporter
from enclosure.models import Asset, MediaKind

ORIENTATION = 0x0112


def decode(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image.load()
    return image


class TestExportImage:
    """Decode, orient and re-encode images."""

    async def test_reads_dimensions_from_pixels(self, tmp_path):
        path = tmp_path / "a.png"
        Image.new("RGBA", (40, 20), (255, 0, 0, 128)).save(path)
        asset = Asset("a", MediaKind.IMAGE, path=path)

        exported = await FileAssetExporter().export_image(asset)

        assert (exported.width, exported.height) == (40, 20)
        reencoded = decode(exported.data)
        assert reencoded.format == "JPEG"
        assert reencoded.size == (40, 20)

    async def test_caller_dimensions_ignored(self, tmp_path):
        path = tmp_path / "a.jpg"
        Image.new("RGB", (30, 60), "blue").save(path, format="JPEG")
        asset = Asset("a", MediaKind.IMAGE, path=path, width=999, height=1)

        exported = await FileAssetExporter().export_image(asset)

        assert (exported.width, exported.height) == (30, 60)

    async def test_exif_orientation_applied(self, tmp_path):
        path = tmp_path / "rotated.jpg"
        exif = Image.Exif()
        exif[ORIENTATION] = 6
        Image.new("RGB", (40, 20), "green").save(path, format="JPEG", exif=exif)

        exported = await FileAssetExporter().export_image(
            Asset("r", MediaKind.IMAGE, path=path)
        )

        assert (exported.width, exported.height) == (20, 40)
        assert decode(exported.data).size == (20, 40)

    async def test_quality_setting_used(self, tmp_path):
        path = tmp_path / "noise.png"
        Image.effect_noise((128, 128), 64).convert("RGB").save(path)
        asset = Asset("n", MediaKind.IMAGE, path=path)

        low = await FileAssetExporter(quality=10).export_image(asset)
        high = await FileAssetExporter(quality=95).export_image(asset)

        assert len(low.data) < len(high.data)

    async def test_missing_file(self, tmp_path):
        asset = Asset("a", MediaKind.IMAGE, path=tmp_path / "missing.jpg")

        with pytest.raises(DataUnavailable):
            await FileAssetExporter().export_image(asset)

    async def test_not_an_image(self, tmp_path):
        path = tmp_path / "fake.jpg"
        path.write_bytes(b"definitely not jpeg")

        with pytest.raises(DataUnavailable):
            await FileAssetExporter().export_image(Asset("f", MediaKind.IMAGE, path=path))


class TestExportVideoAndThumbnail:
    """Video bytes and thumbnail scaling."""

    async def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.mp4"
        path.write_bytes(b"")

        with pytest.raises(DataUnavailable):
            await FileAssetExporter().export_video(Asset("v", MediaKind.VIDEO, path=path))

    async def test_thumbnail_missing(self):
        with pytest.raises(ThumbnailGenerationFailed):
            await FileAssetExporter().thumbnail(Asset("v", MediaKind.VIDEO))

    async def test_thumbnail_scaled_to_fit(self, tmp_path):
        thumb = tmp_path / "thumb.png"
        Image.new("RGB", (1600, 900), "white").save(thumb)
        asset = Asset("v", MediaKind.VIDEO, path=tmp_path / "v.mp4", thumbnail_path=thumb)

        data = await FileAssetExporter(thumbnail_size=320).thumbnail(asset)

        image = decode(data)
        assert image.format == "JPEG"
        assert image.size == (320, 180)

    async def test_unreadable_thumbnail(self, tmp_path):
        thumb = tmp_path / "thumb.jpg"
        thumb.write_bytes(b"garbage")

        with pytest.raises(ThumbnailGenerationFailed):
            await FileAssetExporter().thumbnail(
                Asset("v", MediaKind.VIDEO, thumbnail_path=thumb)
            )


class TestExportDocument:
    """Documents ship byte-for-byte."""

    async def test_document_bytes_unchanged(self, tmp_path):
        path = tmp_path / "report.pdf"
        path.write_bytes(b"%PDF-1.7 body")

        data = await FileAssetExporter().export_document(
            Asset("d", MediaKind.DOCUMENT, path=path)
        )

        assert data == b"%PDF-1.7 body"

    async def test_missing_document(self, tmp_path):
        with pytest.raises(DataUnavailable):
            await FileAssetExporter().export_document(
                Asset("d", MediaKind.DOCUMENT, path=tmp_path / "gone.pdf")
            )
