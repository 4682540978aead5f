"""Asset and upload-result data models."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class MediaKind(str, Enum):
    """Kind of media an asset holds."""

    IMAGE = "image"
    VIDEO = "video"
    DOCUMENT = "document"


@dataclass
class Asset:
    """A locally-addressable photo, video or document chosen by the user."""

    local_id: str
    kind: MediaKind
    path: Path | None = None
    width: int = 0
    height: int = 0
    thumbnail_path: Path | None = None


@dataclass
class ExportedImage:
    """Transportable image bytes plus pixel dimensions."""

    data: bytes
    width: int
    height: int


@dataclass
class UploadedAsset:
    """One asset that made it into the content store."""

    index: int
    download_url: str
    file_name: str
    width: int
    height: int
    kind: MediaKind = MediaKind.IMAGE
    thumbnail_url: str | None = None
    thumbnail_file_name: str | None = None
    local_path: Path | None = None
    file_size: int | None = None
    # Documents travel as a multipart attachment instead of a store URL
    attachment_path: Path | None = None


@dataclass
class AssetFailure:
    """One asset whose export or upload failed."""

    index: int
    error: Exception

    @property
    def reason(self) -> str:
        return str(self.error) or type(self.error).__name__


@dataclass
class BatchOutcome:
    """Joined result of a fan-out upload, successes sorted by original index."""

    batch_id: str
    kind: MediaKind
    uploaded: list[UploadedAsset] = field(default_factory=list)
    failures: list[AssetFailure] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.uploaded) + len(self.failures)

    @property
    def all_failed(self) -> bool:
        return not self.uploaded

    @property
    def failed_indices(self) -> list[int]:
        return sorted(f.index for f in self.failures)
