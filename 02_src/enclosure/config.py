"""Project-level configuration and path helpers."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from .errors import ConfigError

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
MEDIA_DIR = DATA_DIR / "Enclosure" / "Media"
UPLOAD_ROOT = DATA_DIR / "inbox"
DEFAULT_DB_PATH = DATA_DIR / "enclosure.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


@dataclass
class Settings:
    """Runtime settings shared by the upload, delivery and download paths."""

    base_url: str = "https://confidential.enclosureapp.com/"
    store_url: str = ""
    chat_root: str = "CHAT"
    group_chat_root: str = "GROUPCHAT"
    image_quality: int = 85
    thumbnail_size: int = 800
    max_upload_bytes: int = 200 * 1024 * 1024
    fcm_token: str = ""
    device_type: str = ""
    http_timeout: float = 30.0
    media_dir: Path = MEDIA_DIR
    upload_root: Path = UPLOAD_ROOT
    database_url: str | None = None
    api_host: str = "localhost"
    api_port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        base_url = os.getenv("ENCLOSURE_BASE_URL", cls.base_url)
        if not base_url.endswith("/"):
            base_url += "/"

        media_dir = os.getenv("MEDIA_DIR")
        upload_root = os.getenv("UPLOAD_ROOT")

        return cls(
            base_url=base_url,
            store_url=os.getenv("ENCLOSURE_STORE_URL", "").rstrip("/"),
            chat_root=os.getenv("CHAT_ROOT", cls.chat_root),
            group_chat_root=os.getenv("GROUP_CHAT_ROOT", cls.group_chat_root),
            image_quality=_env_int("IMAGE_QUALITY", cls.image_quality),
            thumbnail_size=_env_int("THUMBNAIL_SIZE", cls.thumbnail_size),
            max_upload_bytes=_env_int("MAX_UPLOAD_BYTES", cls.max_upload_bytes),
            fcm_token=os.getenv("FCM_TOKEN", ""),
            device_type=os.getenv("DEVICE_TYPE", ""),
            http_timeout=_env_float("HTTP_TIMEOUT", cls.http_timeout),
            media_dir=Path(media_dir) if media_dir else MEDIA_DIR,
            upload_root=Path(upload_root) if upload_root else UPLOAD_ROOT,
            database_url=os.getenv("DATABASE_URL"),
            api_host=os.getenv("API_HOST", cls.api_host),
            api_port=_env_int("API_PORT", cls.api_port),
        )
