"""Error taxonomy for uploads, delivery and backend calls."""


class EnclosureError(Exception):
    """Base class for all errors raised by this package."""


class ConfigError(EnclosureError):
    """Invalid configuration value."""


class UploadError(EnclosureError):
    """A single asset could not be exported or uploaded."""


class DataUnavailable(UploadError):
    """Asset could not be read from the device media store."""

    def __init__(self, detail: str = "asset data unavailable"):
        super().__init__(detail)


class DownloadURLMissing(UploadError):
    """Store accepted the upload but returned no resolvable reference."""

    def __init__(self, path: str = ""):
        self.path = path
        super().__init__(f"no download URL for {path}" if path else "no download URL")


class ThumbnailGenerationFailed(UploadError):
    """Video thumbnail could not be rendered."""

    def __init__(self, detail: str = "thumbnail generation failed"):
        super().__init__(detail)


class UploadFailed(UploadError):
    """Transport-level failure while putting bytes into the store."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"upload failed: {reason}")


class DeliveryError(EnclosureError):
    """Message record could not be handed to the delivery service."""


class BackendError(EnclosureError):
    """Backend JSON API returned an error code or an unreadable body."""

    def __init__(self, message: str, error_code: int | None = None):
        self.error_code = error_code
        self.message = message
        super().__init__(
            f"[{error_code}] {message}" if error_code is not None else message
        )


class DownloadError(EnclosureError):
    """Remote file could not be downloaded to its destination."""
