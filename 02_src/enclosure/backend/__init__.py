"""Backend API module."""

from .client import BackendClient

__all__ = ["BackendClient"]
