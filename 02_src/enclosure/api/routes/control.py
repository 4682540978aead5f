"""Control API routes."""

from pydantic import BaseModel
from fastapi import APIRouter

from ...app import Application


class StatusResponse(BaseModel):
    """Response model for status."""

    status: str


class HealthResponse(BaseModel):
    """Wiring and storage status."""

    status: str
    content_store: str
    media_dir: str


def create_control_router(app: Application) -> APIRouter:
    """Create control router."""
    router = APIRouter(prefix="/api/control", tags=["control"])

    @router.post("/reset", response_model=StatusResponse)
    async def reset_system() -> dict:
        """Clear pending messages and trace events."""
        await app.reset()
        return {"status": "ok"}

    @router.get("/health", response_model=HealthResponse)
    async def health() -> dict:
        """Storage reachability plus which content store is wired."""
        await app.storage.get_trace_events(limit=1)
        return {
            "status": "ok",
            "content_store": type(app.content_store).__name__,
            "media_dir": str(app.cache.root),
        }

    return router
