"""Observability API routes."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException, Query

from ...app import Application


class TraceEventResponse(BaseModel):
    """Response model for trace event."""

    id: str
    event_type: str
    actor: str
    data: dict[str, Any]
    timestamp: datetime


def create_observability_router(app: Application) -> APIRouter:
    """Create observability router."""
    router = APIRouter(prefix="/api", tags=["observability"])

    @router.get("/trace-events", response_model=list[TraceEventResponse])
    async def get_trace_events(
        after: str | None = Query(None, description="ISO timestamp filter"),
        limit: int = Query(100, ge=1, le=1000),
        event_type: str | None = Query(None, description="Filter by event type"),
        actor: str | None = Query(None, description="Filter by actor"),
    ) -> list[dict]:
        """Get trace events with optional filters."""
        after_dt = None
        if after:
            try:
                after_dt = datetime.fromisoformat(after)
            except ValueError:
                raise HTTPException(
                    status_code=400, detail="Invalid after timestamp format"
                )

        events = await app.storage.get_trace_events(
            after=after_dt,
            event_types=[event_type] if event_type else None,
            actor=actor,
            limit=limit,
        )
        return [
            {
                "id": e.id,
                "event_type": e.event_type,
                "actor": e.actor,
                "data": e.data,
                "timestamp": e.timestamp,
            }
            for e in events
        ]

    @router.get("/pending/{receiver_uid}")
    async def get_pending_messages(receiver_uid: str) -> list[dict[str, Any]]:
        """Messages not yet confirmed by the delivery service, oldest first."""
        messages = await app.storage.get_pending_messages(receiver_uid)
        return [m.to_dict() for m in messages]

    @router.get("/failed/{receiver_uid}")
    async def get_failed_messages(receiver_uid: str) -> list[dict[str, Any]]:
        """Messages whose delivery failed and may be retried."""
        messages = await app.storage.get_failed_messages(receiver_uid)
        return [m.to_dict() for m in messages]

    @router.delete("/failed/{receiver_uid}")
    async def purge_failed_messages(receiver_uid: str) -> dict[str, int]:
        """Drop failed messages for one receiver."""
        removed = await app.storage.purge_failed_messages(receiver_uid)
        return {"removed": removed}

    return router
