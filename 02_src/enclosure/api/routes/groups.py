"""Identity lookup API routes."""

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, HTTPException, Query

from ...app import Application
from ...errors import BackendError


def create_groups_router(app: Application) -> APIRouter:
    """Create groups router."""
    router = APIRouter(prefix="/api", tags=["groups"])

    @router.get("/groups/{group_id}")
    async def get_group(group_id: str, uid: str = Query(..., min_length=1)) -> dict[str, Any]:
        """Group name, icon, theme colour and members."""
        try:
            group = await app.backend.fetch_group_details(group_id, uid)
        except BackendError as e:
            raise HTTPException(status_code=502, detail=e.message)
        return asdict(group)

    @router.get("/contacts/{uid}")
    async def get_active_contacts(uid: str) -> list[dict[str, Any]]:
        """Contacts with an active chat."""
        try:
            contacts = await app.backend.fetch_active_contacts(uid)
        except BackendError as e:
            raise HTTPException(status_code=502, detail=e.message)
        return [asdict(c) for c in contacts]

    return router
