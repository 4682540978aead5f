"""Batch send and share API routes."""

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field
from fastapi import APIRouter, HTTPException

from ...app import Application
from ...models import Asset, Conversation, MediaKind
from ...upload import SendReport


class ConversationRequest(BaseModel):
    """Sender and recipient of a send."""

    kind: Literal["individual", "group"] = "individual"
    sender_id: str = Field(min_length=1)
    recipient_id: str = Field(min_length=1)
    group_name: str | None = None
    user_name: str = ""

    def to_model(self) -> Conversation:
        return Conversation(
            kind=self.kind,
            sender_id=self.sender_id,
            recipient_id=self.recipient_id,
            group_name=self.group_name,
            user_name=self.user_name,
        )


def resolve_upload_path(root: Path, raw: str) -> Path:
    """Resolve ``raw`` (absolute or relative to ``root``); reject paths outside ``root``."""
    root = Path(root).resolve()
    path = Path(raw)
    if not path.is_absolute():
        path = root / path
    path = path.resolve()
    if not path.is_relative_to(root):
        raise ValueError(f"{raw} is outside the upload directory")
    return path


class AssetRequest(BaseModel):
    """A local file under the upload root."""

    local_id: str
    kind: MediaKind
    path: str
    width: int = 0
    height: int = 0
    thumbnail_path: str | None = None

    def to_model(self, root: Path) -> Asset:
        return Asset(
            local_id=self.local_id,
            kind=self.kind,
            path=resolve_upload_path(root, self.path),
            width=self.width,
            height=self.height,
            thumbnail_path=(
                resolve_upload_path(root, self.thumbnail_path)
                if self.thumbnail_path
                else None
            ),
        )


class BatchRequest(BaseModel):
    """Request model for sending a batch."""

    conversation: ConversationRequest
    assets: list[AssetRequest] = Field(min_length=1)
    caption: str = ""
    grouped: bool = False


class ShareRequest(BaseModel):
    """Request model for sharing a batch to several conversations."""

    recipients: list[ConversationRequest] = Field(min_length=1)
    assets: list[AssetRequest] = Field(min_length=1)
    caption: str = ""


class BatchResponse(BaseModel):
    """Outcome of one send."""

    batch_id: str
    state: str
    uploaded: int
    failed_indices: list[int]
    delivered: list[str]
    failed_deliveries: dict[str, str]
    messages: list[dict[str, Any]]


class ShareResponse(BaseModel):
    """Outcome of one share, per recipient."""

    recipient_id: str
    success: bool
    error: str | None = None
    batch: BatchResponse | None = None


def _report_to_dict(report: SendReport) -> dict:
    return {
        "batch_id": report.batch_id,
        "state": report.state.value,
        "uploaded": len(report.outcome.uploaded) if report.outcome else 0,
        "failed_indices": report.failed_indices,
        "delivered": report.delivered,
        "failed_deliveries": report.failed_deliveries,
        "messages": [m.to_dict() for m in report.messages],
    }


def create_batches_router(app: Application) -> APIRouter:
    """Create batches router."""
    router = APIRouter(prefix="/api", tags=["batches"])

    def assets_from(requests: list[AssetRequest]) -> list[Asset]:
        try:
            return [a.to_model(app.settings.upload_root) for a in requests]
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    @router.post("/batches", response_model=BatchResponse)
    async def send_batch(request: BatchRequest) -> dict:
        """Upload and deliver a batch of images, videos or documents to one conversation."""
        assets = assets_from(request.assets)
        controller = app.controller_for(
            request.conversation.to_model(), grouped=request.grouped
        )
        try:
            report = await controller.send(assets, request.caption)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _report_to_dict(report)

    @router.post("/share", response_model=list[ShareResponse])
    async def share_batch(request: ShareRequest) -> list[dict]:
        """Send the same batch to several conversations."""
        results = await app.share_service().share(
            assets_from(request.assets),
            request.caption,
            [r.to_model() for r in request.recipients],
        )
        return [
            {
                "recipient_id": r.recipient_id,
                "success": r.success,
                "error": r.error,
                "batch": _report_to_dict(r.report) if r.report else None,
            }
            for r in results
        ]

    return router
