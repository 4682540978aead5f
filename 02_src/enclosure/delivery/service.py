"""Hand-off of built message records to the messaging backend."""

import asyncio
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import httpx

from ..config import Settings
from ..logging_config import get_logger
from ..models import ChatMessage, DataType

logger = get_logger(__name__)

CREATE_INDIVIDUAL_CHATTING = "create_individual_chatting"
CREATE_GROUP_CHATTING = "create_group_chatting"


@dataclass
class DeliveryResult:
    """Outcome of one delivery hand-off."""

    success: bool
    error: str | None = None


class IDeliveryService(Protocol):
    """Accepts a built message record and reports success or an error string."""

    async def deliver(
        self,
        message: ChatMessage,
        token: str,
        file_path: str | None = None,
        group: bool = False,
        created_by: str = "",
    ) -> DeliveryResult:
        """Deliver one message."""
        ...


def parse_error_code(value) -> int | None:
    """Backend sends error_code as int or numeric string."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


class HttpDeliveryService:
    """Posts message records as multipart form data to the chatting endpoints."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None):
        self._settings = settings
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._settings.http_timeout)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def build_form(
        self,
        message: ChatMessage,
        token: str,
        group: bool = False,
        created_by: str = "",
    ) -> dict[str, str]:
        """Form fields for the chatting endpoints (upload_docs excluded)."""
        fields = {
            "uid": message.uid,
            "group_id" if group else "friend_id": message.receiver_id,
            "message": message.message,
            "user_name": message.user_name or "",
            "notification": "1",
            "dataType": message.data_type,
            "model_id": message.id,
            "sent_time": message.time,
            "extension": message.file_extension or "",
            "name": message.name or "",
            "phone": message.phone or "",
            "micPhoto": message.mic_photo or "",
            "miceTiming": message.mice_timing or "",
            "caption": message.caption or "",
            "selection_count": message.selection_count or "1",
            "fTokenKey": token,
        }
        if group:
            fields["created_by"] = created_by
        return fields

    def _upload_docs(
        self, message: ChatMessage, file_path: str | None
    ) -> tuple[str | None, Path | None]:
        """Either a document URL for upload_docs or a local file to attach."""
        if message.data_type in (DataType.TEXT.value, DataType.CONTACT.value):
            return "", None
        if message.document:
            return message.document, None
        if file_path and not message.selection_bunch:
            path = Path(file_path)
            if not path.is_file():
                logger.warning("File does not exist: %s", file_path)
                return "", None
            if path.stat().st_size > self._settings.max_upload_bytes:
                logger.warning("File exceeds upload limit: %s", file_path)
                return "", None
            return None, path
        return "", None

    async def deliver(
        self,
        message: ChatMessage,
        token: str,
        file_path: str | None = None,
        group: bool = False,
        created_by: str = "",
    ) -> DeliveryResult:
        endpoint = CREATE_GROUP_CHATTING if group else CREATE_INDIVIDUAL_CHATTING
        url = f"{self._settings.base_url}{endpoint}"

        fields = self.build_form(message, token, group=group, created_by=created_by)
        docs_value, docs_file = self._upload_docs(message, file_path)

        client = await self._get_client()
        try:
            if docs_file is not None:
                mime = mimetypes.guess_type(docs_file.name)[0] or "application/octet-stream"
                payload = await asyncio.to_thread(docs_file.read_bytes)
                response = await client.post(
                    url,
                    data=fields,
                    files={"upload_docs": (docs_file.name, payload, mime)},
                )
            else:
                fields["upload_docs"] = docs_value or ""
                response = await client.post(url, data=fields)
        except httpx.HTTPError as e:
            logger.error("Network error delivering %s: %s", message.id, e)
            return DeliveryResult(success=False, error=str(e) or type(e).__name__)

        try:
            body = response.json()
        except ValueError:
            return DeliveryResult(success=False, error="Invalid response format")
        if not isinstance(body, dict):
            return DeliveryResult(success=False, error="Invalid response format")

        error_code = parse_error_code(body.get("error_code"))
        if error_code is None:
            return DeliveryResult(success=False, error="Invalid response format")
        if error_code == 200:
            logger.info("Delivered %s via %s", message.id, endpoint)
            return DeliveryResult(success=True)

        error = str(body.get("message") or "Unknown error")
        logger.warning("Server error %s delivering %s: %s", error_code, message.id, error)
        return DeliveryResult(success=False, error=error)
