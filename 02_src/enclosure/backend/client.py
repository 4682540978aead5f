"""Backend JSON API client (form-encoded POST)."""

from typing import Any

import httpx

from ..config import Settings
from ..delivery.service import parse_error_code
from ..errors import BackendError
from ..logging_config import get_logger
from ..models import GroupModel, UserActiveContactModel

logger = get_logger(__name__)

GET_GROUP_DETAILS = "get_group_details"
GET_USER_ACTIVE_CHAT_LIST = "get_user_active_chat_list"


class BackendClient:
    """Reads identity records from the backend API."""

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

    async def _post(self, endpoint: str, form: dict[str, str]) -> Any:
        """POST ``form`` and return the ``data`` member of a 200 response."""
        client = await self._get_client()
        url = f"{self._settings.base_url}{endpoint}"
        try:
            response = await client.post(url, data=form)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise BackendError(
                f"{endpoint} returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise BackendError(f"{endpoint} request failed: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise BackendError(f"{endpoint} returned invalid JSON") from e
        if not isinstance(body, dict):
            raise BackendError(f"{endpoint} returned unexpected payload")

        error_code = parse_error_code(body.get("error_code"))
        if error_code != 200:
            raise BackendError(
                str(body.get("message") or "Unknown error"), error_code=error_code
            )
        return body.get("data")

    async def fetch_group_details(self, group_id: str, uid: str) -> GroupModel:
        """Group name, icon, theme colour and members."""
        data = await self._post(GET_GROUP_DETAILS, {"group_id": group_id, "uid": uid})
        if not isinstance(data, dict):
            raise BackendError("group details missing from response", error_code=200)
        group = GroupModel.from_api(group_id, data)
        logger.info("Fetched group %s with %d member(s)", group_id, len(group.members))
        return group

    async def fetch_active_contacts(self, uid: str) -> list[UserActiveContactModel]:
        """Contacts with an active chat for ``uid``."""
        data = await self._post(GET_USER_ACTIVE_CHAT_LIST, {"uid": uid})
        if data is None:
            return []
        if not isinstance(data, list):
            raise BackendError("contact list missing from response", error_code=200)
        return [UserActiveContactModel.from_api(item) for item in data if isinstance(item, dict)]
