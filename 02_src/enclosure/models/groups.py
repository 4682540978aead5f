"""Identity records fetched from the backend API (read-only)."""

from dataclasses import dataclass, field
from typing import Any

DEFAULT_THEME_COLOR = "#00A3E9"


def _flex_str(value: Any) -> str:
    """Backend sends some fields as int or string; normalise to str."""
    if value is None:
        return ""
    return str(value)


def _flex_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class GroupMember:
    """A member entry inside a group details response."""

    uid: str
    full_name: str = ""
    mobile_no: str = ""
    photo: str = ""
    caption: str = ""
    status: str = ""
    block: str = ""
    theme_color: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "GroupMember":
        return cls(
            uid=_flex_str(data.get("uid")),
            full_name=_flex_str(data.get("full_name")),
            mobile_no=_flex_str(data.get("mobile_no")),
            photo=_flex_str(data.get("photo")),
            caption=_flex_str(data.get("caption")),
            status=_flex_str(data.get("status")),
            block=_flex_str(data.get("block")),
            theme_color=_flex_str(data.get("themeColor")),
        )


@dataclass
class GroupModel:
    """Group details as returned by the backend."""

    group_id: str
    name: str
    icon: str = ""
    theme_color: str = DEFAULT_THEME_COLOR
    members: list[GroupMember] = field(default_factory=list)

    @classmethod
    def from_api(cls, group_id: str, data: dict[str, Any]) -> "GroupModel":
        theme = _flex_str(data.get("themeColor"))
        return cls(
            group_id=group_id,
            name=_flex_str(data.get("group_name")),
            icon=_flex_str(data.get("group_icon")),
            theme_color=theme or DEFAULT_THEME_COLOR,
            members=[
                GroupMember.from_api(m)
                for m in data.get("members") or []
                if isinstance(m, dict)
            ],
        )


@dataclass
class UserActiveContactModel:
    """A contact from the active chat list."""

    uid: str
    full_name: str = ""
    mobile_no: str = ""
    photo: str = ""
    f_token: str = ""
    device_type: str = ""
    notification: int = 0
    msg_limit: int = 0

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "UserActiveContactModel":
        return cls(
            uid=_flex_str(data.get("uid")),
            full_name=_flex_str(data.get("full_name")),
            mobile_no=_flex_str(data.get("mobile_no")),
            photo=_flex_str(data.get("photo")),
            f_token=_flex_str(data.get("f_token")),
            device_type=_flex_str(data.get("device_type")),
            notification=_flex_int(data.get("notification")),
            msg_limit=_flex_int(data.get("msg_limit")),
        )
