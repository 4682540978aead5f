"""Message-related data models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal


class DataType(str, Enum):
    """Payload type tag carried by every message record."""

    TEXT = "Text"
    IMAGE = "img"
    VIDEO = "video"
    DOCUMENT = "doc"
    CONTACT = "contact"


@dataclass
class SelectionBunchModel:
    """One uploaded file inside a multi-attachment message."""

    img_url: str
    file_name: str

    def to_dict(self) -> dict[str, str]:
        return {"imgUrl": self.img_url, "fileName": self.file_name}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SelectionBunchModel":
        return cls(
            img_url=str(data.get("imgUrl", "")),
            file_name=str(data.get("fileName", "")),
        )


@dataclass
class EmojiModel:
    """A reaction attached to a message."""

    name: str = ""
    emoji: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "emoji": self.emoji}


@dataclass
class Conversation:
    """Sender and recipient of a send action (individual contact or group)."""

    kind: Literal["individual", "group"]
    sender_id: str
    recipient_id: str
    group_name: str | None = None
    user_name: str = ""
    mic_photo: str = ""

    def __post_init__(self) -> None:
        if not self.sender_id:
            raise ValueError("sender_id must not be empty")
        if not self.recipient_id:
            raise ValueError("recipient_id must not be empty")

    @property
    def is_group(self) -> bool:
        return self.kind == "group"

    @property
    def key(self) -> str:
        """Namespace for uploaded content of this conversation."""
        if self.is_group:
            return self.recipient_id
        return self.sender_id + self.recipient_id

    def root(self, settings) -> str:
        """Top-level store directory for this conversation kind."""
        return settings.group_chat_root if self.is_group else settings.chat_root


@dataclass
class ChatMessage:
    """A single outbound message record."""

    id: str
    uid: str
    receiver_id: str
    data_type: str
    time: str
    timestamp: float
    message: str = ""
    document: str = ""
    file_extension: str | None = None
    name: str | None = None
    phone: str | None = None
    mic_photo: str | None = None
    mice_timing: str | None = None
    user_name: str | None = None
    reply_text_data: str | None = None
    reply_key: str | None = None
    reply_type: str | None = None
    reply_old_data: str | None = None
    reply_crt_position: str | None = None
    forwarded_key: str | None = None
    group_name: str | None = None
    doc_size: str | None = None
    file_name: str | None = None
    thumbnail: str | None = None
    file_name_thumbnail: str | None = None
    caption: str = ""
    notification: int = 1
    current_date: str | None = None
    emoji_model: list[EmojiModel] = field(default_factory=list)
    emoji_count: str | None = None
    image_width: str | None = None
    image_height: str | None = None
    aspect_ratio: str | None = None
    selection_count: str | None = None
    batch_position: int = 1
    selection_bunch: list[SelectionBunchModel] | None = None
    receiver_loader: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Realtime-store map: camelCase keys, empty strings for missing values."""
        data: dict[str, Any] = {
            "uid": self.uid,
            "message": self.message,
            "time": self.time,
            "document": self.document,
            "dataType": self.data_type,
            "extension": self.file_extension or "",
            "name": self.name or "",
            "phone": self.phone or "",
            "micPhoto": self.mic_photo or "",
            "miceTiming": self.mice_timing or "",
            "userName": self.user_name or "",
            "replytextData": self.reply_text_data or "",
            "replyKey": self.reply_key or "",
            "replyType": self.reply_type or "",
            "replyOldData": self.reply_old_data or "",
            "replyCrtPostion": self.reply_crt_position or "",
            "modelId": self.id,
            "receiverUid": self.receiver_id,
            "forwaredKey": self.forwarded_key or "",
            "groupName": self.group_name or "",
            "docSize": self.doc_size or "",
            "fileName": self.file_name or "",
            "thumbnail": self.thumbnail or "",
            "fileNameThumbnail": self.file_name_thumbnail or "",
            "caption": self.caption or "",
            "notification": self.notification,
            "currentDate": self.current_date or "",
            "emojiCount": self.emoji_count or "",
            "imageWidth": self.image_width or "",
            "imageHeight": self.image_height or "",
            "aspectRatio": self.aspect_ratio or "",
            "selectionCount": self.selection_count or "",
            "batchPosition": self.batch_position,
            "receiverLoader": self.receiver_loader,
            "timestamp": self.timestamp,
            "emojiModel": [e.to_dict() for e in self.emoji_model],
        }
        if self.selection_bunch is not None:
            data["selectionBunch"] = [b.to_dict() for b in self.selection_bunch]
        return data
