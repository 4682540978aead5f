"""Turn a joined upload batch into outbound message records."""

import uuid
from datetime import datetime
from pathlib import PurePath
from typing import Callable

from ..models import (
    BatchOutcome,
    ChatMessage,
    Conversation,
    DataType,
    EmojiModel,
    MediaKind,
    SelectionBunchModel,
    UploadedAsset,
)

IdFactory = Callable[[], str]


def format_aspect_ratio(width: int, height: int) -> str:
    """width/height to two decimals; empty when height is not positive."""
    if height <= 0:
        return ""
    return f"{width / height:.2f}"


_DATA_TYPES = {
    MediaKind.IMAGE: DataType.IMAGE,
    MediaKind.VIDEO: DataType.VIDEO,
    MediaKind.DOCUMENT: DataType.DOCUMENT,
}


def _extension(asset: UploadedAsset) -> str | None:
    if asset.kind is MediaKind.DOCUMENT:
        return PurePath(asset.file_name).suffix.lstrip(".").lower() or None
    return "mp4" if asset.kind is MediaKind.VIDEO else "jpg"


def _base_message(
    model_id: str,
    asset: UploadedAsset,
    conversation: Conversation,
    now: datetime,
) -> ChatMessage:
    message = ChatMessage(
        id=model_id,
        uid=conversation.sender_id,
        receiver_id=conversation.recipient_id,
        data_type=_DATA_TYPES[asset.kind].value,
        time=now.strftime("%I:%M %p"),
        timestamp=now.timestamp(),
        document=asset.download_url,
        file_extension=_extension(asset),
        mic_photo=conversation.mic_photo or None,
        user_name=conversation.user_name or None,
        group_name=conversation.group_name if conversation.is_group else None,
        file_name=asset.file_name,
        thumbnail=asset.thumbnail_url,
        file_name_thumbnail=asset.thumbnail_file_name,
        notification=1,
        current_date=now.strftime("%Y-%m-%d"),
        emoji_model=[EmojiModel()],
        receiver_loader=0,
    )
    if asset.kind is MediaKind.DOCUMENT:
        message.doc_size = str(asset.file_size) if asset.file_size is not None else None
    else:
        message.image_width = str(asset.width)
        message.image_height = str(asset.height)
        message.aspect_ratio = format_aspect_ratio(asset.width, asset.height)
    return message


def build_messages(
    outcome: BatchOutcome,
    conversation: Conversation,
    caption: str,
    now: datetime | None = None,
    id_factory: IdFactory | None = None,
) -> list[ChatMessage]:
    """
    One message per uploaded asset, in original selection order.

    Only the asset with the lowest original index among the successes carries
    the caption; every other message gets an empty caption.
    """
    now = now or datetime.now()
    id_factory = id_factory or (lambda: str(uuid.uuid4()))
    uploaded = sorted(outcome.uploaded, key=lambda a: a.index)
    caption = caption.strip()

    messages = []
    for position, asset in enumerate(uploaded, start=1):
        message = _base_message(id_factory(), asset, conversation, now)
        message.caption = caption if position == 1 else ""
        message.batch_position = position
        message.selection_count = str(len(uploaded))
        messages.append(message)
    return messages


def build_bunch_message(
    outcome: BatchOutcome,
    conversation: Conversation,
    caption: str,
    now: datetime | None = None,
) -> ChatMessage:
    """A single grouped message carrying every uploaded asset as a selection bunch."""
    uploaded = sorted(outcome.uploaded, key=lambda a: a.index)
    if not uploaded:
        raise ValueError("cannot build a message from an empty batch")

    message = _base_message(
        outcome.batch_id, uploaded[0], conversation, now or datetime.now()
    )
    message.caption = caption.strip()
    message.selection_count = str(len(uploaded))
    message.selection_bunch = [
        SelectionBunchModel(img_url=a.download_url, file_name=a.file_name)
        for a in uploaded
    ]
    return message
