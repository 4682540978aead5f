"""SQLite storage implementation."""

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

import aiosqlite

from ..config import resolve_db_path
from ..logging_config import get_logger
from ..models import ChatMessage, EmojiModel, SelectionBunchModel, TraceEvent

logger = get_logger(__name__)

STATUS_PENDING = 0
STATUS_UPLOADING = 1
STATUS_FAILED = 2

# Column order shared by INSERT and SELECT on pending_messages
_PENDING_COLUMNS = (
    "model_id",
    "receiver_uid",
    "uid",
    "message",
    "time",
    "document",
    "data_type",
    "extension",
    "name",
    "phone",
    "mic_photo",
    "mice_timing",
    "user_name",
    "reply_text_data",
    "reply_key",
    "reply_type",
    "reply_old_data",
    "reply_crt_position",
    "forwarded_key",
    "group_name",
    "doc_size",
    "file_name",
    "thumbnail",
    "file_name_thumbnail",
    "caption",
    "notification",
    "current_date_str",
    "emoji_count",
    "timestamp",
    "image_width",
    "image_height",
    "aspect_ratio",
    "selection_count",
    "batch_position",
    "emoji_model",
    "selection_bunch",
    "upload_status",
)


class IStorage(Protocol):
    """Local structured cache for pending messages and trace events (SQLite)."""

    async def init(self) -> None:
        """Initialize database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    # Pending messages
    async def insert_pending_message(self, message: ChatMessage) -> None:
        """Insert or replace a pending outbound message."""
        ...

    async def remove_pending_message(self, model_id: str, receiver_uid: str) -> bool:
        """Remove a pending message. Returns True if a row was deleted."""
        ...

    async def get_pending_messages(self, receiver_uid: str) -> list[ChatMessage]:
        """Get pending/uploading messages for a conversation, oldest first."""
        ...

    async def get_failed_messages(self, receiver_uid: str) -> list[ChatMessage]:
        """Get messages whose delivery failed, oldest first."""
        ...

    async def purge_failed_messages(self, receiver_uid: str | None = None) -> int:
        """Delete failed rows (all receivers if None). Returns rows removed."""
        ...

    async def set_upload_status(
        self, model_id: str, receiver_uid: str, status: int
    ) -> None:
        """Update upload_status of a pending message."""
        ...

    # TraceEvents
    async def save_trace_event(self, event: TraceEvent) -> None:
        """Save a trace event."""
        ...

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Get trace events with optional filters."""
        ...

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        ...


def _none_if_empty(value: str | None) -> str | None:
    return value or None


class Storage:
    """SQLite storage implementation."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            self._db_path = resolve_db_path()
        else:
            self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None

    async def init(self) -> None:
        """Initialize database and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)

        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        await self._conn.commit()
        logger.info("Storage opened at %s", self._db_path)

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require_conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Storage not initialized")
        return self._conn

    # Pending messages
    async def insert_pending_message(self, message: ChatMessage) -> None:
        """Insert or replace a pending outbound message."""
        conn = self._require_conn()

        if not message.id:
            message.id = str(uuid.uuid4())

        selection_bunch = (
            json.dumps([b.to_dict() for b in message.selection_bunch])
            if message.selection_bunch is not None
            else None
        )
        values = (
            message.id,
            message.receiver_id,
            message.uid,
            message.message,
            message.time,
            message.document,
            message.data_type,
            message.file_extension or "",
            message.name or "",
            message.phone or "",
            message.mic_photo or "",
            message.mice_timing or "",
            message.user_name or "",
            message.reply_text_data or "",
            message.reply_key or "",
            message.reply_type or "",
            message.reply_old_data or "",
            message.reply_crt_position or "",
            message.forwarded_key or "",
            message.group_name or "",
            message.doc_size or "",
            message.file_name or "",
            message.thumbnail or "",
            message.file_name_thumbnail or "",
            message.caption or "",
            message.notification,
            message.current_date or "",
            message.emoji_count or "",
            message.timestamp,
            message.image_width or "",
            message.image_height or "",
            message.aspect_ratio or "",
            message.selection_count or "",
            message.batch_position,
            json.dumps([e.to_dict() for e in message.emoji_model]),
            selection_bunch,
            STATUS_PENDING,
        )
        placeholders = ", ".join("?" * len(_PENDING_COLUMNS))

        await conn.execute(
            f"""
            INSERT OR REPLACE INTO pending_messages ({", ".join(_PENDING_COLUMNS)})
            VALUES ({placeholders})
            """,
            values,
        )
        await conn.commit()
        logger.debug("Pending message inserted: %s", message.id)

    async def remove_pending_message(self, model_id: str, receiver_uid: str) -> bool:
        """Remove a pending message. Returns True if a row was deleted."""
        conn = self._require_conn()

        cursor = await conn.execute(
            """
            DELETE FROM pending_messages
            WHERE model_id = ? AND receiver_uid = ?
            """,
            (model_id, receiver_uid),
        )
        await conn.commit()
        return cursor.rowcount > 0

    async def get_pending_messages(self, receiver_uid: str) -> list[ChatMessage]:
        """Get pending/uploading messages for a conversation, oldest first."""
        return await self._select_messages(
            receiver_uid, (STATUS_PENDING, STATUS_UPLOADING)
        )

    async def get_failed_messages(self, receiver_uid: str) -> list[ChatMessage]:
        """Get messages whose delivery failed, oldest first (retry candidates)."""
        return await self._select_messages(receiver_uid, (STATUS_FAILED,))

    async def _select_messages(
        self, receiver_uid: str, statuses: tuple[int, ...]
    ) -> list[ChatMessage]:
        conn = self._require_conn()

        placeholders = ", ".join("?" * len(statuses))
        cursor = await conn.execute(
            f"""
            SELECT {", ".join(_PENDING_COLUMNS)}
            FROM pending_messages
            WHERE receiver_uid = ? AND upload_status IN ({placeholders})
            ORDER BY timestamp ASC
            """,
            (receiver_uid, *statuses),
        )
        rows = await cursor.fetchall()

        return [self._message_from_row(dict(zip(_PENDING_COLUMNS, row))) for row in rows]

    async def purge_failed_messages(self, receiver_uid: str | None = None) -> int:
        """Delete failed rows (all receivers if None). Returns rows removed."""
        conn = self._require_conn()

        if receiver_uid is None:
            cursor = await conn.execute(
                "DELETE FROM pending_messages WHERE upload_status = ?",
                (STATUS_FAILED,),
            )
        else:
            cursor = await conn.execute(
                """
                DELETE FROM pending_messages
                WHERE receiver_uid = ? AND upload_status = ?
                """,
                (receiver_uid, STATUS_FAILED),
            )
        await conn.commit()
        if cursor.rowcount:
            logger.info("Purged %d failed message(s)", cursor.rowcount)
        return cursor.rowcount

    async def set_upload_status(
        self, model_id: str, receiver_uid: str, status: int
    ) -> None:
        """Update upload_status of a pending message."""
        conn = self._require_conn()

        await conn.execute(
            """
            UPDATE pending_messages SET upload_status = ?
            WHERE model_id = ? AND receiver_uid = ?
            """,
            (status, model_id, receiver_uid),
        )
        await conn.commit()

    @staticmethod
    def _message_from_row(row: dict) -> ChatMessage:
        try:
            emoji_model = [
                EmojiModel(name=e.get("name", ""), emoji=e.get("emoji", ""))
                for e in json.loads(row["emoji_model"] or "[]")
            ]
        except json.JSONDecodeError:
            emoji_model = []

        selection_bunch = None
        if row["selection_bunch"]:
            try:
                selection_bunch = [
                    SelectionBunchModel.from_dict(b)
                    for b in json.loads(row["selection_bunch"])
                ]
            except json.JSONDecodeError:
                logger.warning("Unreadable selection_bunch for %s", row["model_id"])

        return ChatMessage(
            id=row["model_id"],
            uid=row["uid"] or "",
            receiver_id=row["receiver_uid"],
            data_type=row["data_type"] or "",
            time=row["time"] or "",
            timestamp=row["timestamp"] or 0.0,
            message=row["message"] or "",
            document=row["document"] or "",
            file_extension=_none_if_empty(row["extension"]),
            name=_none_if_empty(row["name"]),
            phone=_none_if_empty(row["phone"]),
            mic_photo=_none_if_empty(row["mic_photo"]),
            mice_timing=_none_if_empty(row["mice_timing"]),
            user_name=_none_if_empty(row["user_name"]),
            reply_text_data=_none_if_empty(row["reply_text_data"]),
            reply_key=_none_if_empty(row["reply_key"]),
            reply_type=_none_if_empty(row["reply_type"]),
            reply_old_data=_none_if_empty(row["reply_old_data"]),
            reply_crt_position=_none_if_empty(row["reply_crt_position"]),
            forwarded_key=_none_if_empty(row["forwarded_key"]),
            group_name=_none_if_empty(row["group_name"]),
            doc_size=_none_if_empty(row["doc_size"]),
            file_name=_none_if_empty(row["file_name"]),
            thumbnail=_none_if_empty(row["thumbnail"]),
            file_name_thumbnail=_none_if_empty(row["file_name_thumbnail"]),
            caption=row["caption"] or "",
            notification=row["notification"] or 0,
            current_date=_none_if_empty(row["current_date_str"]),
            emoji_model=emoji_model,
            emoji_count=_none_if_empty(row["emoji_count"]),
            image_width=_none_if_empty(row["image_width"]),
            image_height=_none_if_empty(row["image_height"]),
            aspect_ratio=_none_if_empty(row["aspect_ratio"]),
            selection_count=_none_if_empty(row["selection_count"]),
            batch_position=row["batch_position"] or 1,
            selection_bunch=selection_bunch,
            # Pending messages always show the sending loader
            receiver_loader=0,
        )

    # TraceEvents
    async def save_trace_event(self, event: TraceEvent) -> None:
        """Save a trace event."""
        conn = self._require_conn()

        timestamp = event.timestamp or datetime.now(timezone.utc)
        await conn.execute(
            """
            INSERT INTO trace_events (id, event_type, actor, data, timestamp)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                event.id or str(uuid.uuid4()),
                event.event_type,
                event.actor,
                json.dumps(event.data, default=str),
                timestamp.isoformat(),
            ),
        )
        await conn.commit()

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Get trace events with optional filters."""
        conn = self._require_conn()

        conditions = []
        params: list = []

        if after:
            conditions.append("timestamp > ?")
            params.append(after.isoformat())
        if event_types:
            placeholders = ",".join("?" * len(event_types))
            conditions.append(f"event_type IN ({placeholders})")
            params.extend(event_types)
        if actor:
            conditions.append("actor = ?")
            params.append(actor)

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        query = f"""
            SELECT id, event_type, actor, data, timestamp
            FROM trace_events
            {where_clause}
            ORDER BY timestamp DESC
            LIMIT ?
        """
        params.append(limit)

        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()

        return [
            TraceEvent(
                id=row[0],
                event_type=row[1],
                actor=row[2],
                data=json.loads(row[3]),
                timestamp=datetime.fromisoformat(row[4]),
            )
            for row in rows
        ]

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        conn = self._require_conn()

        for table in ("pending_messages", "trace_events"):
            await conn.execute(f"DELETE FROM {table}")

        await conn.commit()
