"""Send flow for a preview dialog: idle -> previewing -> sending -> done | error."""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Sequence

from ..config import Settings
from ..delivery import DeliveryResult, IDeliveryService
from ..errors import DeliveryError
from ..event_bus import IEventBus
from ..logging_config import get_context_logger
from ..models import (
    Asset,
    BatchOutcome,
    ChatMessage,
    Conversation,
    DataType,
    MediaKind,
    Topic,
)
from ..storage import STATUS_FAILED, STATUS_UPLOADING, IStorage
from ..tracker import ITracker
from .builder import build_bunch_message, build_messages
from .pipeline import UploadPipeline


class SendState(str, Enum):
    """States of one send controller."""

    IDLE = "idle"
    PREVIEWING = "previewing"
    SENDING = "sending"
    DONE = "done"
    ERROR = "error"


_ALLOWED = {
    SendState.IDLE: {SendState.PREVIEWING, SendState.SENDING},
    SendState.PREVIEWING: {SendState.IDLE, SendState.SENDING},
    SendState.SENDING: {SendState.DONE, SendState.ERROR},
    SendState.DONE: {SendState.IDLE, SendState.PREVIEWING, SendState.SENDING},
    SendState.ERROR: {SendState.IDLE, SendState.PREVIEWING, SendState.SENDING},
}


def upload_failure_text(kind: MediaKind) -> str:
    return f"Unable to upload {_noun(kind)}. Please try again."


def delivery_failure_text(kind: MediaKind) -> str:
    return f"Failed to send {_noun(kind)}. Please try again."


_NOUNS = {
    MediaKind.IMAGE: "images",
    MediaKind.VIDEO: "videos",
    MediaKind.DOCUMENT: "documents",
}

_KINDS = {
    DataType.IMAGE.value: MediaKind.IMAGE,
    DataType.VIDEO.value: MediaKind.VIDEO,
    DataType.DOCUMENT.value: MediaKind.DOCUMENT,
}


def _noun(kind: MediaKind) -> str:
    return _NOUNS[kind]


class SelectionState:
    """Locally-chosen asset ids for one screen; cleared on send or dismiss."""

    def __init__(self, ids: Iterable[str] = ()):
        self._ids: list[str] = []
        for asset_id in ids:
            self.add(asset_id)

    def add(self, asset_id: str) -> None:
        if asset_id not in self._ids:
            self._ids.append(asset_id)

    def remove(self, asset_id: str) -> None:
        if asset_id in self._ids:
            self._ids.remove(asset_id)

    def toggle(self, asset_id: str) -> bool:
        """Flip selection of ``asset_id``; returns True if now selected."""
        if asset_id in self._ids:
            self._ids.remove(asset_id)
            return False
        self._ids.append(asset_id)
        return True

    def clear(self) -> None:
        self._ids.clear()

    def ordered(self) -> list[str]:
        return list(self._ids)

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)


@dataclass
class SendReport:
    """What happened to one send action."""

    batch_id: str
    state: SendState
    outcome: BatchOutcome | None = None
    messages: list[ChatMessage] = field(default_factory=list)
    delivered: list[str] = field(default_factory=list)
    failed_deliveries: dict[str, str] = field(default_factory=dict)

    @property
    def failed_indices(self) -> list[int]:
        return self.outcome.failed_indices if self.outcome else []


class BatchSendController:
    """Drives one conversation's multi-asset send, independent of any UI."""

    def __init__(
        self,
        conversation: Conversation,
        pipeline: UploadPipeline,
        delivery: IDeliveryService,
        storage: IStorage,
        event_bus: IEventBus,
        settings: Settings,
        tracker: ITracker | None = None,
        selection: SelectionState | None = None,
        grouped: bool = False,
    ):
        self._conversation = conversation
        self._pipeline = pipeline
        self._delivery = delivery
        self._storage = storage
        self._event_bus = event_bus
        self._settings = settings
        self._tracker = tracker
        self._selection = selection if selection is not None else SelectionState()
        self._grouped = grouped
        self._state = SendState.IDLE

    @property
    def state(self) -> SendState:
        return self._state

    @property
    def selection(self) -> SelectionState:
        return self._selection

    async def _transition(self, new_state: SendState, **payload) -> None:
        if new_state not in _ALLOWED[self._state]:
            raise RuntimeError(
                f"cannot go from {self._state.value} to {new_state.value}"
            )
        old_state, self._state = self._state, new_state
        await self._event_bus.emit(
            Topic.STATE,
            "send_controller",
            {
                "conversation": self._conversation.key,
                "from": old_state.value,
                "to": new_state.value,
                **payload,
            },
        )

    async def _notify(self, text: str, **payload) -> None:
        await self._event_bus.emit(
            Topic.NOTICE,
            "send_controller",
            {"conversation": self._conversation.key, "text": text, **payload},
        )

    async def open_preview(self) -> None:
        """Show the preview for the current selection."""
        if not self._selection:
            raise ValueError("nothing selected")
        await self._transition(SendState.PREVIEWING, selected=len(self._selection))

    async def cancel(self) -> None:
        """Dismiss the preview without sending."""
        await self._transition(SendState.IDLE)
        self._selection.clear()
        await self._event_bus.emit(
            Topic.STATE, "send_controller", {"event": "dismissed", "sent": False}
        )

    async def send(self, assets: Sequence[Asset], caption: str = "") -> SendReport:
        """
        Upload ``assets``, build message records and deliver them.

        Total upload failure publishes one notice and ends in ERROR. Otherwise
        the selection is cleared and the preview dismissed right after the
        join, before any delivery result is known. An unexpected exception
        moves the controller to ERROR before it propagates, so the next
        ``send`` starts from a valid state.
        """
        if not assets:
            raise ValueError("no assets to send")

        batch_id = str(uuid.uuid4())
        log = get_context_logger(
            __name__, batch_id=batch_id, conversation=self._conversation.key
        )
        await self._transition(SendState.SENDING, batch_id=batch_id)

        try:
            return await self._send(assets, caption, batch_id, log)
        except Exception as e:
            if self._state is SendState.SENDING:
                log.exception("Send aborted")
                await self._transition(
                    SendState.ERROR, reason="unexpected_error", error=type(e).__name__
                )
            raise

    async def _send(
        self,
        assets: Sequence[Asset],
        caption: str,
        batch_id: str,
        log: logging.LoggerAdapter,
    ) -> SendReport:
        try:
            outcome = await self._pipeline.upload_batch(
                assets, self._conversation, batch_id=batch_id
            )
        except ValueError:
            await self._transition(SendState.ERROR, reason="invalid_batch")
            raise
        report = SendReport(batch_id=batch_id, state=SendState.SENDING, outcome=outcome)

        if outcome.all_failed:
            await self._notify(upload_failure_text(outcome.kind), reason="upload_failed")
            await self._transition(SendState.ERROR, reason="upload_failed")
            report.state = self._state
            return report

        if outcome.failures:
            await self._notify(
                f"{len(outcome.failures)} of {outcome.total} {_noun(outcome.kind)} "
                "could not be uploaded.",
                reason="partial_failure",
                failed_indices=outcome.failed_indices,
            )

        self._selection.clear()
        await self._event_bus.emit(
            Topic.STATE,
            "send_controller",
            {"event": "selection_cleared", "batch_id": batch_id},
        )
        await self._event_bus.emit(
            Topic.STATE,
            "send_controller",
            {"event": "dismissed", "sent": True, "batch_id": batch_id},
        )

        if self._grouped and outcome.kind is MediaKind.IMAGE:
            report.messages = [build_bunch_message(outcome, self._conversation, caption)]
        else:
            report.messages = build_messages(outcome, self._conversation, caption)

        attachments: dict[str, str] = {}
        if outcome.kind is MediaKind.DOCUMENT:
            attachments = {
                message.id: str(asset.attachment_path)
                for message, asset in zip(report.messages, outcome.uploaded)
                if asset.attachment_path is not None
            }

        for message in report.messages:
            await self._storage.insert_pending_message(message)

        results = await asyncio.gather(
            *[
                self._deliver(message, attachments.get(message.id))
                for message in report.messages
            ],
            return_exceptions=True,
        )
        for message, result in zip(report.messages, results):
            if isinstance(result, BaseException):
                log.error("Delivery of %s failed", message.id, exc_info=result)
                report.failed_deliveries[message.id] = str(result) or type(result).__name__
            elif result.success:
                report.delivered.append(message.id)
            else:
                report.failed_deliveries[message.id] = result.error or "Unknown error"

        if report.failed_deliveries:
            log.warning(
                "%d of %d message(s) not delivered",
                len(report.failed_deliveries),
                len(report.messages),
            )

        await self._transition(
            SendState.DONE,
            delivered=len(report.delivered),
            failed=len(report.failed_deliveries),
        )
        report.state = self._state
        return report

    async def _deliver(self, message: ChatMessage, file_path: str | None) -> DeliveryResult:
        receiver = message.receiver_id
        await self._storage.set_upload_status(message.id, receiver, STATUS_UPLOADING)

        try:
            result = await self._delivery.deliver(
                message,
                token=self._settings.fcm_token,
                file_path=file_path,
                group=self._conversation.is_group,
                created_by=self._conversation.sender_id,
            )
        except DeliveryError as e:
            result = DeliveryResult(success=False, error=str(e))
        except Exception as e:
            get_context_logger(__name__, model_id=message.id).exception(
                "Delivery service raised"
            )
            result = DeliveryResult(success=False, error=str(e) or type(e).__name__)

        if result.success:
            await self._storage.remove_pending_message(message.id, receiver)
            event_type = "message_delivered"
        else:
            await self._storage.set_upload_status(message.id, receiver, STATUS_FAILED)
            await self._notify(
                delivery_failure_text(_KINDS[message.data_type]),
                reason="delivery_failed",
                model_id=message.id,
            )
            event_type = "message_delivery_failed"

        await self._event_bus.emit(
            Topic.DELIVERY,
            "send_controller",
            {"model_id": message.id, "success": result.success, "error": result.error},
        )
        if self._tracker:
            await self._tracker.track(
                event_type,
                "send_controller",
                {"model_id": message.id, "receiver": receiver, "error": result.error},
            )
        return result
