"""Share a batch of assets to several contacts at once."""

import asyncio
from dataclasses import dataclass
from typing import Callable, Sequence

from ..logging_config import get_logger
from ..models import Asset, Conversation
from .controller import BatchSendController, SendReport

logger = get_logger(__name__)

ControllerFactory = Callable[[Conversation], BatchSendController]


@dataclass
class ShareResult:
    """Per-recipient report of a share action."""

    recipient_id: str
    report: SendReport | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.report is not None and not self.report.failed_deliveries and (
            self.report.outcome is not None and not self.report.outcome.all_failed
        )


class ShareService:
    """Runs one independent send per recipient conversation."""

    def __init__(self, controller_factory: ControllerFactory):
        self._controller_factory = controller_factory

    async def share(
        self,
        assets: Sequence[Asset],
        caption: str,
        recipients: Sequence[Conversation],
    ) -> list[ShareResult]:
        """Upload and deliver ``assets`` to every recipient; results in recipient order."""
        if not recipients:
            raise ValueError("no recipients")

        async def share_one(conversation: Conversation) -> ShareResult:
            controller = self._controller_factory(conversation)
            try:
                report = await controller.send(assets, caption)
            except ValueError as e:
                return ShareResult(recipient_id=conversation.recipient_id, error=str(e))
            return ShareResult(recipient_id=conversation.recipient_id, report=report)

        results = await asyncio.gather(*[share_one(c) for c in recipients])

        failed = [r.recipient_id for r in results if not r.success]
        if failed:
            logger.warning("Share incomplete for %d recipient(s): %s", len(failed), failed)
        return list(results)
