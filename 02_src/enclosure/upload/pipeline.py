"""Multi-asset upload fan-out.

Every asset runs its own export -> cache -> put -> resolve chain. The chains
are joined with ``asyncio.gather``; each one returns either an
``UploadedAsset`` or an ``AssetFailure`` so a failing sibling never cancels
the others and no shared accumulator needs locking. Aggregation only happens
after every chain has returned.
"""

import asyncio
import uuid
from typing import Sequence

from ..config import Settings
from ..content_store import IContentStore, storage_path
from ..errors import UploadError, UploadFailed
from ..logging_config import get_context_logger
from ..media import IAssetExporter, LocalMediaCache
from ..models import (
    Asset,
    AssetFailure,
    BatchOutcome,
    Conversation,
    MediaKind,
    UploadedAsset,
)
from ..tracker import ITracker

IMAGE_CONTENT_TYPE = "image/jpeg"
VIDEO_CONTENT_TYPE = "video/mp4"

AssetResult = UploadedAsset | AssetFailure


class UploadPipeline:
    """Uploads a batch of assets concurrently and joins on completion."""

    def __init__(
        self,
        exporter: IAssetExporter,
        store: IContentStore,
        cache: LocalMediaCache,
        settings: Settings,
        tracker: ITracker | None = None,
        max_concurrency: int | None = None,
    ):
        self._exporter = exporter
        self._store = store
        self._cache = cache
        self._settings = settings
        self._tracker = tracker
        self._limit = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def upload_batch(
        self,
        assets: Sequence[Asset],
        conversation: Conversation,
        batch_id: str | None = None,
    ) -> BatchOutcome:
        """
        Upload every asset and wait for all of them to finish.

        Args:
            assets: Assets in selection order; position is the asset index
            conversation: Target conversation; namespaces the store path
            batch_id: Model id shared by the batch (generated if omitted)

        Returns:
            BatchOutcome with successes sorted by original index and the
            collected per-asset failures
        """
        if not assets:
            raise ValueError("batch must contain at least one asset")
        kinds = {asset.kind for asset in assets}
        if len(kinds) > 1:
            raise ValueError("batch must not mix media kinds")

        kind = kinds.pop()
        batch_id = batch_id or str(uuid.uuid4())
        log = get_context_logger(
            __name__, batch_id=batch_id, conversation=conversation.key
        )
        log.info("Uploading %d %s asset(s)", len(assets), kind.value)

        results: list[AssetResult] = await asyncio.gather(
            *[
                self._run_one(index, asset, conversation, batch_id)
                for index, asset in enumerate(assets)
            ]
        )

        outcome = BatchOutcome(batch_id=batch_id, kind=kind)
        for result in results:
            if isinstance(result, AssetFailure):
                outcome.failures.append(result)
            else:
                outcome.uploaded.append(result)
        outcome.uploaded.sort(key=lambda r: r.index)

        if outcome.all_failed:
            log.error("All %d upload(s) failed", outcome.total)
        elif outcome.failures:
            log.warning(
                "%d of %d upload(s) failed: indices %s",
                len(outcome.failures),
                outcome.total,
                outcome.failed_indices,
            )

        await self._track(
            "batch_joined",
            {
                "batch_id": batch_id,
                "kind": kind.value,
                "uploaded": len(outcome.uploaded),
                "failed_indices": outcome.failed_indices,
            },
        )
        return outcome

    async def _run_one(
        self, index: int, asset: Asset, conversation: Conversation, batch_id: str
    ) -> AssetResult:
        try:
            if self._limit:
                async with self._limit:
                    result = await self._upload(index, asset, conversation, batch_id)
            else:
                result = await self._upload(index, asset, conversation, batch_id)
        except UploadError as e:
            return await self._failed(index, asset, e)
        except Exception as e:
            # Unknown collaborator errors are isolated like transport errors
            get_context_logger(__name__, batch_id=batch_id).exception(
                "Unexpected error uploading asset %d", index
            )
            return await self._failed(index, asset, UploadFailed(str(e) or repr(e)))

        await self._track(
            "asset_uploaded",
            {"batch_id": batch_id, "index": index, "file_name": result.file_name},
        )
        return result

    async def _upload(
        self, index: int, asset: Asset, conversation: Conversation, batch_id: str
    ) -> UploadedAsset:
        if asset.kind is MediaKind.VIDEO:
            return await self._upload_video(index, asset, conversation)
        if asset.kind is MediaKind.DOCUMENT:
            return await self._upload_document(index, asset)
        return await self._upload_image(index, asset, conversation, batch_id)

    async def _upload_image(
        self, index: int, asset: Asset, conversation: Conversation, batch_id: str
    ) -> UploadedAsset:
        file_name = f"{batch_id}_{index}.jpg"
        exported = await self._exporter.export_image(asset)

        local_path = await self._cache_locally(MediaKind.IMAGE, file_name, exported.data)
        url = await self._put_and_resolve(
            conversation, file_name, exported.data, IMAGE_CONTENT_TYPE
        )
        return UploadedAsset(
            index=index,
            download_url=url,
            file_name=file_name,
            width=exported.width,
            height=exported.height,
            kind=MediaKind.IMAGE,
            local_path=local_path,
        )

    async def _upload_video(
        self, index: int, asset: Asset, conversation: Conversation
    ) -> UploadedAsset:
        video_id = str(uuid.uuid4())
        file_name = f"{video_id}.mp4"
        thumbnail_name = f"thumb_{video_id}.jpg"

        # Both exports succeed before anything is written to the store
        data = await self._exporter.export_video(asset)
        thumbnail = await self._exporter.thumbnail(asset)

        thumbnail_url = await self._put_and_resolve(
            conversation, thumbnail_name, thumbnail, IMAGE_CONTENT_TYPE
        )
        local_path = await self._cache_locally(MediaKind.VIDEO, file_name, data)
        url = await self._put_and_resolve(conversation, file_name, data, VIDEO_CONTENT_TYPE)

        return UploadedAsset(
            index=index,
            download_url=url,
            file_name=file_name,
            width=asset.width,
            height=asset.height,
            kind=MediaKind.VIDEO,
            thumbnail_url=thumbnail_url,
            thumbnail_file_name=thumbnail_name,
            local_path=local_path,
        )

    async def _upload_document(self, index: int, asset: Asset) -> UploadedAsset:
        """Documents keep their own name and ride along with the message itself."""
        data = await self._exporter.export_document(asset)
        if len(data) > self._settings.max_upload_bytes:
            raise UploadFailed(
                f"{asset.path.name} is {len(data)} bytes, over the upload limit"
            )

        file_name = asset.path.name
        local_path = await self._cache_locally(MediaKind.DOCUMENT, file_name, data)
        return UploadedAsset(
            index=index,
            download_url="",
            file_name=file_name,
            width=0,
            height=0,
            kind=MediaKind.DOCUMENT,
            local_path=local_path,
            file_size=len(data),
            attachment_path=asset.path,
        )

    async def _put_and_resolve(
        self, conversation: Conversation, file_name: str, data: bytes, content_type: str
    ) -> str:
        path = storage_path(conversation.root(self._settings), conversation.key, file_name)
        await self._store.put(path, data, content_type)
        return await self._store.resolve(path)

    async def _cache_locally(self, kind: MediaKind, file_name: str, data: bytes):
        # Cache failures never fail the upload itself
        try:
            await self._cache.save(kind, file_name, data)
        except OSError as e:
            get_context_logger(__name__, file_name=file_name).warning(
                "Could not cache media locally: %s", e
            )
            return None
        return self._cache.path_for(kind, file_name)

    async def _failed(self, index: int, asset: Asset, error: Exception) -> AssetFailure:
        await self._track(
            "asset_failed",
            {
                "index": index,
                "local_id": asset.local_id,
                "error": type(error).__name__,
                "reason": str(error),
            },
        )
        return AssetFailure(index=index, error=error)

    async def _track(self, event_type: str, data: dict) -> None:
        if self._tracker:
            await self._tracker.track(event_type, "upload_pipeline", data)
