"""
Ingestion Pipeline

Turns a content submission into a saved, searchable item.

Pipeline Steps (strictly in order):
-----------------------------------
1. Validate   → ContentSubmission            (ValidationError, no side effects)
2. Embed text → "{title} {body}"
3. Embed      → EmbeddingClient.embed         (EmbeddingError, nothing saved)
4. Store      → ContentStore.create_item      (StoreWriteError, nothing indexed)
                item saved with index_status=pending
5. Index      → VectorIndex.upsert            (IndexWriteError carrying item id)
                success → indexed, failure → failed (item stays saved)

The store write is the source of truth. An item whose index write failed
is listable but not searchable until `reindex()` or `reconcile_pending()`
writes its entry.

Every public method returns a PipelineResult instead of raising, so the
caller branches on `result.failure.kind`.
"""

from typing import Any, Mapping

from pydantic import ValidationError as PydanticValidationError

from recall.core.context import RequestContext
from recall.core.errors import (
    EmbeddingError,
    IndexWriteError,
    NotFoundError,
    PipelineResult,
    RecallError,
    StoreReadError,
    StoreWriteError,
    ValidationError,
)
from recall.core.logging import get_logger
from recall.models.content import ContentItem, IndexStatus
from recall.schemas.content import ContentSubmission
from recall.services.content_store import ContentStore
from recall.services.embeddings import EmbeddingClient
from recall.services.vector_index.base import IndexEntry, VectorIndex


logger = get_logger(__name__)


def build_embedding_text(title: str, body: str) -> str:
    """Text sent to the embedding model: title then body, one space between."""
    return f"{title} {body}"


class IngestionPipeline:
    """
    Ingest, reindex, delete and reconcile content items.

    Usage:
    ------
    pipeline = IngestionPipeline(store, embedder, index)
    result = await pipeline.ingest(ctx, {"type": "document", "title": "...", "content": "..."})
    if result.ok:
        item = result.value
    """

    def __init__(self, store: ContentStore, embedder: EmbeddingClient, index: VectorIndex):
        self.store = store
        self.embedder = embedder
        self.index = index

    # ========================================
    # Ingest
    # ========================================

    async def ingest(self, ctx: RequestContext, payload: Mapping[str, Any]) -> PipelineResult[ContentItem]:
        """
        Validate, embed, save and index one submission.

        Args:
            ctx: Verified caller; becomes the item's owner
            payload: Raw submission {type, title, content, tags?, link?}

        Returns:
            PipelineResult with the created ContentItem, or the failure of
            the first step that failed
        """
        try:
            submission = ContentSubmission.model_validate(payload)
        except PydanticValidationError as e:
            error = ValidationError.from_pydantic(e)
            logger.info(
                "content_rejected",
                owner_id=ctx.owner_id,
                request_id=ctx.request_id,
                fields=error.fields,
            )
            return PipelineResult.fail(error)

        text = build_embedding_text(submission.title, submission.content)
        try:
            vector = await self.embedder.embed(text)
        except EmbeddingError as e:
            logger.error(
                "content_embedding_failed",
                owner_id=ctx.owner_id,
                request_id=ctx.request_id,
                error=e.message,
            )
            return PipelineResult.fail(e)

        try:
            item = await self.store.create_item(ctx.owner_id, submission)
        except StoreWriteError as e:
            return PipelineResult.fail(e)

        result = await self._write_index(item, vector)
        if result.ok:
            logger.info(
                "content_ingested",
                item_id=item.id,
                owner_id=ctx.owner_id,
                request_id=ctx.request_id,
                type=item.type.value,
            )
        return result

    # ========================================
    # Reindex
    # ========================================

    async def reindex(self, ctx: RequestContext, item_id: str) -> PipelineResult[ContentItem]:
        """
        Recompute the embedding of an owned item and upsert it under the same id.

        Upsert is idempotent, so reindexing an already indexed item replaces
        its entry rather than adding a second one.
        """
        try:
            item = await self.store.get_item(ctx.owner_id, item_id)
        except (NotFoundError, StoreReadError) as e:
            return PipelineResult.fail(e)

        return await self._embed_and_index(item)

    async def _embed_and_index(self, item: ContentItem) -> PipelineResult[ContentItem]:
        try:
            vector = await self.embedder.embed(build_embedding_text(item.title, item.body))
        except EmbeddingError as e:
            logger.error("content_embedding_failed", item_id=item.id, error=e.message)
            await self._record_failure(item.id, e)
            return PipelineResult.fail(e)

        return await self._write_index(item, vector)

    async def _write_index(self, item: ContentItem, vector: list[float]) -> PipelineResult[ContentItem]:
        entry = IndexEntry(id=item.id, vector=vector, metadata=item.index_metadata())
        try:
            await self.index.upsert(entry)
        except IndexWriteError as e:
            logger.error("content_index_write_failed", item_id=item.id, error=e.message)
            await self._record_failure(item.id, e)
            return PipelineResult.fail(IndexWriteError(e.message, item_id=item.id))

        try:
            updated = await self.store.mark_index_status(item.id, IndexStatus.INDEXED)
        except StoreWriteError:
            # Entry is written; the reconciler re-upserts it and fixes the flag
            return PipelineResult.success(item)

        if updated is None:
            return await self._drop_orphan_entry(item.id)

        return PipelineResult.success(updated)

    async def _drop_orphan_entry(self, item_id: str) -> PipelineResult[ContentItem]:
        """The item was deleted while its entry was being written: remove the entry again."""
        logger.warning("index_entry_orphaned", item_id=item_id)
        try:
            await self.index.delete([item_id])
        except IndexWriteError as e:
            logger.error("orphan_index_entry_delete_failed", item_id=item_id, error=e.message)
            return PipelineResult.fail(IndexWriteError(e.message, item_id=item_id))

        return PipelineResult.fail(NotFoundError(f"Content {item_id} not found", item_id=item_id))

    async def _record_failure(self, item_id: str, error: RecallError) -> None:
        try:
            await self.store.mark_index_status(item_id, IndexStatus.FAILED, error=error.kind.value)
        except StoreWriteError:
            # Left pending; the reconciler picks it up after the grace period
            logger.warning("index_failure_not_recorded", item_id=item_id, error=error.kind.value)

    # ========================================
    # Delete
    # ========================================

    async def delete(self, ctx: RequestContext, item_id: str) -> PipelineResult[str]:
        """
        Delete an owned item and its index entry.

        The row delete is flushed, then the index entry is deleted, then the
        transaction commits. If the index delete fails the row delete is
        rolled back and the item stays listable and searchable.

        Returns:
            PipelineResult with the deleted item id
        """
        index_deleted = False
        try:
            async with self.store.delete_transaction(ctx.owner_id, item_id) as item:
                await self.index.delete([item.id])
                index_deleted = True
        except IndexWriteError as e:
            return PipelineResult.fail(IndexWriteError(e.message, item_id=item_id))
        except (NotFoundError, StoreReadError, StoreWriteError) as e:
            if index_deleted:
                # Row survived but its entry is gone
                await self._record_failure(item_id, e)
            return PipelineResult.fail(e)

        logger.info(
            "content_deleted",
            item_id=item_id,
            owner_id=ctx.owner_id,
            request_id=ctx.request_id,
        )
        return PipelineResult.success(item_id)

    # ========================================
    # Reconcile
    # ========================================

    async def reconcile_pending(self, limit: int, grace_seconds: int) -> PipelineResult[dict[str, int]]:
        """
        Index items left `failed`, or `pending` for longer than grace_seconds.

        Returns:
            PipelineResult with {"checked", "indexed", "failed"} counts
        """
        try:
            items = await self.store.list_needing_index(limit, grace_seconds)
        except StoreReadError as e:
            return PipelineResult.fail(e)

        summary = {"checked": len(items), "indexed": 0, "failed": 0}
        for item in items:
            result = await self._embed_and_index(item)
            if result.ok:
                summary["indexed"] += 1
            else:
                summary["failed"] += 1

        if items:
            logger.info("index_reconciled", **summary)
        return PipelineResult.success(summary)
