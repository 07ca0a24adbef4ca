"""
Tests for index maintenance Celery tasks.

This module tests:
- Periodic reconciliation of failed / stuck items
- On-demand reindexing of a single item
- Retry behaviour when the content store is unavailable
- Beat schedule and routing

Tasks are called directly (not through a broker). build_services is
patched to return a mocked container; the pipeline behaviour itself is
covered in tests/services/test_ingestion.py.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from recall.core.errors import (
    EmbeddingError,
    ErrorKind,
    NotFoundError,
    PipelineResult,
    StoreReadError,
)
from recall.tasks.indexing_tasks import (
    IndexingTask,
    reconcile_pending_index,
    reindex_content_item,
    run_async,
)
from recall.workers.celery_app import celery_app


# ========================================
# Fixtures
# ========================================

@pytest.fixture
def mock_services():
    services = MagicMock()
    services.ingestion.reconcile_pending = AsyncMock(
        return_value=PipelineResult.success({"checked": 2, "indexed": 2, "failed": 0})
    )
    services.ingestion.reindex = AsyncMock(
        return_value=PipelineResult.success(SimpleNamespace(id="item-1"))
    )
    services.close = AsyncMock()
    return services


@pytest.fixture
def mock_build_services(mock_services):
    with patch(
        "recall.tasks.indexing_tasks.build_services",
        AsyncMock(return_value=mock_services),
    ) as build:
        yield build


# ========================================
# Reconcile
# ========================================

class TestReconcilePendingIndex:

    def test_returns_summary(self, mock_services, mock_build_services):
        summary = reconcile_pending_index(limit=10, grace_seconds=60)

        assert summary == {"checked": 2, "indexed": 2, "failed": 0}
        mock_services.ingestion.reconcile_pending.assert_awaited_once_with(10, 60)
        mock_services.close.assert_awaited_once()

    def test_defaults_from_settings(self, mock_services, mock_build_services, test_settings):
        reconcile_pending_index()

        mock_services.ingestion.reconcile_pending.assert_awaited_once_with(
            test_settings.INDEX_RECONCILE_BATCH_SIZE,
            test_settings.INDEX_RECONCILE_GRACE_SECONDS,
        )

    def test_builds_services_without_rate_limiter(self, mock_build_services):
        reconcile_pending_index()

        kwargs = mock_build_services.call_args.kwargs
        assert kwargs["create_tables"] is False
        assert kwargs["rate_limiting"] is False

    def test_store_failure_raises_for_retry(self, mock_services, mock_build_services):
        mock_services.ingestion.reconcile_pending.return_value = PipelineResult.fail(
            StoreReadError("database down")
        )

        with pytest.raises(StoreReadError):
            reconcile_pending_index()

        mock_services.close.assert_awaited_once()

    def test_closes_services_when_pipeline_raises(self, mock_services, mock_build_services):
        mock_services.ingestion.reconcile_pending.side_effect = ConnectionError("lost")

        with pytest.raises(ConnectionError):
            reconcile_pending_index()

        mock_services.close.assert_awaited_once()


# ========================================
# Reindex
# ========================================

class TestReindexContentItem:

    def test_reindex(self, mock_services, mock_build_services):
        result = reindex_content_item("item-1", "owner-1")

        assert result == {"item_id": "item-1", "status": "indexed", "error": None}
        ctx, item_id = mock_services.ingestion.reindex.call_args.args
        assert ctx.owner_id == "owner-1"
        assert item_id == "item-1"

    def test_not_found(self, mock_services, mock_build_services):
        mock_services.ingestion.reindex.return_value = PipelineResult.fail(NotFoundError("gone"))

        result = reindex_content_item("item-1", "owner-2")

        assert result == {"item_id": "item-1", "status": "not_found", "error": ErrorKind.NOT_FOUND.value}

    def test_embedding_failure(self, mock_services, mock_build_services):
        mock_services.ingestion.reindex.return_value = PipelineResult.fail(EmbeddingError("slow"))

        result = reindex_content_item("item-1", "owner-1")

        assert result == {"item_id": "item-1", "status": "failed", "error": "embedding_failed"}


# ========================================
# Helpers & Configuration
# ========================================

class TestRunAsync:

    def test_without_running_loop(self):
        async def answer():
            return 42

        assert run_async(answer()) == 42

    @pytest.mark.asyncio
    async def test_inside_running_loop(self):
        async def answer():
            return 42

        assert run_async(answer()) == 42


class TestCeleryConfiguration:

    def test_beat_schedule(self):
        entry = celery_app.conf.beat_schedule["reconcile-pending-index"]

        assert entry["task"] == "indexing.reconcile_pending_index"
        assert entry["options"] == {"queue": "indexing"}

    def test_tasks_registered(self):
        assert "indexing.reconcile_pending_index" in celery_app.tasks
        assert "indexing.reindex_content_item" in celery_app.tasks

    def test_routing(self):
        assert celery_app.conf.task_routes == {"indexing.*": {"queue": "indexing"}}

    def test_retry_policy(self):
        assert StoreReadError in IndexingTask.autoretry_for
        assert IndexingTask.retry_kwargs == {"max_retries": 3}
