"""
Celery tasks for vector index maintenance.

This module contains background tasks for:
- Reconciling items whose index write failed or never finished
- Reindexing one item, queued by POST /content when its index write failed

Each task run builds its own service container, runs the async pipeline
call to completion and closes the container again.
"""

import asyncio
import concurrent.futures
from typing import Any, Awaitable, Callable, Optional, TypeVar

from celery import Task

from recall.core.config import settings
from recall.core.context import RequestContext
from recall.core.errors import ErrorKind, StoreReadError
from recall.core.logging import get_logger
from recall.services.container import ServiceContainer, build_services
from recall.workers.celery_app import celery_app

logger = get_logger(__name__)

T = TypeVar("T")


# ========================================
# Async Helper
# ========================================

def run_async(coro):
    """
    Run async coroutine, handling both event loop and no event loop scenarios.

    This helper allows tasks to work in both:
    - Production (Celery worker with no event loop) - uses asyncio.run()
    - Tests (pytest with existing event loop) - runs in thread pool
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        # No event loop running - we're in a Celery worker
        return asyncio.run(coro)

    # Event loop is running - run in a new thread to avoid "loop already running"
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
        future = executor.submit(asyncio.run, coro)
        return future.result()


async def with_services(fn: Callable[[ServiceContainer], Awaitable[T]]) -> T:
    """Build a service container, run fn with it, always close it."""
    services = await build_services(settings, create_tables=False, rate_limiting=False)
    try:
        return await fn(services)
    finally:
        await services.close()


# ========================================
# Base Task Class
# ========================================

class IndexingTask(Task):
    """Base task class with retry logic for infrastructure failures."""

    autoretry_for = (StoreReadError, ConnectionError, OSError)
    retry_kwargs = {'max_retries': 3}
    retry_backoff = True
    retry_backoff_max = 600  # 10 minutes
    retry_jitter = True


# ========================================
# Tasks
# ========================================

@celery_app.task(
    base=IndexingTask,
    name='indexing.reconcile_pending_index',
    bind=True,
)
def reconcile_pending_index(
    self,
    limit: Optional[int] = None,
    grace_seconds: Optional[int] = None,
) -> dict[str, Any]:
    """
    Index items left `failed`, or `pending` past the grace period.

    Scheduled by Celery Beat every INDEX_RECONCILE_INTERVAL_MINUTES.

    Args:
        limit: Max items per run (default: INDEX_RECONCILE_BATCH_SIZE)
        grace_seconds: Age before a pending item counts as stuck
            (default: INDEX_RECONCILE_GRACE_SECONDS)

    Returns:
        {"checked": n, "indexed": n, "failed": n}
    """
    limit = limit or settings.INDEX_RECONCILE_BATCH_SIZE
    grace_seconds = settings.INDEX_RECONCILE_GRACE_SECONDS if grace_seconds is None else grace_seconds

    async def _run(services: ServiceContainer):
        return await services.ingestion.reconcile_pending(limit, grace_seconds)

    result = run_async(with_services(_run))
    if not result.ok:
        # Raising lets autoretry back off and try again
        raise StoreReadError(result.failure.message)

    logger.info("reconcile_task_completed", task_id=self.request.id, **result.value)
    return result.value


@celery_app.task(
    base=IndexingTask,
    name='indexing.reindex_content_item',
    bind=True,
)
def reindex_content_item(self, item_id: str, owner_id: str) -> dict[str, Any]:
    """
    Recompute the embedding of one item and upsert its index entry.

    Args:
        item_id: ContentItem id
        owner_id: uid of the item's owner

    Returns:
        {"item_id": ..., "status": "indexed" | "not_found" | "failed", "error": ...}
    """
    ctx = RequestContext(owner_id=owner_id)

    async def _run(services: ServiceContainer):
        return await services.ingestion.reindex(ctx, item_id)

    result = run_async(with_services(_run))

    if result.ok:
        return {"item_id": item_id, "status": "indexed", "error": None}

    status = "not_found" if result.failure.kind == ErrorKind.NOT_FOUND else "failed"
    logger.warning(
        "reindex_task_failed",
        task_id=self.request.id,
        item_id=item_id,
        error=result.failure.kind.value,
    )
    return {"item_id": item_id, "status": status, "error": result.failure.kind.value}
