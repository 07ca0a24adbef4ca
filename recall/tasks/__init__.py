"""
Celery tasks for background processing.
"""

from recall.tasks.indexing_tasks import (
    reconcile_pending_index,
    reindex_content_item,
)

__all__ = [
    "reconcile_pending_index",
    "reindex_content_item",
]
