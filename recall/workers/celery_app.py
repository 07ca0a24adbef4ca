"""
Celery application instance and configuration.
"""

from celery import Celery
from celery.schedules import crontab

from recall.core.config import settings

# Create Celery application
celery_app = Celery(
    "recall",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["recall.tasks.indexing_tasks"],
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone=settings.CELERY_TIMEZONE,
    enable_utc=True,
    task_track_started=True,
    task_time_limit=10 * 60,  # 10 minutes
    task_soft_time_limit=8 * 60,  # 8 minutes
    result_expires=3600,  # 1 hour
)

# Celery Beat Schedule (Periodic Tasks)
celery_app.conf.beat_schedule = {
    'reconcile-pending-index': {
        'task': 'indexing.reconcile_pending_index',
        'schedule': crontab(minute=f'*/{settings.INDEX_RECONCILE_INTERVAL_MINUTES}'),
        'options': {'queue': 'indexing'},
    },
}

# Task routing
celery_app.conf.task_routes = {
    'indexing.*': {'queue': 'indexing'},
}
