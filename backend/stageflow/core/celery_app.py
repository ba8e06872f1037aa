"""
Celery configuration for background tasks
"""

from celery import Celery
from stageflow.core.config import settings
import logging

logger = logging.getLogger(__name__)

celery_app = Celery(
    "stageflow",
    broker=settings.REDIS_URL or "redis://localhost:6379/0",
    backend=settings.REDIS_URL or "redis://localhost:6379/0",
    include=["stageflow.tasks"]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 minutes
    task_soft_time_limit=25 * 60,  # 25 minutes
    worker_prefetch_multiplier=2,
    worker_max_tasks_per_child=1000,
)

celery_app.conf.task_routes = {
    "stageflow.tasks.pipeline.*": {"queue": "pipeline"},
}
celery_app.conf.task_annotations = {
    "stageflow.tasks.pipeline.propagate_task_status": {"rate_limit": "120/m"},
}

# Scheduled repair sweep
if settings.RESYNC_INTERVAL_MINUTES > 0:
    celery_app.conf.beat_schedule = {
        "resync-completed-tasks": {
            "task": "stageflow.tasks.pipeline.resync_completed_tasks",
            "schedule": settings.RESYNC_INTERVAL_MINUTES * 60.0,
        },
    }
    logger.info(f"Stage resync scheduled every {settings.RESYNC_INTERVAL_MINUTES} minute(s)")
