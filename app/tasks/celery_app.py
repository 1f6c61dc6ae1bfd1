"""Celery application configuration."""
from celery import Celery

from app.config import get_settings

settings = get_settings()

celery_app = Celery(
    "cms_hooks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["app.tasks.hook_tasks"],
)

celery_app.conf.update(
    task_track_started=True,
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # A retry task is only acknowledged once it ran; a crashed worker hands it back
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    beat_schedule={
        "sweep-due-hook-retries": {
            "task": "app.tasks.hook_tasks.sweep_due_retries",
            "schedule": settings.retry_sweep_interval_seconds,
        },
    },
)
