"""Celery app bootstrap - optional driver for the prediction processor.

Deployments that already run Celery can use beat to fire the processing cycle
instead of running ``engagehub.worker.run_worker``. Both paths share the same
per-process ``JobProcessor``.
"""

from __future__ import annotations

from datetime import timedelta

from celery import Celery

from engagehub.core.config import get_settings


settings = get_settings()

DEFAULT_QUEUE = (settings.CELERY_DEFAULT_QUEUE or "engagehub-default").strip()

celery_app = Celery(
    "engagehub",
    broker=(settings.CELERY_BROKER_URL or "").strip() or None,
    include=["engagehub.worker.tasks"],
)

celery_app.conf.update(
    task_default_queue=DEFAULT_QUEUE,
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_reject_on_worker_lost=True,
)

if settings.CELERY_TASK_TIME_LIMIT:
    celery_app.conf.task_time_limit = int(settings.CELERY_TASK_TIME_LIMIT)


# =============================================================================
# Celery Beat Schedule - Periodic Tasks
# =============================================================================

celery_app.conf.beat_schedule = {
    "process-prediction-jobs": {
        "task": "engagehub.worker.tasks.process_prediction_jobs",
        "schedule": timedelta(milliseconds=settings.WORKER_POLL_INTERVAL_MS),
        "options": {"queue": DEFAULT_QUEUE},
    },
    "refresh-job-queue-depth": {
        "task": "engagehub.worker.tasks.refresh_job_queue_depth",
        "schedule": timedelta(minutes=1),
        "options": {"queue": DEFAULT_QUEUE},
    },
}
