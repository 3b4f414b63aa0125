"""Celery tasks (sync) for the prediction queue."""

from __future__ import annotations

import logging
from typing import Any, Dict

from engagehub.core.metrics import refresh_queue_depth
from engagehub.worker.celery_app import celery_app
from engagehub.worker.run_worker import build_processor

logger = logging.getLogger(__name__)


@celery_app.task(name="engagehub.worker.tasks.process_prediction_jobs", acks_late=True)
def process_prediction_jobs() -> Dict[str, Any]:
    """
    Run one processing cycle.

    Beat fires this on the poll interval; a tick landing on a busy process is
    a no-op thanks to the processor's reentrancy guard.
    """
    processor = build_processor()
    if processor.busy:
        return {"processed": False, "reason": "busy"}

    result = processor.process_one()
    if result is None:
        return {"processed": False}
    return {
        "processed": True,
        "job_id": result.job_id,
        "status": result.status,
        "attempts": result.attempts,
    }


@celery_app.task(name="engagehub.worker.tasks.refresh_job_queue_depth", acks_late=True)
def refresh_job_queue_depth() -> Dict[str, Any]:
    processor = build_processor()
    refresh_queue_depth(processor.metrics, processor.store.count_pending)
    return {"ok": True}
