"""
Prediction worker process.

Connects to MongoDB and polls for due prediction jobs until SIGINT/SIGTERM.
Run: python -m engagehub.worker.run_worker
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timedelta
from functools import lru_cache

from prometheus_client import start_http_server
from pymongo.errors import PyMongoError

from engagehub.content.service import ContentService
from engagehub.core.config import get_settings
from engagehub.core.metrics import get_metrics, refresh_queue_depth
from engagehub.predictions.store import JobStore
from engagehub.worker.executor import SubprocessExecutor
from engagehub.worker.processor import JobProcessor
from engagehub.worker.scheduler import SchedulerDriver

logger = logging.getLogger(__name__)


@lru_cache
def build_processor() -> JobProcessor:
    """One processor per process, so its reentrancy guard covers every driver."""
    return JobProcessor(
        store=JobStore(),
        executor=SubprocessExecutor(),
        metrics=get_metrics(),
        content_sink=ContentService(),
    )


def recover_stale_jobs(processor: JobProcessor) -> int:
    minutes = get_settings().JOBS_STALE_PROCESSING_MINUTES
    if minutes <= 0:
        return 0
    cutoff = datetime.utcnow() - timedelta(minutes=minutes)
    return processor.store.recover_stale(cutoff, processor.max_attempts)


def main() -> int:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        processor = build_processor()
        processor.store.collection.database.client.admin.command("ping")
        recover_stale_jobs(processor)
    except PyMongoError as e:
        logger.error(f"Worker failed to start: {e}")
        return 1
    logger.info("Worker connected to MongoDB")

    if settings.WORKER_METRICS_PORT:
        start_http_server(settings.WORKER_METRICS_PORT, registry=processor.metrics.registry)
        logger.info(f"Worker metrics on :{settings.WORKER_METRICS_PORT}/metrics")

    def cycle():
        result = processor.process_one()
        refresh_queue_depth(processor.metrics, processor.store.count_pending)
        return result

    driver = SchedulerDriver(cycle, settings.WORKER_POLL_INTERVAL_MS)
    driver.install_signal_handlers()
    logger.info(f"Prediction worker started (interval {settings.WORKER_POLL_INTERVAL_MS}ms)")
    driver.run_forever()
    return 0


if __name__ == "__main__":
    sys.exit(main())
