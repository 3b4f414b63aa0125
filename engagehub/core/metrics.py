"""Prometheus metrics for the prediction job queue."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Callable, Optional, Protocol

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    PlatformCollector,
    ProcessCollector,
)

logger = logging.getLogger(__name__)


class MetricsSink(Protocol):
    def incr_attempt(self, by: int = 1) -> None: ...

    def incr_processed(self) -> None: ...

    def incr_failed(self) -> None: ...

    def set_queue_depth(self, value: float) -> None: ...


class PrometheusMetrics:
    """Counters and the queue depth gauge, registered on their own registry."""

    def __init__(self, registry: Optional[CollectorRegistry] = None, *, default_collectors: bool = False):
        self.registry = registry or CollectorRegistry()
        if default_collectors:
            ProcessCollector(registry=self.registry)
            PlatformCollector(registry=self.registry)

        self.jobs_processed = Counter(
            "engagehub_jobs_processed",
            "Total number of prediction jobs processed (successful)",
            registry=self.registry,
        )
        self.jobs_failed = Counter(
            "engagehub_jobs_failed",
            "Total number of prediction jobs failed",
            registry=self.registry,
        )
        self.job_attempts = Counter(
            "engagehub_job_attempts",
            "Total number of job attempts (including retries)",
            registry=self.registry,
        )
        self.job_queue_depth = Gauge(
            "engagehub_job_queue_depth",
            "Number of pending prediction jobs in the queue",
            registry=self.registry,
        )

    def incr_attempt(self, by: int = 1) -> None:
        self.job_attempts.inc(by)

    def incr_processed(self) -> None:
        self.jobs_processed.inc()

    def incr_failed(self) -> None:
        self.jobs_failed.inc()

    def set_queue_depth(self, value: float) -> None:
        self.job_queue_depth.set(value)


class NullMetrics:
    """Sink that drops everything (scripts, tests)."""

    def incr_attempt(self, by: int = 1) -> None:
        pass

    def incr_processed(self) -> None:
        pass

    def incr_failed(self) -> None:
        pass

    def set_queue_depth(self, value: float) -> None:
        pass


def refresh_queue_depth(sink: MetricsSink, count_pending: Callable[[], int]) -> None:
    """Set the queue depth gauge; NaN marks the store as unreachable."""
    try:
        sink.set_queue_depth(count_pending())
    except Exception as e:
        logger.warning(f"Could not refresh job queue depth: {e}")
        sink.set_queue_depth(float("nan"))


async def refresh_queue_depth_async(sink: MetricsSink, count_pending) -> None:
    """Async variant for the API process (Motor-backed count)."""
    try:
        sink.set_queue_depth(await count_pending())
    except Exception as e:
        logger.warning(f"Could not refresh job queue depth: {e}")
        sink.set_queue_depth(float("nan"))


@lru_cache
def get_metrics() -> PrometheusMetrics:
    """Process-wide metrics instance."""
    return PrometheusMetrics(default_collectors=True)
