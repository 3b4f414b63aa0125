"""Prediction job processor - one claim/execute/record cycle at a time.

Flow per cycle:
  1. atomically claim one due pending job (store CAS)
  2. bump attempts and persist before running anything
  3. run the predictor with the job input
  4. record done / failed / pending-with-backoff

Store errors are not caught here: the cycle aborts and the driver retries on
its next tick. Everything the predictor does wrong ends up as job state.
"""

from __future__ import annotations

import json
import logging
import numbers
import random
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from engagehub.content.service import ContentPredictionSink
from engagehub.core.config import get_settings
from engagehub.core.metrics import MetricsSink, NullMetrics
from engagehub.predictions.models import DONE, FAILED, PENDING, PredictionJob
from engagehub.predictions.store import JobStore
from engagehub.worker.backoff import backoff_delay
from engagehub.worker.executor import PredictionExecutor

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    job_id: str
    status: str
    attempts: int
    next_run_at: Optional[datetime] = None


def parse_output(stdout: str) -> Dict[str, Any]:
    """JSON object from stdout, or ``{"raw": stdout}`` when it is anything else."""
    try:
        parsed = json.loads(stdout)
    except (TypeError, ValueError):
        return {"raw": stdout}
    if not isinstance(parsed, dict):
        return {"raw": stdout}
    return parsed


def safe_error_message(e: Exception) -> str:
    """str(e), falling back to the class name for exceptions with no message."""
    msg = str(e).strip()
    return msg or type(e).__name__


def extract_score(result: Dict[str, Any]) -> Optional[float]:
    score = result.get("score")
    if isinstance(score, bool) or not isinstance(score, numbers.Number):
        return None
    return score


class JobProcessor:
    """Claims and runs prediction jobs; safe to call from a timer."""

    def __init__(
        self,
        store: JobStore,
        executor: PredictionExecutor,
        metrics: Optional[MetricsSink] = None,
        content_sink: Optional[ContentPredictionSink] = None,
        *,
        max_attempts: Optional[int] = None,
        base_backoff_sec: Optional[float] = None,
        max_backoff_sec: Optional[float] = None,
        error_max_chars: Optional[int] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
        rng: Optional[random.Random] = None,
    ):
        settings = get_settings()
        self.store = store
        self.executor = executor
        self.metrics = metrics or NullMetrics()
        self.content_sink = content_sink
        self.max_attempts = settings.WORKER_MAX_ATTEMPTS if max_attempts is None else max_attempts
        self.base_backoff_sec = settings.WORKER_BASE_BACKOFF_SEC if base_backoff_sec is None else base_backoff_sec
        self.max_backoff_sec = settings.WORKER_MAX_BACKOFF_SEC if max_backoff_sec is None else max_backoff_sec
        self.error_max_chars = settings.JOBS_ERROR_MAX_CHARS if error_max_chars is None else error_max_chars
        self._clock = clock
        self._rng = rng
        self._cycle_lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._cycle_lock.locked()

    def process_one(self) -> Optional[ProcessResult]:
        """
        Run one cycle. Returns None when no job was due or a cycle is already
        running in this process.
        """
        if not self._cycle_lock.acquire(blocking=False):
            logger.debug("Previous processing cycle still running, skipping tick")
            return None
        try:
            return self._run_cycle()
        finally:
            self._cycle_lock.release()

    def _run_cycle(self) -> Optional[ProcessResult]:
        job = self.store.claim_due_job(self._clock())
        if job is None:
            return None

        # Durable before the predictor runs, so a crash still counts the attempt.
        job.attempts += 1
        self.store.save(job, self._clock())
        self._emit("incr_attempt")

        logger.info(f"Processing job {job.job_id} (attempt {job.attempts}/{self.max_attempts})")
        try:
            outcome = self.executor.execute(job.input)
        except Exception as e:
            logger.warning(f"Predictor could not run for job {job.job_id}: {e}")
            return self._record_failure(job, safe_error_message(e))

        if outcome.exit_code == 0:
            if outcome.stderr:
                logger.warning(f"Predictor stderr for job {job.job_id}: {outcome.stderr[:1000]}")
            return self._record_success(job, parse_output(outcome.stdout))

        err = outcome.stderr or outcome.stdout or f"Process exited with code {outcome.exit_code}"
        return self._record_failure(job, err)

    def _record_success(self, job: PredictionJob, result: Dict[str, Any]) -> ProcessResult:
        now = self._clock()
        job.status = DONE
        job.result = result
        job.processed_at = now
        job.last_error = None
        job.next_run_at = None
        self.store.save(job, now)
        self._emit("incr_processed")
        logger.info(f"Job {job.job_id} done after {job.attempts} attempt(s)")

        if job.content_id and extract_score(result) is not None and self.content_sink is not None:
            try:
                self.content_sink.record_last_prediction(job.content_id, result)
            except Exception as e:
                logger.warning(f"Failed to persist prediction to content {job.content_id}: {e}")

        return ProcessResult(job_id=job.job_id, status=job.status, attempts=job.attempts)

    def _record_failure(self, job: PredictionJob, error: str) -> ProcessResult:
        now = self._clock()
        job.last_error = str(error)[: self.error_max_chars]

        if job.attempts >= self.max_attempts:
            job.status = FAILED
            job.processed_at = now
            job.next_run_at = None
            self.store.save(job, now)
            self._emit("incr_failed")
            logger.warning(f"Job {job.job_id} failed after {job.attempts} attempts")
        else:
            delay_ms = backoff_delay(job.attempts, self.base_backoff_sec, self._rng, self.max_backoff_sec)
            job.status = PENDING
            job.next_run_at = now + timedelta(milliseconds=delay_ms)
            self.store.save(job, now)
            logger.info(f"Job {job.job_id} will retry in {round(delay_ms / 1000)}s (attempt {job.attempts})")

        return ProcessResult(
            job_id=job.job_id,
            status=job.status,
            attempts=job.attempts,
            next_run_at=job.next_run_at,
        )

    def _emit(self, name: str) -> None:
        try:
            getattr(self.metrics, name)()
        except Exception as e:
            logger.warning(f"Metrics sink error ({name}): {e}")
