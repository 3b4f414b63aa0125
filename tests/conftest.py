import random
import threading
from datetime import datetime
from typing import List, Optional

import mongomock
import pytest

from engagehub.predictions.store import JobStore
from engagehub.worker.executor import ExecutionOutcome
from engagehub.worker.processor import JobProcessor


class StubExecutor:
    """Returns canned outcomes (or raises) and records every input."""

    def __init__(self, *outcomes, error: Optional[Exception] = None):
        self.outcomes = list(outcomes)
        self.error = error
        self.calls: List[dict] = []

    def execute(self, job_input):
        self.calls.append(job_input)
        if self.error is not None:
            raise self.error
        if len(self.outcomes) > 1:
            return self.outcomes.pop(0)
        return self.outcomes[0]


class RecordingMetrics:
    def __init__(self):
        self.attempts = 0
        self.processed = 0
        self.failed = 0
        self.queue_depth = None

    def incr_attempt(self, by: int = 1) -> None:
        self.attempts += by

    def incr_processed(self) -> None:
        self.processed += 1

    def incr_failed(self) -> None:
        self.failed += 1

    def set_queue_depth(self, value: float) -> None:
        self.queue_depth = value

    def snapshot(self):
        return (self.attempts, self.processed, self.failed, self.queue_depth)


class SerializedCollection:
    """Applies each collection call under one lock, like a server would per document."""

    def __init__(self, collection):
        self._collection = collection
        self._lock = threading.Lock()

    def __getattr__(self, name):
        attr = getattr(self._collection, name)
        if not callable(attr):
            return attr

        def locked(*args, **kwargs):
            with self._lock:
                return attr(*args, **kwargs)

        return locked


class RecordingContentSink:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls = []

    def record_last_prediction(self, content_id, result):
        self.calls.append((content_id, result))
        if self.error is not None:
            raise self.error


def failing(stderr="simulated error", code=1):
    return ExecutionOutcome(exit_code=code, stdout="", stderr=stderr)


def succeeding(stdout='{"score": 0.9}', stderr=""):
    return ExecutionOutcome(exit_code=0, stdout=stdout, stderr=stderr)


@pytest.fixture
def mongo_db():
    return mongomock.MongoClient()["engagehub_test"]


@pytest.fixture
def jobs_collection(mongo_db):
    return mongo_db["prediction_jobs"]


@pytest.fixture
def store(jobs_collection):
    return JobStore(jobs_collection)


@pytest.fixture
def metrics():
    return RecordingMetrics()


@pytest.fixture
def make_processor(store, metrics):
    def _make(executor, **kwargs):
        kwargs.setdefault("max_attempts", 5)
        kwargs.setdefault("base_backoff_sec", 5)
        kwargs.setdefault("error_max_chars", 2000)
        kwargs.setdefault("rng", random.Random(7))
        return JobProcessor(store, executor, metrics, **kwargs)

    return _make


def make_due(collection, job_id: str, when: Optional[datetime] = None):
    """Pretend time passed: move next_run_at into the past."""
    collection.update_one(
        {"job_id": job_id},
        {"$set": {"next_run_at": when or datetime(2000, 1, 1)}},
    )
