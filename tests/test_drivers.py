from datetime import datetime, timedelta

from engagehub.core.config import get_settings
from engagehub.predictions.models import DONE, PENDING, PROCESSING
from engagehub.worker import run_worker, tasks

from conftest import StubExecutor, succeeding


def test_celery_task_runs_one_cycle(store, make_processor, monkeypatch):
    job = store.insert({"title": "beat"})
    processor = make_processor(StubExecutor(succeeding()))
    monkeypatch.setattr(tasks, "build_processor", lambda: processor)

    out = tasks.process_prediction_jobs()

    assert out == {"processed": True, "job_id": job.job_id, "status": DONE, "attempts": 1}
    assert tasks.process_prediction_jobs() == {"processed": False}


def test_celery_queue_depth_task(store, metrics, make_processor, monkeypatch):
    store.insert({})
    monkeypatch.setattr(tasks, "build_processor", lambda: make_processor(StubExecutor(succeeding())))

    tasks.refresh_job_queue_depth()

    assert metrics.queue_depth == 1


def test_stale_recovery_is_off_by_default(store, jobs_collection, make_processor, monkeypatch):
    monkeypatch.setattr(get_settings(), "JOBS_STALE_PROCESSING_MINUTES", 0)
    job = store.insert({})
    jobs_collection.update_one(
        {"job_id": job.job_id},
        {"$set": {"status": PROCESSING, "processing_at": datetime.utcnow() - timedelta(days=1)}},
    )

    assert run_worker.recover_stale_jobs(make_processor(StubExecutor(succeeding()))) == 0
    assert store.find_by_id(job.job_id).status == PROCESSING


def test_stale_recovery_when_enabled(store, jobs_collection, make_processor, monkeypatch):
    monkeypatch.setattr(get_settings(), "JOBS_STALE_PROCESSING_MINUTES", 15)
    job = store.insert({})
    jobs_collection.update_one(
        {"job_id": job.job_id},
        {"$set": {"status": PROCESSING, "processing_at": datetime.utcnow() - timedelta(hours=1), "attempts": 1}},
    )

    assert run_worker.recover_stale_jobs(make_processor(StubExecutor(succeeding()))) == 1
    assert store.find_by_id(job.job_id).status == PENDING
