import threading
from datetime import datetime, timedelta

from engagehub.predictions.models import CANCELLED, DONE, FAILED, PENDING, PROCESSING
from engagehub.predictions.store import JobStore

from conftest import SerializedCollection


def test_insert_creates_pending_job_without_next_run(store, jobs_collection):
    job = store.insert({"title": "hello"}, content_id="c1", enqueued_by="u1")

    doc = jobs_collection.find_one({"job_id": job.job_id})
    assert doc["status"] == PENDING
    assert doc["attempts"] == 0
    assert "next_run_at" not in doc
    assert doc["content_id"] == "c1"
    assert doc["enqueued_by"] == "u1"


def test_claim_moves_job_to_processing(store):
    job = store.insert({"title": "a"})

    claimed = store.claim_due_job(datetime.utcnow())

    assert claimed.job_id == job.job_id
    assert claimed.status == PROCESSING
    assert claimed.processing_at is not None
    assert store.find_by_id(job.job_id).status == PROCESSING


def test_second_claim_of_single_job_finds_nothing(store):
    store.insert({"title": "a"})

    assert store.claim_due_job() is not None
    assert store.claim_due_job() is None
    assert store.claim_due_job() is None


def test_concurrent_claims_have_exactly_one_winner(jobs_collection):
    store = JobStore(SerializedCollection(jobs_collection))
    job = store.insert({"title": "contended"})

    results = []
    barrier = threading.Barrier(8)

    def claim():
        barrier.wait()
        results.append(store.claim_due_job())

    threads = [threading.Thread(target=claim) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    winners = [r for r in results if r is not None]
    assert len(results) == 8
    assert len(winners) == 1
    assert winners[0].job_id == job.job_id


def test_claim_skips_jobs_not_yet_due(store, jobs_collection):
    job = store.insert({"title": "later"})
    now = datetime.utcnow()
    jobs_collection.update_one({"job_id": job.job_id}, {"$set": {"next_run_at": now + timedelta(minutes=5)}})

    assert store.claim_due_job(now) is None
    assert store.claim_due_job(now + timedelta(minutes=6)) is not None


def test_claim_accepts_null_next_run_at(store, jobs_collection):
    job = store.insert({"title": "null"})
    jobs_collection.update_one({"job_id": job.job_id}, {"$set": {"next_run_at": None}})

    assert store.claim_due_job().job_id == job.job_id


def test_claim_never_picks_terminal_or_cancelled_jobs(store, jobs_collection):
    for status in (CANCELLED, DONE, FAILED, PROCESSING):
        job = store.insert({"status": status})
        jobs_collection.update_one({"job_id": job.job_id}, {"$set": {"status": status}})

    assert store.claim_due_job() is None


def test_every_pending_job_gets_claimed(store):
    ids = {store.insert({"n": i}).job_id for i in range(6)}

    claimed = set()
    while True:
        job = store.claim_due_job()
        if job is None:
            break
        claimed.add(job.job_id)

    assert claimed == ids


def test_save_sets_fields_and_unsets_cleared_ones(store, jobs_collection):
    job = store.insert({"title": "x"})
    job.last_error = "boom"
    job.next_run_at = datetime.utcnow()
    store.save(job)
    assert "last_error" in jobs_collection.find_one({"job_id": job.job_id})

    before = job.updated_at
    job.last_error = None
    job.next_run_at = None
    job.status = DONE
    job.result = {"score": 1}
    store.save(job, before + timedelta(seconds=1))

    doc = jobs_collection.find_one({"job_id": job.job_id})
    assert doc["status"] == DONE
    assert doc["result"] == {"score": 1}
    assert "last_error" not in doc
    assert "next_run_at" not in doc
    assert doc["updated_at"] > before


def test_find_by_id_unknown_returns_none(store):
    assert store.find_by_id("does-not-exist") is None


def test_count_pending(store, jobs_collection):
    a = store.insert({})
    store.insert({})
    jobs_collection.update_one({"job_id": a.job_id}, {"$set": {"status": CANCELLED}})

    assert store.count_pending() == 1


def test_recover_stale_releases_or_fails(store, jobs_collection):
    now = datetime.utcnow()
    stuck = store.insert({"n": 1})
    exhausted = store.insert({"n": 2})
    fresh = store.insert({"n": 3})
    old = now - timedelta(hours=1)
    jobs_collection.update_one({"job_id": stuck.job_id}, {"$set": {"status": PROCESSING, "processing_at": old, "attempts": 1}})
    jobs_collection.update_one({"job_id": exhausted.job_id}, {"$set": {"status": PROCESSING, "processing_at": old, "attempts": 5}})
    jobs_collection.update_one({"job_id": fresh.job_id}, {"$set": {"status": PROCESSING, "processing_at": now, "attempts": 1}})

    recovered = store.recover_stale(now - timedelta(minutes=15), max_attempts=5)

    assert recovered == 2
    assert store.find_by_id(stuck.job_id).status == PENDING
    assert store.find_by_id(stuck.job_id).attempts == 1
    assert store.find_by_id(exhausted.job_id).status == FAILED
    assert store.find_by_id(fresh.job_id).status == PROCESSING
