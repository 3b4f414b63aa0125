"""Prediction job store (sync PyMongo, used by the worker).

The atomic claim in ``claim_due_job`` is the only thing that keeps two worker
processes from running the same job; there is no other lock.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.collection import Collection

from engagehub.core.database import JOBS_COLLECTION, get_pymongo_db
from engagehub.predictions.models import FAILED, PENDING, PROCESSING, PredictionJob

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.utcnow()


def due_filter(now: datetime) -> dict:
    """Pending jobs whose next_run_at is missing, null or already passed."""
    return {
        "status": PENDING,
        "$or": [
            {"next_run_at": {"$exists": False}},
            {"next_run_at": None},
            {"next_run_at": {"$lte": now}},
        ],
    }


def new_job_document(
    job_input: Dict[str, Any],
    *,
    content_id: Optional[str] = None,
    enqueued_by: Optional[str] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Fresh pending job: attempts=0 and no next_run_at."""
    now = now or _now()
    oid = ObjectId()
    doc = {
        "_id": oid,
        "job_id": str(oid),
        "status": PENDING,
        "input": job_input or {},
        "attempts": 0,
        "created_at": now,
        "updated_at": now,
    }
    if content_id:
        doc["content_id"] = str(content_id)
    if enqueued_by:
        doc["enqueued_by"] = str(enqueued_by)
    return doc


class JobStore:
    """Durable job collection with compare-and-swap claim semantics."""

    def __init__(self, collection: Optional[Collection] = None):
        self._collection = collection if collection is not None else get_pymongo_db()[JOBS_COLLECTION]

    @property
    def collection(self) -> Collection:
        return self._collection

    def insert(self, job_input: Dict[str, Any], **kwargs) -> PredictionJob:
        doc = new_job_document(job_input, **kwargs)
        self._collection.insert_one(doc)
        return PredictionJob.from_doc(doc)

    def claim_due_job(self, now: Optional[datetime] = None) -> Optional[PredictionJob]:
        """
        Atomically move one due pending job to processing and return it.

        A random eligible job is sampled first so no job starves behind others;
        if another worker wins that one, any other eligible job is taken instead.
        """
        now = now or _now()
        update = {"$set": {"status": PROCESSING, "processing_at": now, "updated_at": now}}

        doc = None
        sampled = list(
            self._collection.aggregate(
                [
                    {"$match": due_filter(now)},
                    {"$sample": {"size": 1}},
                    {"$project": {"job_id": 1}},
                ]
            )
        )
        if sampled:
            doc = self._collection.find_one_and_update(
                {**due_filter(now), "job_id": sampled[0]["job_id"]},
                update,
                return_document=ReturnDocument.AFTER,
            )
        if doc is None:
            doc = self._collection.find_one_and_update(
                due_filter(now),
                update,
                return_document=ReturnDocument.AFTER,
            )
        if not doc:
            return None
        return PredictionJob.from_doc(doc)

    def save(self, job: PredictionJob, now: Optional[datetime] = None) -> PredictionJob:
        """Persist every mutable field; optional fields set to None are unset."""
        job.updated_at = now or _now()
        data = job.model_dump(exclude={"job_id", "created_at"})
        update: Dict[str, Any] = {"$set": {k: v for k, v in data.items() if v is not None}}
        unset = {k: "" for k, v in data.items() if v is None}
        if unset:
            update["$unset"] = unset
        self._collection.update_one({"job_id": job.job_id}, update)
        return job

    def find_by_id(self, job_id: str) -> Optional[PredictionJob]:
        doc = self._collection.find_one({"job_id": str(job_id)})
        return PredictionJob.from_doc(doc) if doc else None

    def count_pending(self) -> int:
        return self._collection.count_documents({"status": PENDING})

    def recover_stale(self, older_than: datetime, max_attempts: int, now: Optional[datetime] = None) -> int:
        """
        Release jobs left in processing by a crashed worker.

        Jobs with attempts left go back to pending; exhausted ones become failed.
        Each release is conditional on the job still being in the same claim.
        """
        now = now or _now()
        recovered = 0
        cursor = self._collection.find({"status": PROCESSING, "processing_at": {"$lt": older_than}})
        for doc in list(cursor):
            message = f"Recovered on startup: job was processing since {doc.get('processing_at')}"
            if int(doc.get("attempts") or 0) >= max_attempts:
                update = {
                    "$set": {"status": FAILED, "last_error": message, "processed_at": now, "updated_at": now},
                    "$unset": {"next_run_at": ""},
                }
            else:
                update = {
                    "$set": {"status": PENDING, "last_error": message, "updated_at": now},
                    "$unset": {"next_run_at": ""},
                }
            result = self._collection.update_one(
                {"job_id": doc["job_id"], "status": PROCESSING, "processing_at": doc.get("processing_at")},
                update,
            )
            if result.modified_count:
                recovered += 1
                logger.warning(f"Recovered stale job {doc['job_id']} (claimed at {doc.get('processing_at')})")
        if recovered:
            logger.info(f"Recovered {recovered} stale job(s)")
        return recovered
