"""Prediction jobs service (API side, async Motor)."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pymongo import ReturnDocument

from engagehub.core.config import get_settings
from engagehub.core.database import JOBS_COLLECTION, Database
from engagehub.core.exceptions import (
    BadRequestException,
    ForbiddenException,
    JobNotCancellableException,
    NotFoundException,
)
from engagehub.predictions.models import CANCELLED, PENDING
from engagehub.predictions.store import new_job_document


def _now() -> datetime:
    return datetime.utcnow()


def _validate_job_input(payload: Dict[str, Any]) -> None:
    # Inputs are echoed into every attempt's argv; keep them small.
    raw = json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str).encode("utf-8")
    if len(raw) > int(get_settings().JOBS_MAX_INPUT_BYTES):
        raise BadRequestException("Job input too large.")


def clamp_page(page: int, limit: int, *, default_limit: int, max_limit: int) -> Tuple[int, int]:
    page = max(0, int(page or 0))
    limit = int(limit) if limit else default_limit
    return page, min(max_limit, max(1, limit))


def _public(doc: dict) -> dict:
    doc = dict(doc)
    doc.pop("_id", None)
    return doc


class JobsService:
    @staticmethod
    def _collection():
        return Database.get_collection(JOBS_COLLECTION)

    @classmethod
    async def enqueue_job(
        cls,
        *,
        user_id: Optional[str],
        job_input: Dict[str, Any],
        content_id: Optional[str] = None,
    ) -> dict:
        _validate_job_input(job_input or {})
        doc = new_job_document(job_input, content_id=content_id, enqueued_by=user_id, now=_now())
        await cls._collection().insert_one(doc)
        return _public(doc)

    @classmethod
    async def get_job(cls, job_id: str) -> dict:
        doc = await cls._collection().find_one({"job_id": job_id})
        if not doc:
            raise NotFoundException("Not found")
        return _public(doc)

    @classmethod
    async def get_job_for_user(cls, job_id: str, user: dict) -> dict:
        """Owner, admins, or anyone for jobs nobody owns (script/worker inserts)."""
        doc = await cls.get_job(job_id)
        owner = doc.get("enqueued_by")
        if owner and owner != user["id"] and user.get("role") != "admin":
            raise ForbiddenException("Forbidden")
        return doc

    @classmethod
    async def _page(cls, query: dict, page: int, limit: int) -> Tuple[int, List[dict]]:
        total = await cls._collection().count_documents(query)
        cursor = cls._collection().find(query).sort("created_at", -1).skip(page * limit).limit(limit)
        docs = await cursor.to_list(length=limit)
        return total, [_public(d) for d in docs]

    @classmethod
    async def list_jobs_for_user(cls, user_id: str, page: int, limit: int) -> Tuple[int, List[dict]]:
        return await cls._page({"enqueued_by": user_id}, page, limit)

    @classmethod
    async def list_jobs(cls, status: Optional[str], page: int, limit: int) -> Tuple[int, List[dict]]:
        query = {"status": status} if status else {}
        return await cls._page(query, page, limit)

    @classmethod
    async def _cancel(cls, query: dict, cancelled_by: str) -> Optional[dict]:
        now = _now()
        doc = await cls._collection().find_one_and_update(
            {**query, "status": PENDING},
            {"$set": {"status": CANCELLED, "cancelled_by": cancelled_by, "cancelled_at": now, "updated_at": now}},
            return_document=ReturnDocument.AFTER,
        )
        return _public(doc) if doc else None

    @classmethod
    async def cancel_job_for_user(cls, job_id: str, user_id: str) -> dict:
        """Owner-only cancel; succeeds only while the job is still pending."""
        doc = await cls._cancel({"job_id": job_id, "enqueued_by": user_id}, cancelled_by=user_id)
        if doc:
            return doc

        existing = await cls._collection().find_one({"job_id": job_id})
        if not existing:
            raise NotFoundException("Not found")
        if existing.get("enqueued_by") != user_id:
            raise ForbiddenException("Forbidden")
        raise JobNotCancellableException(existing.get("status"))

    @classmethod
    async def cancel_job_as_admin(cls, job_id: str, admin_id: Optional[str]) -> dict:
        """Admin cancel of any pending job. Jobs already processing are left alone."""
        doc = await cls._cancel({"job_id": job_id}, cancelled_by=admin_id or "admin")
        if doc:
            return doc

        existing = await cls._collection().find_one({"job_id": job_id})
        if not existing:
            raise NotFoundException("Not found")
        raise JobNotCancellableException(existing.get("status"))

    @classmethod
    async def count_pending(cls) -> int:
        return await cls._collection().count_documents({"status": PENDING})
