"""Prediction job models."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


JobStatus = Literal["pending", "processing", "done", "failed", "cancelled"]
Platform = Literal["youtube", "instagram", "tiktok", "other"]

PENDING = "pending"
PROCESSING = "processing"
DONE = "done"
FAILED = "failed"
CANCELLED = "cancelled"

TERMINAL_STATUSES = frozenset({DONE, FAILED, CANCELLED})


class PredictionJob(BaseModel):
    """MongoDB document schema for the prediction_jobs collection."""

    job_id: str
    status: JobStatus = PENDING
    input: Dict[str, Any] = Field(default_factory=dict)
    result: Optional[Dict[str, Any]] = None
    last_error: Optional[str] = None
    attempts: int = 0
    next_run_at: Optional[datetime] = None
    content_id: Optional[str] = None
    enqueued_by: Optional[str] = None
    cancelled_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    processing_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None

    @classmethod
    def from_doc(cls, doc: dict) -> "PredictionJob":
        return cls.model_validate({k: v for k, v in doc.items() if k != "_id"})

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


# ==================== API ====================


class JobCreateRequest(BaseModel):
    content_id: Optional[str] = Field(default=None, description="Content the prediction is for")
    title: str = ""
    description: str = ""
    platform: Platform = "other"
    topics: List[str] = Field(default_factory=list)


class JobCreateResponse(BaseModel):
    job_id: str
    status: JobStatus


class JobResponse(BaseModel):
    job_id: str
    status: JobStatus
    content_id: Optional[str] = None
    enqueued_by: Optional[str] = None
    input: Dict[str, Any] = Field(default_factory=dict)
    result: Optional[Dict[str, Any]] = None
    last_error: Optional[str] = None
    attempts: int = 0
    next_run_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    processed_at: Optional[datetime] = None

    @classmethod
    def from_doc(cls, doc: dict) -> "JobResponse":
        return cls.model_validate({k: v for k, v in doc.items() if k != "_id"})


class JobListResponse(BaseModel):
    total: int
    page: int
    limit: int
    jobs: List[JobResponse]


class JobCancelResponse(BaseModel):
    ok: bool = True
    job: JobResponse


class PredictRequest(BaseModel):
    title: str = ""
    description: str = ""
    platform: Platform = "other"
    topics: List[str] = Field(default_factory=list)


class PredictResponse(BaseModel):
    """Either ``result`` (parsed JSON object) or ``raw`` (truncated stdout)."""

    result: Optional[Dict[str, Any]] = None
    raw: Optional[str] = None
