"""Prediction queue API endpoints."""

from __future__ import annotations

import asyncio
import json
import logging

from fastapi import APIRouter, Depends, Path, Query

from engagehub.core.config import get_settings
from engagehub.core.dependencies import get_current_user
from engagehub.core.exceptions import AppException, BadRequestException
from engagehub.predictions.models import (
    JobCancelResponse,
    JobCreateRequest,
    JobCreateResponse,
    JobListResponse,
    JobResponse,
    PredictRequest,
    PredictResponse,
)
from engagehub.predictions.service import JobsService, clamp_page
from engagehub.worker.executor import PredictionExecutor, SubprocessExecutor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/predictions", tags=["Predictions"])


def get_predictor() -> PredictionExecutor:
    return SubprocessExecutor()


@router.post("/queue", response_model=JobCreateResponse)
async def enqueue_prediction(
    body: JobCreateRequest,
    current_user: dict = Depends(get_current_user),
):
    """Queue a virality prediction for a piece of content."""
    content_id = (body.content_id or "").strip()
    if not content_id:
        raise BadRequestException("Missing content_id")

    job = await JobsService.enqueue_job(
        user_id=current_user["id"],
        content_id=content_id,
        job_input={
            "title": body.title,
            "description": body.description,
            "platform": body.platform,
            "topics": body.topics,
        },
    )
    return JobCreateResponse(job_id=job["job_id"], status=job["status"])


@router.get("/queue/my", response_model=JobListResponse)
async def list_my_jobs(
    page: int = Query(0),
    limit: int = Query(20),
    current_user: dict = Depends(get_current_user),
):
    """Current user's jobs, newest first."""
    page, limit = clamp_page(page, limit, default_limit=20, max_limit=get_settings().JOBS_LIST_MAX_LIMIT)
    total, docs = await JobsService.list_jobs_for_user(current_user["id"], page, limit)
    return JobListResponse(total=total, page=page, limit=limit, jobs=[JobResponse.from_doc(d) for d in docs])


@router.get("/queue/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: str = Path(..., description="Job ID"),
    current_user: dict = Depends(get_current_user),
):
    doc = await JobsService.get_job_for_user(job_id, current_user)
    return JobResponse.from_doc(doc)


@router.post("/queue/{job_id}/cancel", response_model=JobCancelResponse)
async def cancel_job(
    job_id: str = Path(..., description="Job ID"),
    current_user: dict = Depends(get_current_user),
):
    """Cancel one of your own jobs while it is still pending."""
    doc = await JobsService.cancel_job_for_user(job_id, current_user["id"])
    return JobCancelResponse(job=JobResponse.from_doc(doc))


@router.post("/predict", response_model=PredictResponse, response_model_exclude_none=True)
async def predict_now(
    body: PredictRequest,
    current_user: dict = Depends(get_current_user),
    predictor: PredictionExecutor = Depends(get_predictor),
):
    """Run the model synchronously, outside the queue. Meant for small demos."""
    try:
        outcome = await asyncio.to_thread(predictor.execute, body.model_dump())
    except Exception as e:
        logger.error(f"Synchronous predict failed for user {current_user['id']}: {e}")
        raise AppException("AI predict error")

    if outcome.stderr:
        logger.warning(f"Predictor stderr: {outcome.stderr[:1000]}")
    try:
        parsed = json.loads(outcome.stdout)
    except ValueError:
        parsed = None
    if isinstance(parsed, dict):
        return PredictResponse(result=parsed)
    return PredictResponse(raw=outcome.stdout[: get_settings().JOBS_ERROR_MAX_CHARS])
