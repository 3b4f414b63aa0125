"""Admin job management endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from engagehub.core.config import get_settings
from engagehub.core.dependencies import require_admin
from engagehub.predictions.models import JobCancelResponse, JobListResponse, JobResponse, JobStatus
from engagehub.predictions.service import JobsService, clamp_page


router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/jobs", response_model=JobListResponse)
async def list_jobs(
    status: Optional[JobStatus] = Query(None),
    page: int = Query(0),
    limit: int = Query(50),
    admin: dict = Depends(require_admin),
):
    page, limit = clamp_page(page, limit, default_limit=50, max_limit=get_settings().JOBS_ADMIN_LIST_MAX_LIMIT)
    total, docs = await JobsService.list_jobs(status, page, limit)
    return JobListResponse(total=total, page=page, limit=limit, jobs=[JobResponse.from_doc(d) for d in docs])


@router.post("/jobs/{job_id}/cancel", response_model=JobCancelResponse)
async def cancel_job(
    job_id: str = Path(..., description="Job ID"),
    admin: dict = Depends(require_admin),
):
    """Force-cancel a pending job regardless of owner."""
    doc = await JobsService.cancel_job_as_admin(job_id, admin.get("id"))
    return JobCancelResponse(job=JobResponse.from_doc(doc))
