"""
Endpoints for tracking import job progress.
"""
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from bulk_import.api.schemas.jobs import ImportJobListResponse, ImportJobResponse
from bulk_import.domain.imports.jobs import get_import_job, list_import_jobs

router = APIRouter(tags=["import-jobs"])


@router.get("/import-jobs/{job_id}", response_model=ImportJobResponse)
def get_import_job_endpoint(job_id: str):
    job = get_import_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return ImportJobResponse(success=True, job=job)


@router.get("/import-jobs", response_model=ImportJobListResponse)
def list_import_jobs_endpoint(
    org_id: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    jobs, total = list_import_jobs(org_id=org_id, limit=limit, offset=offset)
    return ImportJobListResponse(
        success=True,
        jobs=jobs,
        total_count=total,
        limit=limit,
        offset=offset,
    )
