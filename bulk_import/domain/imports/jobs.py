"""
Persistent tracking for long-running import jobs.

The job row is the only channel through which the pipeline talks to the
outside world: the UI polls it for ``status``, ``current_stage``,
``stage_details`` and the counters.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, insert, select, update
from sqlalchemy.orm import Session

from bulk_import.db.models import ImportJob, Organization
from bulk_import.db.session import get_engine
from bulk_import.domain.imports.types import (
    TERMINAL_STATUSES,
    ImportType,
    JobStage,
    JobStatus,
)

logger = logging.getLogger(__name__)

import_jobs = ImportJob.__table__

JOB_FIELDS = [column.name for column in import_jobs.columns]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _row_to_job(row: Any) -> Dict[str, Any]:
    return {field: row[field] for field in JOB_FIELDS}


def create_import_job(
    *,
    org_id: str,
    user_id: str,
    file_name: str,
    file_path: str,
    import_type: str,
    target_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Persist a new pending import job for an uploaded file."""
    import_type = ImportType(import_type).value
    job_id = str(uuid.uuid4())
    now = _utcnow()

    with get_engine().begin() as conn:
        conn.execute(
            insert(import_jobs).values(
                id=job_id,
                org_id=org_id,
                user_id=user_id,
                file_name=file_name,
                file_path=file_path,
                import_type=import_type,
                target_id=target_id,
                status=JobStatus.PENDING.value,
                stage_details={"message": "Waiting to start"},
                total_rows=0,
                processed_rows=0,
                success_count=0,
                error_count=0,
                error_details=[],
                file_cleaned_up=False,
                created_at=now,
                updated_at=now,
            )
        )

    job = get_import_job(job_id)
    if not job:
        raise RuntimeError("Failed to create import job")
    return job


def get_import_job(job_id: str) -> Optional[Dict[str, Any]]:
    """Fetch a single job by ID."""
    with get_engine().connect() as conn:
        row = conn.execute(
            select(import_jobs).where(import_jobs.c.id == job_id)
        ).mappings().first()
        return _row_to_job(row) if row else None


def list_import_jobs(
    *,
    org_id: Optional[str] = None,
    limit: int = 50,
    offset: int = 0
) -> Tuple[List[Dict[str, Any]], int]:
    """List jobs newest first, optionally filtered by organization."""
    query = select(import_jobs)
    count_query = select(func.count()).select_from(import_jobs)
    if org_id:
        query = query.where(import_jobs.c.org_id == org_id)
        count_query = count_query.where(import_jobs.c.org_id == org_id)

    query = query.order_by(import_jobs.c.created_at.desc()).limit(limit).offset(offset)

    with get_engine().connect() as conn:
        rows = conn.execute(query).mappings().all()
        total = conn.execute(count_query).scalar() or 0
        return [_row_to_job(row) for row in rows], total


def update_import_job(
    job_id: str,
    *,
    only_active: bool = False,
    **fields: Any
) -> bool:
    """
    Write the given columns on a job and bump ``updated_at``.

    With ``only_active`` the write is skipped when the job already reached a
    terminal status, so a finished job is never moved backwards.

    Returns:
        True when a row was updated.
    """
    unknown = set(fields) - set(JOB_FIELDS)
    if unknown:
        raise ValueError(f"Unknown import job fields: {sorted(unknown)}")

    values = dict(fields)
    values["updated_at"] = _utcnow()

    stmt = update(import_jobs).where(import_jobs.c.id == job_id).values(**values)
    if only_active:
        stmt = stmt.where(import_jobs.c.status.notin_(TERMINAL_STATUSES))

    with get_engine().begin() as conn:
        result = conn.execute(stmt)
        return result.rowcount > 0


def mark_job_processing(job_id: str, message: str = "Starting import...") -> bool:
    """Move a pending (or already started) job into ``processing``."""
    return update_import_job(
        job_id,
        only_active=True,
        status=JobStatus.PROCESSING.value,
        current_stage=JobStage.DOWNLOADING.value,
        started_at=_utcnow(),
        stage_details={"message": message},
    )


def complete_import_job(
    job_id: str,
    *,
    counters: Dict[str, int],
    error_details: List[Dict[str, Any]],
    stage_details: Dict[str, Any],
    file_cleaned_up: bool,
) -> bool:
    """Mark a job as completed with its final counters and diagnostics."""
    now = _utcnow()
    return update_import_job(
        job_id,
        only_active=True,
        status=JobStatus.COMPLETED.value,
        current_stage=JobStage.COMPLETED.value,
        completed_at=now,
        error_details=error_details,
        stage_details=stage_details,
        file_cleaned_up=file_cleaned_up,
        file_cleanup_at=now if file_cleaned_up else None,
        **counters,
    )


def fail_import_job(
    job_id: str,
    error_message: str,
    *,
    stack: Optional[str] = None,
    counters: Optional[Dict[str, int]] = None,
) -> bool:
    """
    Best-effort fail handler so pollers see a terminal state instead of a stuck job.

    Never raises: a failure while recording the failure is only logged.
    """
    now = _utcnow()
    fields: Dict[str, Any] = {
        "status": JobStatus.FAILED.value,
        "current_stage": JobStage.FAILED.value,
        "completed_at": now,
        "error_details": [{
            "error": error_message,
            "stack": stack,
            "timestamp": now.isoformat(),
        }],
        "stage_details": {
            "error": error_message,
            "message": f"Import failed: {error_message}",
        },
    }
    if counters:
        fields.update(counters)

    try:
        return update_import_job(job_id, only_active=True, **fields)
    except Exception as exc:
        logger.error("Unable to mark import job %s failed: %s", job_id, exc)
        return False


def get_organization_slug(org_id: str) -> Optional[str]:
    """Look up the tenant slug used for import-type eligibility checks."""
    with Session(get_engine()) as db:
        organization = db.get(Organization, org_id)
        return organization.slug if organization else None
