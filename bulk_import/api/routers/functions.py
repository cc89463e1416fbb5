"""
Browser-callable entry points of the import pipeline.

``/functions/bulk-import-trigger`` marks a job as started and queues it;
``/functions/process-bulk-import`` runs a job synchronously and answers with
the thin success/failure envelope.
"""
import logging

from fastapi import APIRouter, BackgroundTasks
from fastapi.responses import JSONResponse

from bulk_import.api.schemas.jobs import (
    ImportJobRequest,
    ProcessImportErrorResponse,
    ProcessImportResponse,
    TriggerImportResponse,
)
from bulk_import.domain.imports.jobs import get_import_job, mark_job_processing
from bulk_import.domain.imports.processor import process_import_job

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/functions", tags=["bulk-import"])


def run_import_in_background(job_id: str) -> None:
    """Background task wrapper; the failure is already recorded on the job row."""
    try:
        process_import_job(job_id)
    except Exception as exc:
        logger.error("Background import %s ended with failure: %s", job_id, exc)


@router.post(
    "/process-bulk-import",
    response_model=ProcessImportResponse,
    responses={500: {"model": ProcessImportErrorResponse}},
)
def process_bulk_import_endpoint(request: ImportJobRequest):
    """
    Process one import job to completion.

    Returns ``{success, processed, errors}`` on completion, or a 500 with
    ``{error: "Processing failed", message}`` when the job failed.
    """
    try:
        if not request.importJobId:
            raise ValueError("Missing importJobId")
        result = process_import_job(request.importJobId)
    except Exception as exc:
        return JSONResponse(
            status_code=500,
            content=ProcessImportErrorResponse(message=str(exc) or "Unknown error").model_dump(),
        )
    return ProcessImportResponse(**result)


@router.post("/bulk-import-trigger", status_code=202, response_model=TriggerImportResponse)
def bulk_import_trigger_endpoint(request: ImportJobRequest, background_tasks: BackgroundTasks):
    """
    Start an import job in the background.

    Parameters:
    - importJobId: ID of a pending import job

    Returns:
    - 202 once the job is marked ``processing`` and queued
    - 400 when the id is missing, 404 when the job does not exist,
      409 when the job already finished
    """
    if not request.importJobId:
        return JSONResponse(status_code=400, content={"error": "Missing importJobId"})

    job = get_import_job(request.importJobId)
    if not job:
        return JSONResponse(status_code=404, content={"error": "Import job not found"})

    if not mark_job_processing(job["id"]):
        return JSONResponse(
            status_code=409,
            content={"error": f"Import job is already {job['status']}"},
        )

    logger.info("Queued import job %s (%s)", job["id"], job["file_name"])
    background_tasks.add_task(run_import_in_background, job["id"])

    return TriggerImportResponse(
        success=True,
        message="Import started in background",
        jobId=job["id"],
    )
