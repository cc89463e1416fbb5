"""
Request and response models for the import endpoints.

Field names of the function payloads (``importJobId``, ``jobId``) follow the
browser client's camelCase contract.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class ImportJobRequest(BaseModel):
    """Body of the trigger and processing calls."""
    importJobId: Optional[str] = None


class ProcessImportResponse(BaseModel):
    success: bool
    processed: int
    errors: int


class ProcessImportErrorResponse(BaseModel):
    error: str = "Processing failed"
    message: str


class TriggerImportResponse(BaseModel):
    success: bool
    message: str
    jobId: str


class ImportJobInfo(BaseModel):
    """Snapshot of an import job as seen by pollers."""
    id: str
    org_id: str
    user_id: str
    file_name: str
    file_path: str
    import_type: str
    target_id: Optional[str] = None
    status: str
    current_stage: Optional[str] = None
    stage_details: Optional[Dict[str, Any]] = None
    total_rows: Optional[int] = 0
    processed_rows: Optional[int] = 0
    success_count: Optional[int] = 0
    error_count: Optional[int] = 0
    error_details: Optional[List[Dict[str, Any]]] = None
    file_cleaned_up: Optional[bool] = None
    file_cleanup_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class ImportJobResponse(BaseModel):
    """Response wrapper for a single import job."""
    success: bool
    job: ImportJobInfo


class ImportJobListResponse(BaseModel):
    """Response wrapper for a list of import jobs."""
    success: bool
    jobs: List[ImportJobInfo]
    total_count: int
    limit: int
    offset: int
