"""
Bulk import orchestrator.

``process_import_job`` runs one import job to completion:

    downloading -> validating -> parsing -> inserting -> finalizing -> completed

Pre-flight problems (missing job, download failure, empty file, row ceiling,
tenant eligibility, missing columns) and datastore failures end the job as
``failed``; a bad row only adds a diagnostic and is skipped.
"""
import logging
import math
import time
import traceback
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from bulk_import.core.config import settings
from bulk_import.domain.imports.csv_parsing import (
    build_row,
    normalize_headers,
    parse_csv_line,
    split_lines,
)
from bulk_import.domain.imports.jobs import (
    complete_import_job,
    fail_import_job,
    get_import_job,
    get_organization_slug,
    mark_job_processing,
)
from bulk_import.domain.imports.mappers import RowMapper, get_row_mapper
from bulk_import.domain.imports.progress import ImportAccumulator, ProgressTracker
from bulk_import.domain.imports.types import (
    TERMINAL_STATUSES,
    ImportJobError,
    ImportType,
    ImportValidationError,
    JobNotFoundError,
    JobStage,
    MissingColumnsError,
)
from bulk_import.domain.imports.writers import BatchWriter, get_batch_writer
from bulk_import.integrations import storage

logger = logging.getLogger(__name__)


@dataclass
class RowOutcome:
    """Result of mapping one line: a record or an error message, never both."""
    row_number: int
    line: str
    record: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


@dataclass
class ValidatedFile:
    headers: List[str]
    data_lines: List[str]
    file_size_kb: int


def map_line(line: str, row_number: int, headers: List[str], mapper: RowMapper, job: Dict[str, Any]) -> RowOutcome:
    """Tokenize and map one data line, capturing any failure as the outcome's error."""
    try:
        values = parse_csv_line(line)
        record = mapper.map_row(build_row(headers, values), job)
    except Exception as exc:
        return RowOutcome(row_number=row_number, line=line, error=str(exc) or type(exc).__name__)
    return RowOutcome(row_number=row_number, line=line, record=record)


def validate_file(job: Dict[str, Any], content: bytes, mapper: RowMapper) -> ValidatedFile:
    """Run every pre-flight check; raises ImportValidationError before any row is mapped."""
    import_type = ImportType(job["import_type"])

    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ImportValidationError(f"CSV file is not valid UTF-8 text: {exc}") from exc

    lines = split_lines(text)
    if not lines:
        raise ImportValidationError("CSV file is empty")

    try:
        headers = normalize_headers(parse_csv_line(lines[0]), import_type)
    except ValueError as exc:
        raise ImportValidationError(f"Unable to parse header row: {exc}") from exc
    logger.info("Job %s headers detected: %s", job["id"], headers)

    data_lines = lines[1:]

    if import_type == ImportType.REDEFINE_REPOSITORY:
        if len(data_lines) > settings.repository_max_rows:
            raise ImportValidationError(
                f"CSV has {len(data_lines)} data rows; repository imports are limited "
                f"to {settings.repository_max_rows} rows per file"
            )
        slug = get_organization_slug(job["org_id"])
        if slug != settings.repository_exclusive_org_slug:
            raise ImportValidationError(
                "This import type is exclusive to the "
                f"'{settings.repository_exclusive_org_slug}' organization"
            )

    missing = mapper.missing_columns(headers)
    if missing:
        raise MissingColumnsError(missing)

    return ValidatedFile(
        headers=headers,
        data_lines=data_lines,
        file_size_kb=round(len(content) / 1024),
    )


def _flush_batch(
    writer: BatchWriter,
    batch: List[Dict[str, Any]],
    batch_number: int,
    accumulator: ImportAccumulator,
    tracker: ProgressTracker,
) -> None:
    result = writer.write_batch(batch, batch_number)
    accumulator.record_batch(result)
    tracker.batch_flushed(accumulator, batch_number, len(batch))


def _cleanup_source_file(file_path: str) -> bool:
    """Delete the uploaded file; failures are logged and never fail the job."""
    try:
        deleted = storage.delete_file(file_path)
    except Exception as exc:
        logger.error("Failed to delete source file %s: %s", file_path, exc)
        return False
    if deleted:
        logger.info("Source file %s deleted", file_path)
    else:
        logger.warning("Source file %s could not be deleted", file_path)
    return deleted


def _run_import(job: Dict[str, Any], accumulator: ImportAccumulator, started: float) -> Dict[str, Any]:
    job_id = job["id"]
    if job["status"] in TERMINAL_STATUSES:
        raise ImportJobError(f"Import job {job_id} is already {job['status']}")

    mapper = get_row_mapper(job["import_type"])
    writer = get_batch_writer(job["import_type"], job)
    tracker = ProgressTracker(job_id)
    batch_size = max(1, settings.import_batch_size)

    mark_job_processing(job_id)
    tracker.enter_stage(JobStage.DOWNLOADING, {"message": "Downloading file..."})
    content = storage.download_file(job["file_path"])
    logger.info("Job %s downloaded %s (%d bytes)", job_id, job["file_path"], len(content))

    tracker.enter_stage(JobStage.VALIDATING, {
        "message": "Validating CSV structure...",
        "file_size_kb": round(len(content) / 1024),
    })
    validated = validate_file(job, content, mapper)
    accumulator.total_rows = len(validated.data_lines)

    tracker.enter_stage(JobStage.PARSING, {
        "message": "Parsing CSV data...",
        "headers_found": len(validated.headers),
        "total_batches": math.ceil(accumulator.total_rows / batch_size),
    }, accumulator)

    batch: List[Dict[str, Any]] = []
    batch_number = 0
    for row_number, line in enumerate(validated.data_lines, start=1):
        outcome = map_line(line, row_number, validated.headers, mapper, job)
        if outcome.error is not None:
            accumulator.record_row_error(outcome.row_number, outcome.error, outcome.line)
        else:
            accumulator.record_mapped_row()
            batch.append(outcome.record)

        if len(batch) >= batch_size:
            batch_number += 1
            _flush_batch(writer, batch, batch_number, accumulator, tracker)
            batch = []
        else:
            tracker.row_progress(accumulator)

    if batch:
        batch_number += 1
        _flush_batch(writer, batch, batch_number, accumulator, tracker)

    logger.info(
        "Job %s processed: %d inserted, %d errors, %d duplicates skipped",
        job_id, accumulator.success_count, accumulator.error_count, accumulator.duplicates_skipped,
    )

    tracker.enter_stage(JobStage.FINALIZING, {
        "message": "Finalizing import...",
        "total_success": accumulator.success_count,
        "total_errors": accumulator.error_count,
    }, accumulator)

    file_cleaned_up = _cleanup_source_file(job["file_path"])

    duration = round(time.monotonic() - started)
    complete_import_job(
        job_id,
        counters=accumulator.counters(),
        error_details=accumulator.error_details(),
        file_cleaned_up=file_cleaned_up,
        stage_details={
            "message": f"Import completed in {duration}s",
            "total_success": accumulator.success_count,
            "total_errors": accumulator.error_count,
            "duplicates_skipped": accumulator.duplicates_skipped,
            "batches_completed": accumulator.batches_completed,
            "duration_seconds": duration,
        },
    )
    logger.info("Job %s completed in %ss", job_id, duration)

    return {
        "success": True,
        "processed": accumulator.success_count,
        "errors": accumulator.error_count,
    }


def process_import_job(job_id: str) -> Dict[str, Any]:
    """
    Run an import job end to end.

    Returns:
        ``{"success": True, "processed": <records written>, "errors": <rejected rows>}``

    Raises:
        Whatever ended the job. The job row has already been marked ``failed``
        and the source file is left in storage for inspection.
    """
    started = time.monotonic()
    accumulator = ImportAccumulator(
        max_error_details=settings.import_max_error_details,
        error_data_max_chars=settings.import_error_data_max_chars,
    )
    logger.info("Processing import job %s", job_id)

    try:
        job = get_import_job(job_id)
        if not job:
            raise JobNotFoundError(job_id)
        logger.info("Job %s: %s (type: %s)", job_id, job["file_name"], job["import_type"])
        return _run_import(job, accumulator, started)
    except Exception as exc:
        logger.error("Import job %s failed: %s", job_id, exc)
        fail_import_job(
            job_id,
            str(exc) or type(exc).__name__,
            stack=traceback.format_exc(),
            counters=accumulator.counters() if accumulator.processed_rows else None,
        )
        raise
