"""
Shared vocabulary of the import pipeline: import types, lifecycle enums and
the exception hierarchy used to tell fatal failures from per-row ones.
"""
from enum import Enum


class ImportType(str, Enum):
    """Which destination table an import job feeds."""
    CONTACTS = "contacts"
    REDEFINE_REPOSITORY = "redefine_repository"
    INVENTORY = "inventory"
    EMAIL_RECIPIENTS = "email_recipients"
    WHATSAPP_RECIPIENTS = "whatsapp_recipients"


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class JobStage(str, Enum):
    """Coarse phases reported to whoever polls the job, in execution order."""
    DOWNLOADING = "downloading"
    VALIDATING = "validating"
    PARSING = "parsing"
    INSERTING = "inserting"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FAILED = "failed"


STAGE_ORDER = [
    JobStage.DOWNLOADING,
    JobStage.VALIDATING,
    JobStage.PARSING,
    JobStage.INSERTING,
    JobStage.FINALIZING,
    JobStage.COMPLETED,
]

TERMINAL_STATUSES = {JobStatus.COMPLETED.value, JobStatus.FAILED.value}


class ImportJobError(Exception):
    """Base class for failures that end an import job."""
    pass


class JobNotFoundError(ImportJobError):
    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Import job not found: {job_id}")


class ImportValidationError(ImportJobError):
    """Raised when the file or job fails a pre-flight check; no row is processed."""
    pass


class MissingColumnsError(ImportValidationError):
    def __init__(self, missing_columns):
        self.missing_columns = list(missing_columns)
        super().__init__(f"Missing required columns: {', '.join(self.missing_columns)}")


class BatchWriteError(ImportJobError):
    """Raised when the datastore rejects a batch; aborts the whole job."""

    def __init__(self, table_name: str, batch_number: int, cause: Exception):
        self.table_name = table_name
        self.batch_number = batch_number
        self.cause = cause
        super().__init__(f"Batch {batch_number} insert into '{table_name}' failed: {cause}")


class RowMappingError(ValueError):
    """A single row could not be turned into a record; the row is skipped."""
    pass


class CsvLineError(RowMappingError):
    """The raw line could not be tokenized."""
    pass
