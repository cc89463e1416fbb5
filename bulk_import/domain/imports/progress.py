"""
Counters and progress reporting for a running import.

``ImportAccumulator`` holds every counter and the bounded diagnostics list
for one job and is threaded through the parse loop; ``ProgressTracker``
decides when those counters are written back to the job row.
"""
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional

from bulk_import.core.config import settings
from bulk_import.domain.imports.jobs import update_import_job
from bulk_import.domain.imports.types import STAGE_ORDER, JobStage
from bulk_import.domain.imports.writers import BatchResult

logger = logging.getLogger(__name__)


@dataclass
class ImportAccumulator:
    total_rows: int = 0
    processed_rows: int = 0
    success_count: int = 0
    error_count: int = 0
    duplicates_skipped: int = 0
    batches_completed: int = 0
    max_error_details: int = 100
    error_data_max_chars: int = 100
    errors: Deque[Dict[str, Any]] = field(default_factory=deque)

    def __post_init__(self):
        self.errors = deque(self.errors, maxlen=self.max_error_details)

    def record_mapped_row(self) -> None:
        self.processed_rows += 1

    def record_row_error(self, row_number: int, message: str, line: str) -> None:
        self.processed_rows += 1
        self.error_count += 1
        self.errors.append({
            "row": row_number,
            "error": message,
            "data": line[:self.error_data_max_chars],
        })

    def record_batch(self, result: BatchResult) -> None:
        self.batches_completed += 1
        self.success_count += result.inserted
        self.duplicates_skipped += result.skipped

    def counters(self) -> Dict[str, int]:
        return {
            "total_rows": self.total_rows,
            "processed_rows": self.processed_rows,
            "success_count": self.success_count,
            "error_count": self.error_count,
        }

    def error_details(self) -> List[Dict[str, Any]]:
        return list(self.errors)


class ProgressTracker:
    """
    Persists stage transitions and counters for one job.

    Stage transitions and batch flushes are always written. Row-level updates
    are throttled to one write per ``min_interval`` seconds.
    """

    def __init__(
        self,
        job_id: str,
        *,
        min_interval: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.job_id = job_id
        self.min_interval = settings.import_progress_interval_seconds if min_interval is None else min_interval
        self._clock = clock
        self._last_write = clock()
        self.current_stage: Optional[JobStage] = None

    def enter_stage(self, stage: JobStage, details: Dict[str, Any], accumulator: Optional[ImportAccumulator] = None) -> None:
        self._advance(stage)
        logger.info("Job %s -> %s: %s", self.job_id, stage.value, details.get("message", ""))

        fields: Dict[str, Any] = {"current_stage": stage.value, "stage_details": details}
        if accumulator is not None:
            fields.update(accumulator.counters())
        self._write(fields)

    def row_progress(self, accumulator: ImportAccumulator) -> bool:
        """Persist row counters if the throttle window has elapsed; returns whether it wrote."""
        if self._clock() - self._last_write < self.min_interval:
            return False
        stage = self.current_stage or JobStage.PARSING
        self._write({
            **accumulator.counters(),
            "current_stage": stage.value,
            "stage_details": {
                "message": f"Processed {accumulator.processed_rows} of {accumulator.total_rows} rows",
                "batches_completed": accumulator.batches_completed,
                "duplicates_skipped": accumulator.duplicates_skipped,
            },
        })
        return True

    def batch_flushed(self, accumulator: ImportAccumulator, batch_number: int, batch_size: int) -> None:
        self._advance(JobStage.INSERTING)
        self._write({
            **accumulator.counters(),
            "current_stage": JobStage.INSERTING.value,
            "stage_details": {
                "message": f"Inserted batch {batch_number} ({batch_size} records)",
                "current_batch": batch_number,
                "batches_completed": accumulator.batches_completed,
                "duplicates_skipped": accumulator.duplicates_skipped,
            },
        })

    def _advance(self, stage: JobStage) -> None:
        if self.current_stage is not None and STAGE_ORDER.index(stage) < STAGE_ORDER.index(self.current_stage):
            raise RuntimeError(
                f"Import job {self.job_id} cannot move from stage "
                f"'{self.current_stage.value}' back to '{stage.value}'"
            )
        self.current_stage = stage

    def _write(self, fields: Dict[str, Any]) -> None:
        update_import_job(self.job_id, only_active=True, **fields)
        self._last_write = self._clock()
