"""
Tests for the import accumulator and throttled progress persistence.
"""

import pytest

from bulk_import.domain.imports.jobs import get_import_job
from bulk_import.domain.imports.progress import ImportAccumulator, ProgressTracker
from bulk_import.domain.imports.types import JobStage
from bulk_import.domain.imports.writers import BatchResult


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestImportAccumulator:

    def test_error_details_keep_most_recent(self):
        acc = ImportAccumulator(max_error_details=3, error_data_max_chars=5)
        for row in range(1, 6):
            acc.record_row_error(row, f"bad row {row}", "abcdefghij")

        details = acc.error_details()
        assert [d["row"] for d in details] == [3, 4, 5]
        assert details[0]["data"] == "abcde"
        assert acc.error_count == 5
        assert acc.processed_rows == 5

    def test_counters(self):
        acc = ImportAccumulator(total_rows=4)
        acc.record_mapped_row()
        acc.record_mapped_row()
        acc.record_row_error(3, "oops", "x")
        acc.record_batch(BatchResult(inserted=1, skipped=1))

        assert acc.counters() == {
            "total_rows": 4,
            "processed_rows": 3,
            "success_count": 1,
            "error_count": 1,
        }
        assert acc.duplicates_skipped == 1
        assert acc.batches_completed == 1


class TestProgressTracker:

    def test_row_updates_are_throttled(self, make_job):
        job = make_job("first_name\nAlice\n")
        clock = FakeClock()
        tracker = ProgressTracker(job["id"], min_interval=5.0, clock=clock)
        tracker.enter_stage(JobStage.PARSING, {"message": "Parsing CSV data..."})

        acc = ImportAccumulator(total_rows=10)
        acc.record_mapped_row()
        clock.now = 4.9
        assert tracker.row_progress(acc) is False
        assert get_import_job(job["id"])["processed_rows"] == 0

        clock.now = 5.0
        assert tracker.row_progress(acc) is True
        stored = get_import_job(job["id"])
        assert stored["processed_rows"] == 1
        assert stored["stage_details"]["message"] == "Processed 1 of 10 rows"

        clock.now = 6.0
        assert tracker.row_progress(acc) is False

    def test_stage_cannot_move_backwards(self, make_job):
        job = make_job("first_name\nAlice\n")
        tracker = ProgressTracker(job["id"], min_interval=0)
        tracker.enter_stage(JobStage.PARSING, {"message": "Parsing"})
        tracker.batch_flushed(ImportAccumulator(), 1, 10)

        with pytest.raises(RuntimeError):
            tracker.enter_stage(JobStage.VALIDATING, {"message": "Validating"})

    def test_terminal_job_is_not_overwritten(self, make_job):
        from bulk_import.domain.imports.jobs import update_import_job

        job = make_job("first_name\nAlice\n")
        update_import_job(job["id"], status="failed", current_stage="failed")

        ProgressTracker(job["id"]).enter_stage(JobStage.INSERTING, {"message": "late write"})

        assert get_import_job(job["id"])["current_stage"] == "failed"
