from unittest.mock import MagicMock

from docflow.processor.exceptions import (
    DocumentNotFoundError,
    ExtractionTimeoutError,
    UnsupportedMimeTypeError,
)
from docflow.queue.models import Job, JobKind, JobPriority, JobStatus
from docflow.queue.timings import ProcessingTimes
from docflow.worker.job_runner import JobOutcome, JobRunner


def _make_runner() -> tuple[JobRunner, MagicMock, MagicMock]:
    """Create a JobRunner with mocked dependencies."""
    mock_processor = MagicMock()
    mock_tracker = MagicMock()
    runner = JobRunner(mock_processor, mock_tracker, backoff_base_seconds=2.0)
    return runner, mock_processor, mock_tracker

def _make_job(attempts: int = 1, max_attempts: int = 3) -> Job:
    return Job(
        id="job-1",
        kind=JobKind.EXTRACT,
        document_id="doc-1",
        priority=JobPriority.NORMAL,
        status=JobStatus.ACTIVE,
        attempts=attempts,
        max_attempts=max_attempts,
    )

class TestSuccessfulProcessing:
    def test_calls_processor_without_writing_result(self) -> None:
        runner, mock_processor, mock_tracker = _make_runner()

        outcome = runner.run(_make_job())

        mock_tracker.mark_processing.assert_called_once_with("doc-1")
        mock_processor.process.assert_called_once_with("doc-1")
        mock_tracker.mark_completed.assert_not_called()
        assert outcome.status is JobStatus.COMPLETED
        assert outcome.result is mock_processor.process.return_value

    def test_records_processing_time(self) -> None:
        timings = ProcessingTimes()
        runner = JobRunner(MagicMock(), MagicMock(), timings=timings)

        runner.run(_make_job())

        assert runner.timings is timings
        assert timings.average() is not None


class TestRetryableFailure:
    def test_requeues_with_backoff(self) -> None:
        runner, mock_processor, mock_tracker = _make_runner()
        mock_processor.process.side_effect = ExtractionTimeoutError("timeout")

        outcome = runner.run(_make_job(attempts=2))

        assert outcome.status is JobStatus.WAITING
        assert outcome.retry_delay_seconds == 4.0
        assert outcome.error_message == "timeout"
        mock_tracker.mark_failed.assert_not_called()

    def test_unknown_errors_are_retried(self) -> None:
        runner, mock_processor, _tracker = _make_runner()
        mock_processor.process.side_effect = RuntimeError("boom")

        outcome = runner.run(_make_job(attempts=1))

        assert outcome.status is JobStatus.WAITING
        assert outcome.retry_delay_seconds == 2.0

    def test_fails_when_attempts_exhausted(self) -> None:
        runner, mock_processor, mock_tracker = _make_runner()
        mock_processor.process.side_effect = ExtractionTimeoutError("timeout")

        outcome = runner.run(_make_job(attempts=3))

        assert outcome.status is JobStatus.FAILED
        assert outcome.error_message == "timeout"
        mock_tracker.mark_failed.assert_not_called()


class TestValidationFailure:
    def test_fails_on_first_attempt_without_backoff(self) -> None:
        runner, mock_processor, _tracker = _make_runner()
        mock_processor.process.side_effect = UnsupportedMimeTypeError(
            "Unsupported MIME type: image/png"
        )

        outcome = runner.run(_make_job(attempts=1))

        assert outcome.status is JobStatus.FAILED
        assert outcome.retry_delay_seconds == 0.0
        assert outcome.error_message == "Unsupported MIME type: image/png"


class TestRecordOutcome:
    def test_completed_writes_extraction(self) -> None:
        runner, _processor, mock_tracker = _make_runner()
        result = MagicMock()
        outcome = JobOutcome(status=JobStatus.COMPLETED, result=result)

        assert runner.record_outcome(_make_job(), outcome) is outcome
        mock_tracker.mark_completed.assert_called_once_with("doc-1", result)

    def test_failed_marks_document(self) -> None:
        runner, _processor, mock_tracker = _make_runner()
        outcome = JobOutcome(status=JobStatus.FAILED, error_message="Unsupported MIME type")

        runner.record_outcome(_make_job(), outcome)

        mock_tracker.mark_failed.assert_called_once_with("doc-1", "Unsupported MIME type")

    def test_retry_leaves_document_alone(self) -> None:
        runner, _processor, mock_tracker = _make_runner()

        runner.record_outcome(_make_job(), JobOutcome(status=JobStatus.WAITING))

        mock_tracker.mark_completed.assert_not_called()
        mock_tracker.mark_failed.assert_not_called()

    def test_failed_result_write_becomes_retry(self) -> None:
        runner, _processor, mock_tracker = _make_runner()
        mock_tracker.mark_completed.side_effect = RuntimeError("db down")
        outcome = JobOutcome(status=JobStatus.COMPLETED, result=MagicMock())

        recorded = runner.record_outcome(_make_job(attempts=1), outcome)

        assert recorded.status is JobStatus.WAITING
        assert recorded.error_message == "db down"

    def test_failed_result_write_on_last_attempt_fails_document(self) -> None:
        runner, _processor, mock_tracker = _make_runner()
        mock_tracker.mark_completed.side_effect = RuntimeError("db down")
        outcome = JobOutcome(status=JobStatus.COMPLETED, result=MagicMock())

        recorded = runner.record_outcome(_make_job(attempts=3), outcome)

        assert recorded.status is JobStatus.FAILED
        mock_tracker.mark_failed.assert_called_once_with("doc-1", "db down")

    def test_missing_record_does_not_break_failure_path(self) -> None:
        runner, _processor, mock_tracker = _make_runner()
        mock_tracker.mark_failed.side_effect = DocumentNotFoundError("File not found: doc-1")

        recorded = runner.record_outcome(
            _make_job(), JobOutcome(status=JobStatus.FAILED, error_message="gone")
        )

        assert recorded.status is JobStatus.FAILED
