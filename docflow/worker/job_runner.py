import time
from dataclasses import dataclass

from docflow.logging.logger import Log
from docflow.processor.exceptions import DocumentNotFoundError
from docflow.processor.models import ExtractionResult
from docflow.processor.processor import Processor
from docflow.queue.models import Job, JobStatus
from docflow.queue.timings import ProcessingTimes
from docflow.retry.backoff import ErrorKind, decide
from docflow.tracker.status_tracker import StatusTracker


@dataclass(frozen=True)
class JobOutcome:
    """What the queue should do with a job after one attempt.

    status is COMPLETED, WAITING (retry after retry_delay_seconds) or FAILED.
    """

    status: JobStatus
    error_message: str | None = None
    retry_delay_seconds: float = 0.0
    result: ExtractionResult | None = None


class JobRunner:
    """Run one job attempt, drive the status tracker and apply retry policy."""

    def __init__(
        self,
        processor: Processor,
        tracker: StatusTracker,
        *,
        backoff_base_seconds: float = 2.0,
        timings: ProcessingTimes | None = None,
    ) -> None:
        self._processor = processor
        self._tracker = tracker
        self._backoff_base_seconds = backoff_base_seconds
        self._timings = timings if timings is not None else ProcessingTimes()

    @property
    def timings(self) -> ProcessingTimes:
        return self._timings

    def run(self, job: Job) -> JobOutcome:
        """Execute a single claimed job. Never raises.

        Only the processing transition is written here; the terminal record
        write happens in record_outcome once the queue has confirmed the lease.
        """
        Log.info(
            f"Running job {job.id} ({job.kind.value}) for document {job.document_id} "
            f"(attempt {job.attempts}/{job.max_attempts})"
        )
        started = time.monotonic()
        try:
            self._tracker.mark_processing(job.document_id)
            result = self._processor.process(job.document_id)
        except Exception as exc:
            return self._handle_failure(job, exc)
        finally:
            self._timings.record(time.monotonic() - started)
        Log.info(f"Job {job.id} completed successfully", pages=result.page_count)
        return JobOutcome(status=JobStatus.COMPLETED, result=result)

    def record_outcome(self, job: Job, outcome: JobOutcome) -> JobOutcome:
        """Write the document record for a leased job's outcome.

        Returns the outcome the queue should apply, which turns into a retry
        or a failure when storing a successful extraction fails.
        """
        if outcome.status is JobStatus.COMPLETED:
            if outcome.result is None:
                raise ValueError(f"Completed outcome of job {job.id} carries no result")
            try:
                self._tracker.mark_completed(job.document_id, outcome.result)
                return outcome
            except Exception as exc:
                outcome = self._handle_failure(job, exc)
        if outcome.status is JobStatus.FAILED:
            self.fail_document(job, outcome.error_message or "")
        return outcome

    def fail_document(self, job: Job, message: str) -> None:
        """Surface a permanent failure on the document record."""
        try:
            self._tracker.mark_failed(job.document_id, message)
        except DocumentNotFoundError:
            Log.warning(f"Job {job.id}: document {job.document_id} no longer exists")

    def _handle_failure(self, job: Job, exc: Exception) -> JobOutcome:
        """Requeue with backoff if attempts remain and the error allows it, else fail."""
        message = str(exc) or type(exc).__name__
        Log.error(f"Job {job.id} failed: {message}", error=type(exc).__name__)
        kind = ErrorKind.TRANSIENT if getattr(exc, "retryable", True) else ErrorKind.PERMANENT
        decision = decide(
            kind,
            job.attempts,
            job.max_attempts,
            base_seconds=self._backoff_base_seconds,
        )
        if decision.retry:
            Log.warning(
                f"Job {job.id} will be retried in {decision.delay_seconds:g}s "
                f"(attempt {job.attempts + 1}/{job.max_attempts})"
            )
            return JobOutcome(
                status=JobStatus.WAITING,
                error_message=message,
                retry_delay_seconds=decision.delay_seconds,
            )
        Log.error(f"Job {job.id} permanently failed after {job.attempts} attempts")
        return JobOutcome(status=JobStatus.FAILED, error_message=message)
