import threading
import time
from abc import ABC, abstractmethod

from docflow.config.settings import Settings
from docflow.logging.logger import Log
from docflow.queue.events import JobEvent, JobEvents
from docflow.queue.exceptions import (
    InvalidArgumentError,
    JobNotFoundError,
    PermanentFailureError,
)
from docflow.queue.models import (
    Job,
    JobHandle,
    JobKind,
    JobPriority,
    JobStatus,
    QueueSnapshot,
)
from docflow.worker.job_runner import JobOutcome, JobRunner
from docflow.worker.worker import Worker

STALLED_MESSAGE = "job stalled more than allowable limit"

_OUTCOME_EVENTS = {
    JobStatus.COMPLETED: JobEvent.COMPLETED,
    JobStatus.WAITING: JobEvent.RETRYING,
    JobStatus.FAILED: JobEvent.FAILED,
}


class BaseJobQueue(ABC):
    """Contract shared by the durable and the in-process job queue.

    Callers use enqueue/enqueue_retry/get_status/get_snapshot/clean/wait and
    never need to know which implementation is active. Worker slots call
    claim/heartbeat/complete/wait_for_work.
    """

    def __init__(
        self,
        job_runner: JobRunner,
        settings: Settings,
        events: JobEvents | None = None,
    ) -> None:
        self._job_runner = job_runner
        self._settings = settings
        self._events = events if events is not None else JobEvents()
        self._pool_sizes = {
            JobKind.EXTRACT: settings.extract_concurrency,
            JobKind.RETRY_EXTRACT: settings.retry_concurrency,
        }
        self._stop_event = threading.Event()
        self._threads: list[threading.Thread] = []

    @property
    def events(self) -> JobEvents:
        return self._events

    # -- caller API --------------------------------------------------------

    def enqueue(
        self,
        document_id: str,
        priority: str | int | JobPriority = JobPriority.NORMAL,
        kind: str | JobKind = JobKind.EXTRACT,
    ) -> JobHandle:
        """Schedule extraction of a document and return the job handle immediately.

        Raises:
            InvalidArgumentError: on an empty document id or unknown priority/kind.
        """
        if not isinstance(document_id, str) or not document_id.strip():
            raise InvalidArgumentError("document id must be a non-empty string")
        try:
            job_priority = JobPriority.parse(priority)
            job_kind = JobKind(kind)
        except ValueError as exc:
            raise InvalidArgumentError(str(exc)) from exc

        max_attempts = (
            self._settings.retry_job_max_attempts
            if job_kind is JobKind.RETRY_EXTRACT
            else self._settings.max_job_attempts
        )
        job = self._add(
            document_id.strip(),
            job_priority,
            job_kind,
            max_attempts,
            self._settings.initial_delay_seconds,
        )
        Log.info(
            f"{job_kind.value} job {job.id} added for document {job.document_id} "
            f"(priority {job_priority.name.lower()})"
        )
        self._events.publish(JobEvent.ADDED, job)
        return job.id

    def enqueue_retry(self, document_id: str) -> JobHandle:
        """Schedule a single high-priority reprocessing of a failed document."""
        return self.enqueue(document_id, JobPriority.HIGH, JobKind.RETRY_EXTRACT)

    @abstractmethod
    def get_status(self, handle: JobHandle) -> Job | None:
        """Return a copy of the job, or None if the queue does not know it."""

    @abstractmethod
    def get_snapshot(self) -> QueueSnapshot:
        """Return best-effort counts per job status without blocking workers."""

    @abstractmethod
    def clean(self, max_age_seconds: float) -> int:
        """Delete completed/failed jobs finished more than max_age_seconds ago."""

    def wait(self, handle: JobHandle, timeout: float | None = None) -> Job | None:
        """Block until the job is terminal or the timeout elapses.

        Returns the latest job state, or None if the job is unknown.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            job = self.get_status(handle)
            if job is None or job.status.is_terminal:
                return job
            if deadline is not None and time.monotonic() >= deadline:
                return job
            time.sleep(min(self._settings.job_poll_interval_seconds, 0.5))

    def result(self, handle: JobHandle, timeout: float | None = None) -> Job:
        """Wait for a job and return it if it completed.

        Raises:
            JobNotFoundError: if the queue does not know the handle.
            TimeoutError: if the job is not terminal when the timeout elapses.
            PermanentFailureError: if the job failed.
        """
        job = self.wait(handle, timeout)
        if job is None:
            raise JobNotFoundError(f"Job {handle} not found")
        if not job.status.is_terminal:
            raise TimeoutError(f"Job {handle} is still {job.status.value}")
        if job.status is JobStatus.FAILED:
            raise PermanentFailureError(job.id, job.error_message or "")
        return job

    # -- worker slot API ---------------------------------------------------

    def claim(self, kind: JobKind) -> Job | None:
        job = self._claim(kind)
        if job is not None:
            self._events.publish(JobEvent.ACTIVE, job)
        return job

    def complete(self, job: Job, outcome: JobOutcome) -> bool:
        """Record an attempt's outcome. Returns False if the job's lease was lost.

        The document record is written only after the lease is confirmed, so a
        worker that lost its job to the stall sweep leaves the record alone.
        """
        if not self.heartbeat(job):
            Log.warning(f"Discarding result of job {job.id}: lease no longer held")
            return False
        outcome = self._job_runner.record_outcome(job, outcome)
        updated = self._apply_outcome(job, outcome)
        if updated is None:
            Log.warning(f"Discarding result of job {job.id}: lease no longer held")
            return False
        self._events.publish(_OUTCOME_EVENTS[outcome.status], updated)
        return True

    def recover_stalled(self) -> int:
        """Release jobs whose heartbeat lapsed; fail those out of attempts."""
        stalled, failed = self._mark_stalled()
        for job in failed:
            self._job_runner.fail_document(job, job.error_message or STALLED_MESSAGE)
            self._events.publish(JobEvent.FAILED, job)
        for job in stalled:
            self._events.publish(JobEvent.STALLED, job)
        if stalled or failed:
            Log.warning(f"Stall sweep: {len(stalled)} requeued, {len(failed)} failed")
        return len(stalled) + len(failed)

    @abstractmethod
    def heartbeat(self, job: Job) -> bool:
        """Renew the job's lease. Returns False if the lease is no longer held."""

    @abstractmethod
    def wait_for_work(self, kind: JobKind, timeout: float) -> None: ...

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> None:
        """Start worker slots for every job kind plus the stall sweeper."""
        if self._threads:
            return
        self._stop_event.clear()
        heartbeat_interval = self._settings.stalled_interval_seconds / 2
        for kind, size in self._pool_sizes.items():
            for slot in range(1, size + 1):
                worker = Worker(
                    kind,
                    self,
                    self._job_runner,
                    poll_interval_seconds=self._settings.job_poll_interval_seconds,
                    heartbeat_interval_seconds=heartbeat_interval,
                    stop_event=self._stop_event,
                )
                self._spawn(worker.run, f"{kind.value}-slot-{slot}")
        self._spawn(self._sweep_loop, "stall-sweeper")
        Log.info(
            f"{type(self).__name__} started: "
            + ", ".join(f"{k.value}={n}" for k, n in self._pool_sizes.items())
        )

    def shutdown(self, timeout: float = 10.0) -> None:
        """Stop accepting work and wait for running jobs to finish."""
        if not self._threads:
            return
        Log.info(f"Shutting down {type(self).__name__}...")
        self._stop_event.set()
        self._wake_all()
        deadline = time.monotonic() + timeout
        for thread in self._threads:
            thread.join(timeout=max(0.0, deadline - time.monotonic()))
        self._threads = []
        Log.info(f"{type(self).__name__} shutdown completed")

    def _spawn(self, target: "object", name: str) -> None:
        thread = threading.Thread(target=target, name=name, daemon=True)  # type: ignore[arg-type]
        thread.start()
        self._threads.append(thread)

    def _sweep_loop(self) -> None:
        interval = self._settings.stalled_interval_seconds / 2
        while not self._stop_event.wait(interval):
            try:
                self.recover_stalled()
            except Exception as exc:
                Log.warning(f"Stall sweep failed, will retry: {exc}")

    def _wake_all(self) -> None:
        """Wake idle worker slots. Implementations with a wait primitive override this."""

    # -- implementation hooks ----------------------------------------------

    @abstractmethod
    def _add(
        self,
        document_id: str,
        priority: JobPriority,
        kind: JobKind,
        max_attempts: int,
        delay_seconds: float,
    ) -> Job: ...

    @abstractmethod
    def _claim(self, kind: JobKind) -> Job | None:
        """Atomically take the best eligible job of this kind and mark it active."""

    @abstractmethod
    def _apply_outcome(self, job: Job, outcome: JobOutcome) -> Job | None:
        """Apply an outcome if job.lock_token still holds the lease, else return None."""

    @abstractmethod
    def _mark_stalled(self) -> tuple[list[Job], list[Job]]:
        """Return (requeued, failed) jobs whose heartbeat is older than the stall interval."""
