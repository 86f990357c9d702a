import uuid

from docflow.config.settings import Settings
from docflow.database.connection import get_connection
from docflow.database.repositories.job_repository import JobRepository
from docflow.logging.logger import Log
from docflow.queue.base import STALLED_MESSAGE, BaseJobQueue
from docflow.queue.events import JobEvents
from docflow.queue.models import (
    Job,
    JobHandle,
    JobKind,
    JobPriority,
    JobStatus,
    QueueSnapshot,
)
from docflow.worker.job_runner import JobOutcome, JobRunner


class PostgresJobQueue(BaseJobQueue):
    """Durable queue backed by the processing_jobs table.

    Jobs survive restarts and can be consumed by workers in several
    processes; each slot polls with SELECT ... FOR UPDATE SKIP LOCKED.
    """

    def __init__(
        self,
        job_runner: JobRunner,
        settings: Settings,
        events: JobEvents | None = None,
        job_repo: JobRepository | None = None,
    ) -> None:
        super().__init__(job_runner, settings, events)
        self._job_repo = job_repo if job_repo is not None else JobRepository()

    def get_status(self, handle: JobHandle) -> Job | None:
        return self._job_repo.find_by_id(handle)

    def get_snapshot(self) -> QueueSnapshot:
        counts = self._job_repo.count_by_status()
        return QueueSnapshot(
            waiting=counts.get(JobStatus.WAITING.value, 0),
            active=counts.get(JobStatus.ACTIVE.value, 0),
            completed=counts.get(JobStatus.COMPLETED.value, 0),
            failed=counts.get(JobStatus.FAILED.value, 0),
            stalled=counts.get(JobStatus.STALLED.value, 0),
            delayed=counts.get("delayed", 0),
        )

    def clean(self, max_age_seconds: float) -> int:
        deleted = self._job_repo.delete_finished_before(max_age_seconds)
        if deleted:
            Log.info(f"Cleaned {deleted} finished jobs older than {max_age_seconds:g}s")
        return deleted

    def heartbeat(self, job: Job) -> bool:
        if job.lock_token is None:
            return False
        if not self._job_repo.heartbeat(job.id, job.lock_token):
            Log.warning(f"Heartbeat for job {job.id} rejected: lease no longer held")
            return False
        return True

    def wait_for_work(self, kind: JobKind, timeout: float) -> None:
        self._stop_event.wait(timeout)

    def _add(
        self,
        document_id: str,
        priority: JobPriority,
        kind: JobKind,
        max_attempts: int,
        delay_seconds: float,
    ) -> Job:
        return self._job_repo.insert(kind, document_id, priority, max_attempts, delay_seconds)

    def _claim(self, kind: JobKind) -> Job | None:
        with get_connection() as conn:
            return self._job_repo.claim_next_job(conn, kind, uuid.uuid4().hex)

    def _apply_outcome(self, job: Job, outcome: JobOutcome) -> Job | None:
        if job.lock_token is None:
            return None
        if outcome.status is JobStatus.COMPLETED:
            return self._job_repo.mark_completed(job.id, job.lock_token)
        if outcome.status is JobStatus.WAITING:
            return self._job_repo.schedule_retry(
                job.id, job.lock_token, outcome.error_message, outcome.retry_delay_seconds
            )
        return self._job_repo.mark_failed(job.id, job.lock_token, outcome.error_message)

    def _mark_stalled(self) -> tuple[list[Job], list[Job]]:
        return self._job_repo.mark_stalled(
            self._settings.stalled_interval_seconds,
            self._settings.max_stalled_count,
            STALLED_MESSAGE,
        )
