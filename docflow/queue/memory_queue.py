import heapq
import itertools
import threading
import uuid
from dataclasses import replace
from datetime import timedelta

from docflow.config.settings import Settings
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
    utcnow,
)
from docflow.worker.job_runner import JobOutcome, JobRunner

_CLAIMABLE = (JobStatus.WAITING, JobStatus.STALLED)

# (-priority, insertion sequence, job id): heapq pops the highest priority,
# oldest job first.
_HeapEntry = tuple[int, int, JobHandle]


class InMemoryJobQueue(BaseJobQueue):
    """Single-process queue: per-kind priority heaps behind one Condition.

    Jobs are lost on restart. Used when PostgreSQL is not configured or not
    reachable.
    """

    def __init__(
        self,
        job_runner: JobRunner,
        settings: Settings,
        events: JobEvents | None = None,
    ) -> None:
        super().__init__(job_runner, settings, events)
        self._cond = threading.Condition()
        self._jobs: dict[JobHandle, Job] = {}
        self._sequence: dict[JobHandle, int] = {}
        self._heaps: dict[JobKind, list[_HeapEntry]] = {kind: [] for kind in JobKind}
        self._counter = itertools.count()

    def get_status(self, handle: JobHandle) -> Job | None:
        with self._cond:
            job = self._jobs.get(handle)
            return replace(job) if job is not None else None

    def get_snapshot(self) -> QueueSnapshot:
        now = utcnow()
        counts = {status: 0 for status in JobStatus}
        delayed = 0
        with self._cond:
            for job in self._jobs.values():
                counts[job.status] += 1
                if job.status is JobStatus.WAITING and job.available_at > now:
                    delayed += 1
        return QueueSnapshot(
            waiting=counts[JobStatus.WAITING],
            active=counts[JobStatus.ACTIVE],
            completed=counts[JobStatus.COMPLETED],
            failed=counts[JobStatus.FAILED],
            stalled=counts[JobStatus.STALLED],
            delayed=delayed,
        )

    def clean(self, max_age_seconds: float) -> int:
        cutoff = utcnow() - timedelta(seconds=max_age_seconds)
        with self._cond:
            expired = [
                job.id
                for job in self._jobs.values()
                if job.status.is_terminal
                and job.finished_at is not None
                and job.finished_at < cutoff
            ]
            for handle in expired:
                del self._jobs[handle]
                self._sequence.pop(handle, None)
        if expired:
            Log.info(f"Cleaned {len(expired)} finished jobs older than {max_age_seconds:g}s")
        return len(expired)

    def wait(self, handle: JobHandle, timeout: float | None = None) -> Job | None:
        with self._cond:
            self._cond.wait_for(
                lambda: handle not in self._jobs or self._jobs[handle].status.is_terminal,
                timeout=timeout,
            )
            job = self._jobs.get(handle)
            return replace(job) if job is not None else None

    def heartbeat(self, job: Job) -> bool:
        with self._cond:
            stored = self._leased(job)
            if stored is None:
                return False
            stored.heartbeat_at = utcnow()
            return True

    def wait_for_work(self, kind: JobKind, timeout: float) -> None:
        with self._cond:
            if self._stop_event.is_set() or self._has_ready(kind):
                return
            self._cond.wait(timeout)

    def _wake_all(self) -> None:
        with self._cond:
            self._cond.notify_all()

    def _add(
        self,
        document_id: str,
        priority: JobPriority,
        kind: JobKind,
        max_attempts: int,
        delay_seconds: float,
    ) -> Job:
        now = utcnow()
        job = Job(
            id=uuid.uuid4().hex,
            kind=kind,
            document_id=document_id,
            priority=priority,
            max_attempts=max_attempts,
            created_at=now,
            available_at=now + timedelta(seconds=delay_seconds),
        )
        with self._cond:
            self._jobs[job.id] = job
            self._sequence[job.id] = next(self._counter)
            self._push(job)
            self._cond.notify_all()
            return replace(job)

    def _claim(self, kind: JobKind) -> Job | None:
        now = utcnow()
        heap = self._heaps[kind]
        with self._cond:
            deferred: list[_HeapEntry] = []
            claimed: Job | None = None
            while heap:
                entry = heapq.heappop(heap)
                job = self._jobs.get(entry[2])
                if job is None or job.status not in _CLAIMABLE:
                    continue
                if job.available_at > now:
                    deferred.append(entry)
                    continue
                claimed = job
                break
            for entry in deferred:
                heapq.heappush(heap, entry)
            if claimed is None:
                return None
            claimed.status = JobStatus.ACTIVE
            claimed.attempts += 1
            claimed.started_at = now
            claimed.heartbeat_at = now
            claimed.lock_token = uuid.uuid4().hex
            return replace(claimed)

    def _apply_outcome(self, job: Job, outcome: JobOutcome) -> Job | None:
        now = utcnow()
        with self._cond:
            stored = self._leased(job)
            if stored is None:
                return None
            stored.lock_token = None
            stored.status = outcome.status
            if outcome.status is JobStatus.COMPLETED:
                stored.error_message = None
                stored.finished_at = now
            elif outcome.status is JobStatus.WAITING:
                stored.error_message = outcome.error_message
                stored.available_at = now + timedelta(seconds=outcome.retry_delay_seconds)
                self._push(stored)
            else:
                stored.error_message = outcome.error_message
                stored.finished_at = now
            self._cond.notify_all()
            return replace(stored)

    def _mark_stalled(self) -> tuple[list[Job], list[Job]]:
        now = utcnow()
        cutoff = now - timedelta(seconds=self._settings.stalled_interval_seconds)
        stalled: list[Job] = []
        failed: list[Job] = []
        with self._cond:
            for job in self._jobs.values():
                if job.status is not JobStatus.ACTIVE:
                    continue
                if job.heartbeat_at is not None and job.heartbeat_at >= cutoff:
                    continue
                job.stalled_count += 1
                job.lock_token = None
                if (
                    not job.attempts_left
                    or job.stalled_count > self._settings.max_stalled_count
                ):
                    job.status = JobStatus.FAILED
                    job.error_message = STALLED_MESSAGE
                    job.finished_at = now
                    failed.append(replace(job))
                else:
                    job.status = JobStatus.STALLED
                    job.available_at = now
                    self._push(job)
                    stalled.append(replace(job))
            if stalled or failed:
                self._cond.notify_all()
        return stalled, failed

    def _push(self, job: Job) -> None:
        heapq.heappush(
            self._heaps[job.kind],
            (-int(job.priority), self._sequence[job.id], job.id),
        )

    def _has_ready(self, kind: JobKind) -> bool:
        now = utcnow()
        for _, _, handle in self._heaps[kind]:
            job = self._jobs.get(handle)
            if job is not None and job.status in _CLAIMABLE and job.available_at <= now:
                return True
        return False

    def _leased(self, job: Job) -> Job | None:
        """Return the stored job if job.lock_token still holds its lease. Caller holds _cond."""
        stored = self._jobs.get(job.id)
        if (
            stored is None
            or stored.status is not JobStatus.ACTIVE
            or stored.lock_token is None
            or stored.lock_token != job.lock_token
        ):
            return None
        return stored
