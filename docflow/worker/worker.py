import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Protocol

from docflow.logging.logger import Log
from docflow.queue.models import Job, JobKind
from docflow.worker.job_runner import JobOutcome, JobRunner


class JobSource(Protocol):
    """What a worker slot needs from a queue implementation."""

    def claim(self, kind: JobKind) -> Job | None: ...

    def heartbeat(self, job: Job) -> bool: ...

    def complete(self, job: Job, outcome: JobOutcome) -> bool: ...

    def wait_for_work(self, kind: JobKind, timeout: float) -> None: ...


class Worker:
    """One worker slot. Poll loop: claim -> run under heartbeat -> report."""

    def __init__(
        self,
        kind: JobKind,
        source: JobSource,
        job_runner: JobRunner,
        *,
        poll_interval_seconds: float,
        heartbeat_interval_seconds: float,
        stop_event: threading.Event | None = None,
    ) -> None:
        self._kind = kind
        self._source = source
        self._job_runner = job_runner
        self._poll_interval_seconds = poll_interval_seconds
        self._heartbeat_interval_seconds = heartbeat_interval_seconds
        self._stop_event = stop_event if stop_event is not None else threading.Event()

    def run(self, max_jobs: int | None = None) -> None:
        """Main poll loop. Runs until the stop event is set.

        If max_jobs is set, stop after processing that many jobs (for testing).
        """
        Log.info(f"Worker started for {self._kind.value} jobs")
        jobs_done = 0
        while not self._stop_event.is_set():
            if max_jobs is not None and jobs_done >= max_jobs:
                break
            job = self._try_claim_job()
            if job:
                self._dispatch(job)
                jobs_done += 1
            else:
                self._source.wait_for_work(self._kind, self._poll_interval_seconds)
        Log.info(f"Worker for {self._kind.value} jobs stopped")

    def _try_claim_job(self) -> Job | None:
        """Attempt to claim the next eligible job. Gracefully handle storage errors."""
        try:
            return self._source.claim(self._kind)
        except Exception as exc:
            Log.warning(f"Could not claim {self._kind.value} job, will retry: {exc}")
            self._stop_event.wait(self._poll_interval_seconds)
            return None

    def _dispatch(self, job: Job) -> None:
        with self._heartbeat(job):
            outcome = self._job_runner.run(job)
        try:
            self._source.complete(job, outcome)
        except Exception:
            # The lease lapses and the stall sweep will pick the job up again.
            Log.exception(f"Could not record outcome of job {job.id}")

    @contextmanager
    def _heartbeat(self, job: Job) -> Iterator[None]:
        """Renew the job's lease in the background while it runs."""
        stop = threading.Event()

        def beat() -> None:
            while not stop.wait(self._heartbeat_interval_seconds):
                try:
                    self._source.heartbeat(job)
                except Exception as exc:
                    Log.warning(f"Heartbeat for job {job.id} failed: {exc}")

        thread = threading.Thread(target=beat, name=f"heartbeat-{job.id}", daemon=True)
        thread.start()
        try:
            yield
        finally:
            stop.set()
            thread.join(timeout=1.0)
