import threading
from collections.abc import Callable
from enum import Enum

from docflow.logging.logger import Log
from docflow.queue.models import Job


class JobEvent(str, Enum):
    ADDED = "added"
    ACTIVE = "active"
    COMPLETED = "completed"
    RETRYING = "retrying"
    FAILED = "failed"
    STALLED = "stalled"


JobListener = Callable[[JobEvent, Job], None]


class JobEvents:
    """Fan-out of job lifecycle events to cross-cutting observers (logging, metrics).

    Observers never influence scheduling; an observer that raises is logged
    and the remaining observers still run.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: list[JobListener] = []

    def subscribe(self, listener: JobListener) -> Callable[[], None]:
        """Register a listener and return a function that removes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: JobEvent, job: Job) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event, job)
            except Exception:
                Log.exception(f"Job listener failed on {event.value} for job {job.id}")


def log_listener(event: JobEvent, job: Job) -> None:
    """Default observer: one log line per lifecycle event."""
    message = (
        f"Job {job.id} {event.value} kind={job.kind.value} document={job.document_id} "
        f"priority={job.priority.name.lower()} attempts={job.attempts}/{job.max_attempts}"
    )
    if event in (JobEvent.FAILED, JobEvent.STALLED):
        Log.warning(f"{message} error={job.error_message}")
    else:
        Log.debug(message)
