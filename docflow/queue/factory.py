from docflow.config.settings import Settings
from docflow.logging.logger import Log
from docflow.queue.base import BaseJobQueue
from docflow.queue.events import JobEvents
from docflow.queue.memory_queue import InMemoryJobQueue
from docflow.queue.postgres_queue import PostgresJobQueue
from docflow.worker.job_runner import JobRunner


class JobQueueFactory:
    """Creates the job queue selected by settings.queue_backend."""

    BACKENDS = ("auto", "postgres", "memory")

    @classmethod
    def create(
        cls,
        settings: Settings,
        job_runner: JobRunner,
        *,
        database_ready: bool,
        events: JobEvents | None = None,
    ) -> BaseJobQueue:
        """Create the queue. `auto` falls back to memory when the database is down."""
        backend = settings.queue_backend.lower()
        if backend == "memory":
            return InMemoryJobQueue(job_runner, settings, events)
        if backend == "postgres":
            if not database_ready:
                raise ValueError("queue_backend=postgres requires a reachable database")
            return PostgresJobQueue(job_runner, settings, events)
        if backend == "auto":
            if database_ready:
                return PostgresJobQueue(job_runner, settings, events)
            Log.warning(
                "PostgreSQL not reachable, falling back to the in-process job queue "
                "(jobs will not survive a restart)"
            )
            return InMemoryJobQueue(job_runner, settings, events)
        raise ValueError(f"Unknown queue backend '{backend}'. Choose from: {list(cls.BACKENDS)}")
