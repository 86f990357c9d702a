from dataclasses import dataclass

import psycopg

from docflow.ai.client import GenerativeClient
from docflow.ai.factory import GenerativeClientFactory
from docflow.config.settings import Settings
from docflow.database.connection import close_pool, init_pool
from docflow.database.repositories.base import BaseDocumentRepository
from docflow.database.repositories.documents_repository import DocumentsRepository
from docflow.database.repositories.memory_documents_repository import (
    InMemoryDocumentRepository,
)
from docflow.logging.logger import Log
from docflow.processor.processor import build_processor
from docflow.queue.base import BaseJobQueue
from docflow.queue.events import JobEvents, log_listener
from docflow.queue.factory import JobQueueFactory
from docflow.queue.introspection import QueueIntrospection
from docflow.tracker.status_tracker import StatusTracker
from docflow.worker.job_runner import JobRunner


@dataclass
class PipelineServices:
    """Everything request-handling code needs, built once at startup."""

    settings: Settings
    doc_repo: BaseDocumentRepository
    tracker: StatusTracker
    queue: BaseJobQueue
    introspection: QueueIntrospection
    ai_client: GenerativeClient
    database_ready: bool = False

    def start(self) -> None:
        self.queue.start()

    def shutdown(self) -> None:
        self.queue.shutdown()
        if self.database_ready:
            close_pool()


def connect_database(settings: Settings) -> bool:
    """Open the connection pool unless the memory backend is selected.

    Returns False when `auto` cannot reach PostgreSQL; with `postgres` the
    connection error propagates.
    """
    backend = settings.queue_backend.lower()
    if backend == "memory":
        return False
    try:
        init_pool(settings, wait_timeout=settings.db_connect_timeout_seconds)
    except psycopg.Error as exc:
        if backend == "postgres":
            raise
        Log.warning(f"PostgreSQL not reachable at {settings.db_host}:{settings.db_port}: {exc}")
        return False
    return True


def build_services(
    settings: Settings,
    *,
    database_ready: bool,
    doc_repo: BaseDocumentRepository | None = None,
    ai_client: GenerativeClient | None = None,
) -> PipelineServices:
    """Wire record store, tracker, processor, queue and AI client together."""
    if doc_repo is None:
        doc_repo = DocumentsRepository() if database_ready else InMemoryDocumentRepository()
    tracker = StatusTracker(doc_repo)
    job_runner = JobRunner(
        build_processor(settings, doc_repo),
        tracker,
        backoff_base_seconds=settings.job_backoff_base_seconds,
    )
    events = JobEvents()
    events.subscribe(log_listener)
    queue = JobQueueFactory.create(
        settings, job_runner, database_ready=database_ready, events=events
    )
    return PipelineServices(
        settings=settings,
        doc_repo=doc_repo,
        tracker=tracker,
        queue=queue,
        introspection=QueueIntrospection(
            queue, job_runner.timings, settings.estimated_seconds_per_job
        ),
        ai_client=ai_client if ai_client is not None else GenerativeClientFactory.create(settings),
        database_ready=database_ready,
    )
