from unittest.mock import MagicMock

import pytest

from docflow.config.settings import Settings
from docflow.queue.factory import JobQueueFactory
from docflow.queue.memory_queue import InMemoryJobQueue
from docflow.queue.postgres_queue import PostgresJobQueue


class TestJobQueueFactory:
    def test_memory_backend(self) -> None:
        queue = JobQueueFactory.create(
            Settings(queue_backend="memory"), MagicMock(), database_ready=True
        )
        assert isinstance(queue, InMemoryJobQueue)

    def test_postgres_backend(self) -> None:
        queue = JobQueueFactory.create(
            Settings(queue_backend="postgres"), MagicMock(), database_ready=True
        )
        assert isinstance(queue, PostgresJobQueue)

    def test_postgres_backend_requires_database(self) -> None:
        with pytest.raises(ValueError, match="reachable database"):
            JobQueueFactory.create(
                Settings(queue_backend="postgres"), MagicMock(), database_ready=False
            )

    def test_auto_prefers_postgres(self) -> None:
        queue = JobQueueFactory.create(
            Settings(queue_backend="auto"), MagicMock(), database_ready=True
        )
        assert isinstance(queue, PostgresJobQueue)

    def test_auto_falls_back_to_memory(self) -> None:
        queue = JobQueueFactory.create(
            Settings(queue_backend="AUTO"), MagicMock(), database_ready=False
        )
        assert isinstance(queue, InMemoryJobQueue)

    def test_unknown_backend(self) -> None:
        with pytest.raises(ValueError, match="Unknown queue backend"):
            JobQueueFactory.create(
                Settings(queue_backend="redis"), MagicMock(), database_ready=True
            )
