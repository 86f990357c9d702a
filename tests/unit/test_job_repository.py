from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from docflow.database.repositories.job_repository import JobRepository
from docflow.queue.models import JobKind, JobPriority, JobStatus

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _make_row(**overrides: object) -> dict:
    row = {
        "id": 7,
        "kind": "extract",
        "document_id": "doc-1",
        "priority": 10,
        "status": "waiting",
        "attempts": 0,
        "max_attempts": 3,
        "stalled_count": 0,
        "error_message": None,
        "lock_token": None,
        "created_at": NOW,
        "available_at": NOW,
        "started_at": None,
        "heartbeat_at": None,
        "finished_at": None,
    }
    row.update(overrides)
    return row


def _mock_connection(mock_get_conn: MagicMock) -> tuple[MagicMock, MagicMock]:
    """Wire up a mock connection + cursor and return (mock_conn, mock_cursor)."""
    mock_cursor = MagicMock()
    mock_conn = MagicMock()
    mock_conn.cursor.return_value.__enter__ = MagicMock(return_value=mock_cursor)
    mock_conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
    mock_get_conn.return_value.__enter__ = MagicMock(return_value=mock_conn)
    mock_get_conn.return_value.__exit__ = MagicMock(return_value=False)
    return mock_conn, mock_cursor


class TestInsert:
    @patch("docflow.database.repositories.job_repository.get_connection")
    def test_returns_job(self, mock_get_conn: MagicMock) -> None:
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _make_row()

        job = JobRepository().insert(JobKind.EXTRACT, "doc-1", JobPriority.HIGH, 3, 1.5)

        assert job.id == "7"
        assert job.priority is JobPriority.HIGH
        assert job.status is JobStatus.WAITING
        assert mock_cursor.execute.call_args.args[1] == ("extract", "doc-1", 10, 3, 1.5)
        mock_conn.commit.assert_called_once()

    @patch("docflow.database.repositories.job_repository.get_connection")
    def test_missing_returned_row_raises(self, mock_get_conn: MagicMock) -> None:
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        with pytest.raises(RuntimeError, match="returned no row"):
            JobRepository().insert(JobKind.EXTRACT, "doc-1", JobPriority.HIGH, 3)
        mock_conn.commit.assert_not_called()


class TestClaimNextJob:
    def test_returns_none_when_queue_empty(self) -> None:
        mock_conn = MagicMock()
        mock_cursor = MagicMock()
        mock_conn.cursor.return_value.__enter__ = MagicMock(return_value=mock_cursor)
        mock_conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
        mock_cursor.fetchone.return_value = None

        assert JobRepository().claim_next_job(mock_conn, JobKind.EXTRACT, "tok") is None
        mock_conn.commit.assert_not_called()

    def test_claims_and_commits(self) -> None:
        mock_conn = MagicMock()
        mock_cursor = MagicMock()
        mock_conn.cursor.return_value.__enter__ = MagicMock(return_value=mock_cursor)
        mock_conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
        mock_cursor.fetchone.side_effect = [
            {"id": 7},
            _make_row(status="active", attempts=1, lock_token="tok"),
        ]

        job = JobRepository().claim_next_job(mock_conn, JobKind.EXTRACT, "tok")

        assert job is not None
        assert job.status is JobStatus.ACTIVE
        assert job.lock_token == "tok"
        assert mock_cursor.execute.call_args.args[1] == ("tok", 7)
        mock_conn.commit.assert_called_once()

    def test_row_gone_before_update_returns_none(self) -> None:
        mock_conn = MagicMock()
        mock_cursor = MagicMock()
        mock_conn.cursor.return_value.__enter__ = MagicMock(return_value=mock_cursor)
        mock_conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
        mock_cursor.fetchone.side_effect = [{"id": 7}, None]

        assert JobRepository().claim_next_job(mock_conn, JobKind.EXTRACT, "tok") is None
        mock_conn.rollback.assert_called_once()
        mock_conn.commit.assert_not_called()


class TestLeasedUpdates:
    @patch("docflow.database.repositories.job_repository.get_connection")
    def test_lost_lease_returns_none(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        assert JobRepository().mark_completed("7", "stale") is None

    @patch("docflow.database.repositories.job_repository.get_connection")
    def test_schedule_retry_params(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _make_row(error_message="boom")

        job = JobRepository().schedule_retry("7", "tok", "boom", 4)

        assert job is not None
        assert mock_cursor.execute.call_args.args[1] == ("boom", 4.0, 7, "tok")

    @patch("docflow.database.repositories.job_repository.get_connection")
    def test_heartbeat_reports_lease(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.rowcount = 0

        assert JobRepository().heartbeat("7", "stale") is False


class TestQueries:
    @patch("docflow.database.repositories.job_repository.get_connection")
    def test_find_by_id_non_numeric(self, mock_get_conn: MagicMock) -> None:
        assert JobRepository().find_by_id("abc") is None
        mock_get_conn.assert_not_called()

    @patch("docflow.database.repositories.job_repository.get_connection")
    def test_count_by_status(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchall.return_value = [
            {"status": "waiting", "total": 5, "delayed": 2},
            {"status": "failed", "total": 1, "delayed": 0},
        ]

        counts = JobRepository().count_by_status()

        assert counts == {"waiting": 5, "failed": 1, "delayed": 2}

    @patch("docflow.database.repositories.job_repository.get_connection")
    def test_mark_stalled_splits_results(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchall.side_effect = [
            [_make_row(id=1, status="failed")],
            [_make_row(id=2, status="stalled"), _make_row(id=3, status="stalled")],
        ]

        stalled, failed = JobRepository().mark_stalled(30.0, 1, "stalled")

        assert [j.id for j in failed] == ["1"]
        assert [j.id for j in stalled] == ["2", "3"]
