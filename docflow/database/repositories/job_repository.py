from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row

from docflow.database.connection import get_connection
from docflow.queue.models import Job, JobKind, JobPriority, JobStatus

_COLUMNS = sql.SQL(
    "id, kind, document_id, priority, status, attempts, max_attempts, stalled_count, "
    "error_message, lock_token, created_at, available_at, started_at, heartbeat_at, "
    "finished_at"
)


def _to_job(row: dict[str, Any]) -> Job:
    return Job(
        id=str(row["id"]),
        kind=JobKind(row["kind"]),
        document_id=row["document_id"],
        priority=JobPriority(row["priority"]),
        status=JobStatus(row["status"]),
        attempts=row["attempts"],
        max_attempts=row["max_attempts"],
        stalled_count=row["stalled_count"],
        error_message=row["error_message"],
        lock_token=row["lock_token"],
        created_at=row["created_at"],
        available_at=row["available_at"],
        started_at=row["started_at"],
        heartbeat_at=row["heartbeat_at"],
        finished_at=row["finished_at"],
    )


def _job_id(handle: str) -> int | None:
    return int(handle) if handle.isdigit() else None


class JobRepository:
    """Database operations for the processing_jobs table.

    Every write made on behalf of a worker is guarded by the job's lock token,
    so a worker that lost its lease cannot overwrite the job.
    """

    def insert(
        self,
        kind: JobKind,
        document_id: str,
        priority: JobPriority,
        max_attempts: int,
        delay_seconds: float = 0.0,
    ) -> Job:
        query = sql.SQL(
            """
            INSERT INTO processing_jobs
                (kind, document_id, priority, max_attempts, available_at)
            VALUES (%s, %s, %s, %s, NOW() + make_interval(secs => %s))
            RETURNING {}
            """
        ).format(_COLUMNS)
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    query,
                    (kind.value, document_id, int(priority), max_attempts, float(delay_seconds)),
                )
                row = cur.fetchone()
            if row is None:
                raise RuntimeError(
                    f"Insert of {kind.value} job for {document_id} returned no row"
                )
            conn.commit()
        return _to_job(row)

    def claim_next_job(
        self, conn: psycopg.Connection[Any], kind: JobKind, lock_token: str
    ) -> Job | None:
        """Claim the best eligible job using SELECT FOR UPDATE SKIP LOCKED."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                SELECT id
                FROM processing_jobs
                WHERE kind = %s
                  AND status IN ('waiting', 'stalled')
                  AND available_at <= NOW()
                ORDER BY priority DESC, id ASC
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """,
                (kind.value,),
            )
            row = cur.fetchone()

            if row is None:
                conn.rollback()
                return None

            cur.execute(
                sql.SQL(
                    """
                    UPDATE processing_jobs
                    SET status = 'active', attempts = attempts + 1, lock_token = %s,
                        started_at = NOW(), heartbeat_at = NOW()
                    WHERE id = %s
                    RETURNING {}
                    """
                ).format(_COLUMNS),
                (lock_token, row["id"]),
            )
            claimed = cur.fetchone()
        if claimed is None:
            conn.rollback()
            return None
        conn.commit()
        return _to_job(claimed)

    def heartbeat(self, job_id: str, lock_token: str) -> bool:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE processing_jobs SET heartbeat_at = NOW()
                    WHERE id = %s AND lock_token = %s AND status = 'active'
                    """,
                    (int(job_id), lock_token),
                )
                updated = cur.rowcount == 1
            conn.commit()
        return updated

    def mark_completed(self, job_id: str, lock_token: str) -> Job | None:
        return self._update_leased(
            sql.SQL("status = 'completed', error_message = NULL, finished_at = NOW()"),
            (),
            job_id,
            lock_token,
        )

    def schedule_retry(
        self, job_id: str, lock_token: str, error: str | None, delay_seconds: float
    ) -> Job | None:
        """Return the job to waiting, available again after delay_seconds."""
        return self._update_leased(
            sql.SQL(
                "status = 'waiting', error_message = %s, "
                "available_at = NOW() + make_interval(secs => %s)"
            ),
            (error, float(delay_seconds)),
            job_id,
            lock_token,
        )

    def mark_failed(self, job_id: str, lock_token: str, error: str | None) -> Job | None:
        return self._update_leased(
            sql.SQL("status = 'failed', error_message = %s, finished_at = NOW()"),
            (error,),
            job_id,
            lock_token,
        )

    def mark_stalled(
        self, stalled_interval_seconds: float, max_stalled_count: int, message: str
    ) -> tuple[list[Job], list[Job]]:
        """Release active jobs whose heartbeat is older than the stall interval.

        Jobs out of attempts or over the stall limit fail; the rest become
        stalled and claimable again. Returns (stalled, failed).
        """
        interval = float(stalled_interval_seconds)
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    sql.SQL(
                        """
                        UPDATE processing_jobs
                        SET status = 'failed', stalled_count = stalled_count + 1,
                            lock_token = NULL, error_message = %s, finished_at = NOW()
                        WHERE status = 'active'
                          AND heartbeat_at < NOW() - make_interval(secs => %s)
                          AND (attempts >= max_attempts OR stalled_count + 1 > %s)
                        RETURNING {}
                        """
                    ).format(_COLUMNS),
                    (message, interval, max_stalled_count),
                )
                failed = [_to_job(row) for row in cur.fetchall()]
                cur.execute(
                    sql.SQL(
                        """
                        UPDATE processing_jobs
                        SET status = 'stalled', stalled_count = stalled_count + 1,
                            lock_token = NULL, available_at = NOW()
                        WHERE status = 'active'
                          AND heartbeat_at < NOW() - make_interval(secs => %s)
                        RETURNING {}
                        """
                    ).format(_COLUMNS),
                    (interval,),
                )
                stalled = [_to_job(row) for row in cur.fetchall()]
            conn.commit()
        return stalled, failed

    def find_by_id(self, job_id: str) -> Job | None:
        row_id = _job_id(job_id)
        if row_id is None:
            return None
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    sql.SQL("SELECT {} FROM processing_jobs WHERE id = %s").format(_COLUMNS),
                    (row_id,),
                )
                row = cur.fetchone()
        return _to_job(row) if row is not None else None

    def count_by_status(self) -> dict[str, int]:
        """Job counts per status, plus 'delayed' for waiting jobs still in backoff."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT status, COUNT(*) AS total,
                           COUNT(*) FILTER (
                               WHERE status = 'waiting' AND available_at > NOW()
                           ) AS delayed
                    FROM processing_jobs
                    GROUP BY status
                    """
                )
                rows = cur.fetchall()
        counts = {row["status"]: int(row["total"]) for row in rows}
        counts["delayed"] = sum(int(row["delayed"]) for row in rows)
        return counts

    def delete_finished_before(self, max_age_seconds: float) -> int:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    DELETE FROM processing_jobs
                    WHERE status IN ('completed', 'failed')
                      AND finished_at < NOW() - make_interval(secs => %s)
                    """,
                    (float(max_age_seconds),),
                )
                deleted = cur.rowcount
            conn.commit()
        return deleted

    def _update_leased(
        self,
        assignments: sql.Composable,
        params: tuple[Any, ...],
        job_id: str,
        lock_token: str,
    ) -> Job | None:
        query = sql.SQL(
            """
            UPDATE processing_jobs SET {}, lock_token = NULL
            WHERE id = %s AND lock_token = %s AND status = 'active'
            RETURNING {}
            """
        ).format(assignments, _COLUMNS)
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, (*params, int(job_id), lock_token))
                row = cur.fetchone()
            conn.commit()
        return _to_job(row) if row is not None else None
