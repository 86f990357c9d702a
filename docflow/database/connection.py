from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg
from psycopg_pool import ConnectionPool

from docflow.config.settings import Settings

SCHEMA_PATH = Path(__file__).parent / "schema.sql"

_pool: ConnectionPool | None = None


def init_pool(settings: Settings, wait_timeout: float | None = None) -> None:
    """Initialize the global connection pool from settings.

    With wait_timeout set, block until the pool holds a live connection and
    raise psycopg_pool.PoolTimeout if the database cannot be reached in time.
    """
    global _pool  # noqa: PLW0603
    conninfo = (
        f"host={settings.db_host} "
        f"port={settings.db_port} "
        f"dbname={settings.db_database} "
        f"user={settings.db_username} "
        f"password={settings.db_password}"
    )
    pool = ConnectionPool(conninfo, min_size=1, max_size=settings.db_pool_max_size)
    if wait_timeout is not None:
        try:
            pool.wait(timeout=wait_timeout)
        except Exception:
            pool.close()
            raise
    _pool = pool


def close_pool() -> None:
    """Close the global connection pool."""
    global _pool  # noqa: PLW0603
    if _pool is not None:
        _pool.close()
        _pool = None


@contextmanager
def get_connection() -> Generator[psycopg.Connection[Any], None, None]:
    """Yield a connection from the pool. Caller manages commit/rollback."""
    if _pool is None:
        raise RuntimeError("Connection pool not initialized. Call init_pool() first.")
    with _pool.connection() as conn:
        yield conn


def apply_schema() -> None:
    """Create the files and processing_jobs tables if they do not exist."""
    with get_connection() as conn:
        conn.execute(SCHEMA_PATH.read_text(encoding="utf-8"))  # type: ignore[arg-type]
        conn.commit()
