import os
import uuid
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import psycopg
import pytest

from docflow.config.settings import Settings
from docflow.database.connection import apply_schema, close_pool, get_connection, init_pool


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "docflow_test")
    return Settings(queue_backend="postgres", ai_provider="example")


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings, wait_timeout=test_settings.db_connect_timeout_seconds)
    except Exception as e:
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_* env to point at a disposable database"
        )
    try:
        apply_schema()
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture(autouse=True)
def clean_tables(request: pytest.FixtureRequest) -> Generator[None, None, None]:
    if "integration_pool" not in request.fixturenames:
        yield
        return
    yield
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("DELETE FROM processing_jobs")
            cur.execute("DELETE FROM files")
        conn.commit()


@pytest.fixture
def files_root(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture
def seed_file(
    db_conn: psycopg.Connection[Any], files_root: Path
) -> Callable[..., str]:
    """Insert a files row (and optionally write its bytes) and return its id."""

    def _seed(content: bytes | None = None, mime_type: str = "application/pdf") -> str:
        document_id = str(uuid.uuid4())
        file_path = f"{document_id}.pdf"
        if content is not None:
            (files_root / file_path).write_bytes(content)
        with db_conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO files (id, file_path, file_size, mime_type)
                VALUES (%s, %s, %s, %s)
                """,
                (document_id, file_path, len(content or b""), mime_type),
            )
        db_conn.commit()
        return document_id

    return _seed
