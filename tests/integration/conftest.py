import os
import uuid
from collections.abc import Generator
from pathlib import Path
from typing import Any

import psycopg
import pytest

from app.config.settings import Settings
from app.database import connection
from app.database.connection import close_pool, get_connection, init_pool

SCHEMA_PATH = Path(connection.__file__).with_name("schema.sql")


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "casefile_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection(timeout=5) as conn:
            conn.execute(SCHEMA_PATH.read_text())
            conn.commit()
    except (psycopg.Error, OSError) as e:
        close_pool()
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_* env or see tests/integration/README.md"
        )
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def queue_name(integration_pool: None) -> Generator[str, None, None]:
    """A queue name private to one test; its jobs are deleted afterwards."""
    name = f"test-{uuid.uuid4().hex[:12]}"
    yield name
    with get_connection() as conn:
        conn.execute("DELETE FROM queue_jobs WHERE queue_name = %s", (name,))
        conn.commit()


@pytest.fixture
def owner_id(integration_pool: None) -> Generator[str, None, None]:
    """An owner/actor id private to one test; its rows are deleted afterwards."""
    value = f"user-{uuid.uuid4().hex[:12]}"
    yield value
    with get_connection() as conn:
        conn.execute("DELETE FROM documents WHERE owner_id = %s", (value,))
        conn.execute("DELETE FROM audit_events WHERE actor_id = %s", (value,))
        conn.commit()
