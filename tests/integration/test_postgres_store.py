"""
Integration tests for PostgresRegistryStore.

Requires a PostgreSQL database at ``DATABASE_URL``; the module is skipped
when none is reachable.
"""

import threading
from collections.abc import Generator
from concurrent.futures import ThreadPoolExecutor

import psycopg
import pytest
from psycopg_pool import ConnectionPool

from soulmark.adapters.store.postgres import PostgresRegistryStore, run_migrations
from soulmark.config.settings import get_settings
from soulmark.domain.exceptions import ValidationError
from soulmark.domain.models import DonationRecord

pytestmark = pytest.mark.integration


@pytest.fixture(scope="module")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool and run migrations, or skip."""
    settings = get_settings()
    try:
        with psycopg.connect(settings.database_url, connect_timeout=2):
            pass
    except psycopg.OperationalError:
        pytest.skip("PostgreSQL not reachable")

    pool = ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=10, open=True)
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture(autouse=True)
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Clean registry documents before each test."""
    with pool.connection() as conn:
        conn.execute("DELETE FROM registry_documents")
    yield


@pytest.fixture
def store(pool: ConnectionPool) -> PostgresRegistryStore:
    return PostgresRegistryStore(pool, name="test-registry")


def stored_body(pool: ConnectionPool, name: str) -> str | None:
    with pool.connection() as conn:
        row = conn.execute("SELECT body FROM registry_documents WHERE name = %s", (name,)).fetchone()
    return row[0] if row else None


class TestLoad:
    def test_missing_row_initialized(self, store, pool) -> None:
        document = store.load()

        assert document.donations == []
        assert stored_body(pool, "test-registry") is not None

    def test_corrupt_row_backed_up_and_reset(self, store, pool) -> None:
        with pool.connection() as conn:
            conn.execute("INSERT INTO registry_documents (name, body) VALUES ('test-registry', '{broken')")

        assert store.load().donations == []

        with pool.connection() as conn:
            rows = conn.execute(
                "SELECT body FROM registry_documents WHERE name LIKE 'test-registry.corrupt-%'"
            ).fetchall()
        assert [r[0] for r in rows] == ["{broken"]

    def test_malformed_row_repaired(self, store, pool) -> None:
        with pool.connection() as conn:
            conn.execute(
                "INSERT INTO registry_documents (name, body) VALUES ('test-registry', '{\"donations\": \"not-a-list\"}')"
            )

        assert store.load().donations == []
        assert '"donations": []' in stored_body(pool, "test-registry")


class TestTransactions:
    def test_commit(self, store) -> None:
        with store.transaction() as document:
            document.donations.append(DonationRecord(session_id="cs_1"))
        assert [d.session_id for d in store.load().donations] == ["cs_1"]

    def test_rollback_on_domain_error(self, store) -> None:
        with pytest.raises(ValidationError):
            with store.transaction() as document:
                document.donations.append(DonationRecord(session_id="cs_1"))
                raise ValidationError("boom")
        assert store.load().donations == []

    def test_concurrent_writers_do_not_lose_updates(self, store) -> None:
        store.load()
        lock = threading.Lock()
        done: list[int] = []

        def append(i: int) -> None:
            with store.transaction() as document:
                document.donations.append(DonationRecord(session_id=f"cs_{i}"))
            with lock:
                done.append(i)

        with ThreadPoolExecutor(max_workers=8) as executor:
            for f in [executor.submit(append, i) for i in range(20)]:
                f.result()

        assert len(done) == 20
        assert len(store.load().donations) == 20
