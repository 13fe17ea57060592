"""
PostgreSQL registry store - Implements RegistryStore with psycopg3.

The registry document is one TEXT row in ``registry_documents`` keyed by
name. Keeping the body as text, not JSONB, means a damaged body is still
readable and can be preserved before the reset.

Single-writer discipline:
------------------------
Every ``transaction()`` locks the document row with SELECT ... FOR UPDATE
for the whole read-modify-write cycle, so concurrent writers in any
number of processes serialize on the row instead of losing updates.
The row is created up front with INSERT ... ON CONFLICT DO NOTHING, so
there is always a row to lock.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import psycopg
from psycopg_pool import ConnectionPool

from soulmark.domain.exceptions import StorageError
from soulmark.domain.models import RegistryDocument
from soulmark.domain.schema import LoadOutcome, decode_document, encode_document

from .base import backup_stamp

logger = logging.getLogger(__name__)

DEFAULT_DOCUMENT_NAME = "registry"


class PostgresRegistryStore:
    """
    Implements RegistryStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries.
    """

    def __init__(self, pool: ConnectionPool, name: str = DEFAULT_DOCUMENT_NAME) -> None:
        """
        Initialize store with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
            name: Row key of the registry document
        """
        self._pool = pool
        self.name = name

    def load(self) -> RegistryDocument:
        try:
            with self._pool.connection() as conn, conn.transaction(), conn.cursor() as cursor:
                return self._lock_and_load(cursor)
        except psycopg.Error as e:
            raise StorageError(f"Registry {self.name} unavailable: {e}") from e

    def save(self, document: RegistryDocument) -> None:
        sql = """
            INSERT INTO registry_documents (name, body, updated_at)
            VALUES (%s, %s, NOW())
            ON CONFLICT (name) DO UPDATE
            SET body = EXCLUDED.body,
                updated_at = NOW()
        """
        try:
            with self._pool.connection() as conn:
                conn.execute(sql, (self.name, encode_document(document)))
        except psycopg.Error as e:
            raise StorageError(f"Cannot write registry {self.name}: {e}") from e

    @contextmanager
    def transaction(self) -> Iterator[RegistryDocument]:
        """
        Lock, load, yield, save.

        A domain exception raised inside the block rolls the transaction
        back and propagates unchanged.
        """
        try:
            with self._pool.connection() as conn, conn.transaction(), conn.cursor() as cursor:
                document = self._lock_and_load(cursor)
                yield document
                self._update(cursor, self.name, encode_document(document))
        except psycopg.Error as e:
            raise StorageError(f"Registry {self.name} unavailable: {e}") from e

    def _lock_and_load(self, cursor: psycopg.Cursor) -> RegistryDocument:
        cursor.execute(
            """
            INSERT INTO registry_documents (name, body, updated_at)
            VALUES (%s, %s, NOW())
            ON CONFLICT (name) DO NOTHING
            """,
            (self.name, encode_document(RegistryDocument())),
        )
        if cursor.rowcount == 1:
            logger.info("No registry %s found, initialized empty registry", self.name)

        cursor.execute(
            "SELECT body FROM registry_documents WHERE name = %s FOR UPDATE",
            (self.name,),
        )
        row = cursor.fetchone()
        document, outcome = decode_document(row[0] if row else None)

        if outcome is LoadOutcome.CORRUPT:
            backup = f"{self.name}.corrupt-{backup_stamp()}"
            cursor.execute(
                "INSERT INTO registry_documents (name, body, updated_at) VALUES (%s, %s, NOW())",
                (backup, row[0]),
            )
            logger.error(
                "Corrupt registry %s preserved as %s; registry reset to empty, previous data lost",
                self.name,
                backup,
            )
            self._update(cursor, self.name, encode_document(document))
        elif outcome is LoadOutcome.REPAIRED:
            logger.warning("Malformed registry %s normalized and saved", self.name)
            self._update(cursor, self.name, encode_document(document))

        return document

    @staticmethod
    def _update(cursor: psycopg.Cursor, name: str, body: str) -> None:
        cursor.execute(
            "UPDATE registry_documents SET body = %s, updated_at = NOW() WHERE name = %s",
            (body, name),
        )


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: soulmark/adapters/store/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
