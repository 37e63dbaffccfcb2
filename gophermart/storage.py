"""Database connections, schema migrations and transactions."""

from __future__ import annotations

import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import closing, contextmanager, suppress
from datetime import datetime, timezone
from decimal import Decimal

_TIMEOUT_SECONDS = 10.0
_SQLITE_PREFIX = "sqlite:///"
_MEMORY_DSN = "sqlite://"


class StorageError(Exception):
    """Raised when the database cannot be reached or a statement fails."""


def _convert_uuid(raw: bytes) -> uuid.UUID:
    return uuid.UUID(raw.decode())


def _convert_numeric(raw: bytes) -> Decimal:
    return Decimal(raw.decode())


def _convert_timestamp(raw: bytes) -> datetime:
    text = raw.decode().strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


sqlite3.register_adapter(uuid.UUID, str)
sqlite3.register_adapter(Decimal, str)
sqlite3.register_adapter(datetime, datetime.isoformat)
sqlite3.register_converter("UUID", _convert_uuid)
sqlite3.register_converter("NUMERIC", _convert_numeric)
sqlite3.register_converter("TIMESTAMPTZ", _convert_timestamp)


_MIGRATIONS: tuple[tuple[int, tuple[str, ...]], ...] = (
    (
        1,
        (
            """
            CREATE TABLE users (
                id UUID TEXT PRIMARY KEY,
                username TEXT NOT NULL UNIQUE,
                password_hash TEXT NOT NULL
            )
            """,
            """
            CREATE TABLE balances (
                user_id UUID TEXT PRIMARY KEY REFERENCES users (id),
                balance NUMERIC NOT NULL DEFAULT 0,
                withdrawn NUMERIC NOT NULL DEFAULT 0
            )
            """,
            """
            CREATE TABLE orders (
                number TEXT PRIMARY KEY,
                status TEXT NOT NULL,
                accrual NUMERIC,
                uploaded_at TIMESTAMPTZ TEXT NOT NULL,
                user_id UUID TEXT NOT NULL REFERENCES users (id)
            )
            """,
            "CREATE INDEX orders_user_id_idx ON orders (user_id)",
            """
            CREATE TABLE withdrawals (
                id UUID TEXT,
                user_id UUID TEXT NOT NULL REFERENCES users (id),
                order_number TEXT NOT NULL,
                withdrawn NUMERIC NOT NULL,
                processed_at TIMESTAMPTZ TEXT NOT NULL
            )
            """,
            "CREATE INDEX withdrawals_user_id_idx ON withdrawals (user_id)",
        ),
    ),
)


def _parse_dsn(dsn: str) -> tuple[str, bool]:
    """Return the sqlite connect target and whether it is a URI."""
    dsn = dsn.strip()
    if not dsn:
        raise StorageError("failed to parse dsn: empty dsn")
    if dsn == _MEMORY_DSN:
        return ":memory:", False
    if dsn.startswith(_SQLITE_PREFIX):
        path = dsn[len(_SQLITE_PREFIX):]
        if not path:
            raise StorageError("failed to parse dsn: missing database path")
        return path, False
    if dsn.startswith("file:"):
        return dsn, True
    if "://" in dsn:
        scheme = dsn.split("://", 1)[0]
        raise StorageError(f"failed to parse dsn: unsupported scheme {scheme!r}")
    return dsn, False


def connect(dsn: str) -> sqlite3.Connection:
    """Open a connection for the DSN and make sure the database answers."""
    target, uri = _parse_dsn(dsn)
    try:
        connection = sqlite3.connect(
            target,
            timeout=_TIMEOUT_SECONDS,
            uri=uri,
            isolation_level=None,
            detect_types=sqlite3.PARSE_DECLTYPES,
            check_same_thread=False,
        )
    except sqlite3.Error as exc:
        raise StorageError(f"failed to create pool: {exc}") from exc

    try:
        connection.execute("PRAGMA foreign_keys = ON")
        connection.execute("SELECT 1").fetchone()
    except sqlite3.Error as exc:
        connection.close()
        raise StorageError(f"failed to ping database: {exc}") from exc

    connection.row_factory = sqlite3.Row
    return connection


@contextmanager
def transaction(connection: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Run the block in a write transaction: commit on success, roll back on error."""
    try:
        connection.execute("BEGIN IMMEDIATE")
    except sqlite3.Error as exc:
        raise StorageError(f"failed to begin transaction: {exc}") from exc

    try:
        yield connection
    except BaseException:
        if connection.in_transaction:
            with suppress(sqlite3.Error):
                connection.execute("ROLLBACK")
        raise

    try:
        connection.execute("COMMIT")
    except sqlite3.Error as exc:
        if connection.in_transaction:
            with suppress(sqlite3.Error):
                connection.execute("ROLLBACK")
        raise StorageError(f"failed to commit transaction: {exc}") from exc


def migrate(dsn: str) -> None:
    """Apply every schema migration that the database has not seen yet."""
    with closing(connect(dsn)) as connection:
        try:
            connection.execute(
                "CREATE TABLE IF NOT EXISTS schema_migrations ("
                " version INTEGER PRIMARY KEY,"
                " applied_at TIMESTAMPTZ TEXT NOT NULL)"
            )
            applied = {
                row["version"]
                for row in connection.execute("SELECT version FROM schema_migrations")
            }
        except sqlite3.Error as exc:
            raise StorageError(f"failed to read migration state: {exc}") from exc

        for version, statements in _MIGRATIONS:
            if version in applied:
                continue
            try:
                with transaction(connection):
                    for statement in statements:
                        connection.execute(statement)
                    connection.execute(
                        "INSERT INTO schema_migrations (version, applied_at) VALUES (?, ?)",
                        (version, datetime.now(timezone.utc)),
                    )
            except sqlite3.Error as exc:
                raise StorageError(f"failed to apply migration {version}: {exc}") from exc