"""Connection adapters: a raw backend handle plus its dialect.

Each adapter also owns error classification for its backend. Drivers and
repositories never inspect backend exceptions themselves; anything that
escapes an adapter scope is already a StorageError, with ``retryable`` set
when the backend reported a serialization or lock conflict.
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager, nullcontext
from datetime import datetime
from typing import Any

import psycopg
import pymongo
from psycopg.rows import tuple_row
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import OperationFailure, PyMongoError

from memori.errors import StorageError, TransientConflictError
from memori.storage import clock

SQLITE = "sqlite"
POSTGRES = "postgres"
MONGODB = "mongodb"

_SQLITE_TRANSIENT_CODES = frozenset({sqlite3.SQLITE_BUSY, sqlite3.SQLITE_LOCKED})
_POSTGRES_TRANSIENT_STATES = frozenset({"40001", "40P01"})
_MONGO_WRITE_CONFLICT = 112


class SQLAdapter:
    """DB-API connection (sqlite3 or psycopg) shared by all SQL repositories.

    The connection is used by the writer on the caller's thread and by the
    augmentation workers, so every statement runs under one re-entrant lock.
    A transaction holds the lock until it commits or rolls back.

    ``timeout`` bounds each call: SQLite waits at most that long on a locked
    database and PostgreSQL sets ``statement_timeout`` for every transaction.
    """

    def __init__(self, conn: Any, dialect: str, *, timeout: float | None = None) -> None:
        self.conn = conn
        self._dialect = dialect
        self._lock = threading.RLock()
        self._depth = 0
        self._timeout: float | None = None
        self.timeout = timeout

    @property
    def dialect(self) -> str:
        return self._dialect

    @property
    def timeout(self) -> float | None:
        return self._timeout

    @timeout.setter
    def timeout(self, value: float | None) -> None:
        self._timeout = value if value and value > 0 else None
        if self._dialect == SQLITE and self._timeout is not None:
            with self._lock:
                self.conn.execute(f"PRAGMA busy_timeout = {int(self._timeout * 1000)}")

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def sql(self, query: str) -> str:
        """Queries are written with ``?`` placeholders; psycopg wants ``%s``."""
        if self._dialect == POSTGRES:
            return query.replace("?", "%s")
        return query

    def timestamp(self, value: datetime) -> object:
        if self._dialect == SQLITE:
            return clock.to_iso(value)
        return value

    def classify(self, exc: BaseException) -> StorageError:
        if isinstance(exc, StorageError):
            return exc
        message = f"{self._dialect}: {exc}"
        if isinstance(exc, sqlite3.Error):
            code = getattr(exc, "sqlite_errorcode", None)
            if isinstance(code, int) and (code & 0xFF) in _SQLITE_TRANSIENT_CODES:
                return TransientConflictError(message)
        if isinstance(exc, psycopg.Error) and exc.sqlstate in _POSTGRES_TRANSIENT_STATES:
            return TransientConflictError(message)
        return StorageError(message)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return
            self._depth = 1
            try:
                with self._translate_errors(), self._scope():
                    yield
            finally:
                self._depth = 0

    @contextmanager
    def cursor(self) -> Iterator[Any]:
        """Cursor returning plain tuples; autocommits outside a transaction."""
        with self.transaction():
            if self._dialect == POSTGRES:
                cur = self.conn.cursor(row_factory=tuple_row)
            else:
                cur = self.conn.cursor()
                cur.row_factory = None
            try:
                yield cur
            finally:
                cur.close()

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        try:
            yield
        except StorageError:
            raise
        except (sqlite3.Error, psycopg.Error) as exc:
            raise self.classify(exc) from exc

    @contextmanager
    def _scope(self) -> Iterator[None]:
        if self._dialect == POSTGRES:
            with self.conn.transaction():
                if self._timeout:
                    self.conn.execute(
                        "SELECT set_config('statement_timeout', %s, true)",
                        (str(int(self._timeout * 1000)),),
                    )
                yield
            return
        if getattr(self.conn, "autocommit", None) is False:
            # PEP 249 mode: sqlite3 keeps a transaction open at all times.
            try:
                yield
            except BaseException:
                self.conn.rollback()
                raise
            self.conn.commit()
            return
        # A transaction the host already opened is left for the host to finish.
        owned = not self.conn.in_transaction
        if owned:
            self.conn.execute("BEGIN")
        try:
            yield
        except BaseException:
            if owned and self.conn.in_transaction:
                self.conn.execute("ROLLBACK")
            raise
        if owned:
            self.conn.execute("COMMIT")


class MongoAdapter:
    """pymongo Database handle.

    Documents are written one operation at a time, so ``transaction()`` only
    translates errors; atomicity comes from single-document operations and
    unique indexes.
    """

    def __init__(self, db: Database, *, timeout: float | None = 5.0) -> None:
        self.db = db
        self.timeout = timeout

    @property
    def dialect(self) -> str:
        return MONGODB

    def collection(self, name: str) -> Collection:
        return self.db[name]

    def classify(self, exc: BaseException) -> StorageError:
        if isinstance(exc, StorageError):
            return exc
        message = f"{MONGODB}: {exc}"
        if isinstance(exc, PyMongoError):
            if exc.has_error_label("TransientTransactionError"):
                return TransientConflictError(message)
            if isinstance(exc, OperationFailure) and exc.code == _MONGO_WRITE_CONFLICT:
                return TransientConflictError(message)
        return StorageError(message)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self.operation():
            yield

    @contextmanager
    def operation(self) -> Iterator[None]:
        deadline = pymongo.timeout(self.timeout) if self.timeout else nullcontext()
        try:
            with deadline:
                yield
        except StorageError:
            raise
        except PyMongoError as exc:
            raise self.classify(exc) from exc


def is_sqlite_connection(conn: object) -> bool:
    return isinstance(conn, sqlite3.Connection)


def is_postgres_connection(conn: object) -> bool:
    return isinstance(conn, psycopg.Connection)


def is_mongo_database(conn: object) -> bool:
    return isinstance(conn, Database)


def new_sqlite_adapter(conn: object) -> SQLAdapter:
    return SQLAdapter(conn, SQLITE)


def new_postgres_adapter(conn: object) -> SQLAdapter:
    return SQLAdapter(conn, POSTGRES)


def new_mongo_adapter(conn: Any) -> MongoAdapter:
    return MongoAdapter(conn)
