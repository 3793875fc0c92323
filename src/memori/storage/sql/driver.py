"""SQL driver: schema migrations and repository set for SQLite/PostgreSQL."""

from __future__ import annotations

import logging
from contextlib import AbstractContextManager

from memori.errors import MigrationError, StorageError, UnsupportedDialectError
from memori.storage.adapters import POSTGRES, SQLAdapter
from memori.storage.base import Adapter, Driver, iter_versions
from memori.storage.sql.migrations import MIGRATIONS_BY_DIALECT
from memori.storage.sql.repos import (
    SQLConversationRepository,
    SQLEntityRepository,
    SQLFactRepository,
    SQLMessageRepository,
    SQLProcessRepository,
    SQLSessionRepository,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION_TABLE = "memori_schema_version"


class SQLDriver(Driver):
    def __init__(
        self,
        adapter: SQLAdapter,
        *,
        migrations: dict[int, list[str]] | None = None,
    ) -> None:
        if migrations is None:
            if adapter.dialect not in MIGRATIONS_BY_DIALECT:
                raise UnsupportedDialectError(f"unsupported SQL dialect: {adapter.dialect}")
            migrations = MIGRATIONS_BY_DIALECT[adapter.dialect]
        self._adapter = adapter
        self._migrations = migrations
        self._entity = SQLEntityRepository(adapter)
        self._process = SQLProcessRepository(adapter)
        self._session = SQLSessionRepository(adapter)
        self._conversation = SQLConversationRepository(adapter)
        self._message = SQLMessageRepository(adapter)
        self._fact = SQLFactRepository(adapter)

    @classmethod
    def from_adapter(cls, adapter: Adapter) -> SQLDriver:
        if not isinstance(adapter, SQLAdapter):
            raise UnsupportedDialectError(
                f"sql driver expects SQLAdapter, got {type(adapter).__name__}"
            )
        return cls(adapter)

    @property
    def dialect(self) -> str:
        return self._adapter.dialect

    @property
    def adapter(self) -> SQLAdapter:
        return self._adapter

    def transaction(self) -> AbstractContextManager[None]:
        return self._adapter.transaction()

    def _version_table_exists(self) -> bool:
        if self.dialect == POSTGRES:
            query = "SELECT to_regclass(?) IS NOT NULL"
        else:
            query = "SELECT COUNT(*) FROM sqlite_master WHERE type = 'table' AND name = ?"
        with self._adapter.cursor() as cur:
            cur.execute(self._adapter.sql(query), (SCHEMA_VERSION_TABLE,))
            row = cur.fetchone()
        return bool(row and row[0])

    def schema_version(self) -> int:
        if not self._version_table_exists():
            return 0
        with self._adapter.cursor() as cur:
            cur.execute(f"SELECT MAX(num) FROM {SCHEMA_VERSION_TABLE}")
            row = cur.fetchone()
        if row is None or row[0] is None:
            return 0
        return int(row[0])

    def migrate(self) -> None:
        """Apply every unapplied version inside one all-or-nothing transaction."""
        current = self.schema_version()
        pending = list(iter_versions(self._migrations, current))
        if not pending:
            logger.debug("Schema at version %d; nothing to migrate", current)
            return
        version = current
        try:
            with self._adapter.cursor() as cur:
                for version in pending:
                    for operation in self._migrations[version]:
                        cur.execute(operation)
                    cur.execute(f"DELETE FROM {SCHEMA_VERSION_TABLE}")
                    cur.execute(
                        self._adapter.sql(f"INSERT INTO {SCHEMA_VERSION_TABLE} (num) VALUES (?)"),
                        (version,),
                    )
        except StorageError as exc:
            raise MigrationError(f"migration {version} failed: {exc}") from exc
        logger.info(
            "Migrated %s schema from version %d to %d", self.dialect, current, pending[-1]
        )

    @property
    def entity(self) -> SQLEntityRepository:
        return self._entity

    @property
    def process(self) -> SQLProcessRepository:
        return self._process

    @property
    def session(self) -> SQLSessionRepository:
        return self._session

    @property
    def conversation(self) -> SQLConversationRepository:
        return self._conversation

    @property
    def message(self) -> SQLMessageRepository:
        return self._message

    @property
    def fact(self) -> SQLFactRepository:
        return self._fact
