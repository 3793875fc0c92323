"""MongoDB driver: index migrations and repository set."""

from __future__ import annotations

import logging
from contextlib import AbstractContextManager

from pymongo.errors import OperationFailure

from memori.errors import MigrationError, StorageError, UnsupportedDialectError
from memori.storage.adapters import MongoAdapter
from memori.storage.base import Adapter, Driver, iter_versions
from memori.storage.mongo.migrations import MONGO_MIGRATIONS, IndexOperation
from memori.storage.mongo.repos import (
    MongoConversationRepository,
    MongoEntityRepository,
    MongoFactRepository,
    MongoMessageRepository,
    MongoProcessRepository,
    MongoSessionRepository,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION_COLLECTION = "memori_schema_version"

# IndexOptionsConflict, IndexKeySpecsConflict, DuplicateKey
_IGNORED_INDEX_CODES = frozenset({85, 86, 11000})


class MongoDriver(Driver):
    def __init__(
        self,
        adapter: MongoAdapter,
        *,
        migrations: dict[int, list[IndexOperation]] | None = None,
    ) -> None:
        self._adapter = adapter
        self._migrations = MONGO_MIGRATIONS if migrations is None else migrations
        self._entity = MongoEntityRepository(adapter)
        self._process = MongoProcessRepository(adapter)
        self._session = MongoSessionRepository(adapter)
        self._conversation = MongoConversationRepository(adapter)
        self._message = MongoMessageRepository(adapter)
        self._fact = MongoFactRepository(adapter)

    @classmethod
    def from_adapter(cls, adapter: Adapter) -> MongoDriver:
        if not isinstance(adapter, MongoAdapter):
            raise UnsupportedDialectError(
                f"mongodb driver expects MongoAdapter, got {type(adapter).__name__}"
            )
        return cls(adapter)

    @property
    def dialect(self) -> str:
        return self._adapter.dialect

    @property
    def adapter(self) -> MongoAdapter:
        return self._adapter

    def transaction(self) -> AbstractContextManager[None]:
        return self._adapter.transaction()

    def schema_version(self) -> int:
        with self._adapter.operation():
            doc = self._adapter.collection(SCHEMA_VERSION_COLLECTION).find_one(
                {}, sort=[("num", -1)]
            )
        if doc is None or doc.get("num") is None:
            return 0
        return int(doc["num"])

    def _apply(self, operation: IndexOperation) -> None:
        try:
            self._adapter.collection(operation.collection).create_indexes([operation.index])
        except OperationFailure as exc:
            if exc.code not in _IGNORED_INDEX_CODES:
                raise
            logger.warning(
                "Skipping index on %s: %s", operation.collection, exc.details or exc
            )

    def migrate(self) -> None:
        """Create indexes for every unapplied version, recording each version as it lands.

        Index creation is idempotent, so a version that fails part way is
        simply re-run on the next call.
        """
        current = self.schema_version()
        pending = list(iter_versions(self._migrations, current))
        if not pending:
            logger.debug("Schema at version %d; nothing to migrate", current)
            return
        for version in pending:
            try:
                with self._adapter.operation():
                    for operation in self._migrations[version]:
                        self._apply(operation)
                    self._adapter.collection(SCHEMA_VERSION_COLLECTION).replace_one(
                        {}, {"num": version}, upsert=True
                    )
            except StorageError as exc:
                raise MigrationError(f"migration {version} failed: {exc}") from exc
        logger.info("Migrated mongodb schema from version %d to %d", current, pending[-1])

    @property
    def entity(self) -> MongoEntityRepository:
        return self._entity

    @property
    def process(self) -> MongoProcessRepository:
        return self._process

    @property
    def session(self) -> MongoSessionRepository:
        return self._session

    @property
    def conversation(self) -> MongoConversationRepository:
        return self._conversation

    @property
    def message(self) -> MongoMessageRepository:
        return self._message

    @property
    def fact(self) -> MongoFactRepository:
        return self._fact
