import sqlite3

import mongomock
import pytest
from pymongo import ASCENDING, IndexModel
from pymongo.errors import OperationFailure

from memori.errors import MigrationError
from memori.storage.adapters import MongoAdapter, SQLAdapter
from memori.storage.mongo.driver import MongoDriver
from memori.storage.mongo.migrations import MONGO_MIGRATIONS, IndexOperation
from memori.storage.sql.driver import SQLDriver
from memori.storage.sql.migrations import (
    POSTGRES_MIGRATIONS,
    SQLITE_MIGRATIONS,
    latest_version,
)


def _tables(conn: sqlite3.Connection) -> set[str]:
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
    return {row[0] for row in rows}


def test_latest_version_is_highest_key() -> None:
    assert latest_version(SQLITE_MIGRATIONS) == 1
    assert latest_version(POSTGRES_MIGRATIONS) == 1
    assert latest_version({1: [], 4: [], 2: []}) == 4
    assert latest_version({}) == 0


def test_sqlite_migrate_creates_schema(sqlite_conn: sqlite3.Connection) -> None:
    driver = SQLDriver(SQLAdapter(sqlite_conn, "sqlite"))
    assert driver.schema_version() == 0
    driver.migrate()
    assert driver.schema_version() == 1
    assert {
        "memori_schema_version",
        "memori_entity",
        "memori_process",
        "memori_session",
        "memori_conversation",
        "memori_conversation_message",
        "memori_entity_fact",
    } <= _tables(sqlite_conn)
    rows = sqlite_conn.execute("SELECT num FROM memori_schema_version").fetchall()
    assert rows == [(1,)]


def test_sqlite_migrate_is_idempotent(sqlite_driver: SQLDriver) -> None:
    sqlite_driver.migrate()
    sqlite_driver.migrate()
    assert sqlite_driver.schema_version() == 1


def test_sqlite_migrate_applies_only_new_versions(sqlite_driver: SQLDriver) -> None:
    adapter = sqlite_driver.adapter
    migrations = {
        **SQLITE_MIGRATIONS,
        2: ["CREATE TABLE memori_extra (id INTEGER PRIMARY KEY)"],
    }
    upgraded = SQLDriver(adapter, migrations=migrations)
    upgraded.migrate()
    assert upgraded.schema_version() == 2
    assert "memori_extra" in _tables(adapter.conn)


def test_sqlite_failed_migration_rolls_back_everything(sqlite_conn: sqlite3.Connection) -> None:
    migrations = {
        **SQLITE_MIGRATIONS,
        2: [
            "CREATE TABLE memori_extra (id INTEGER PRIMARY KEY)",
            "CREATE TABLE broken (",
        ],
    }
    driver = SQLDriver(SQLAdapter(sqlite_conn, "sqlite"), migrations=migrations)
    with pytest.raises(MigrationError, match="migration 2"):
        driver.migrate()
    assert driver.schema_version() == 0
    assert "memori_extra" not in _tables(sqlite_conn)
    assert "memori_entity" not in _tables(sqlite_conn)


def test_mongo_migrate_creates_indexes_and_version(mongo_db: mongomock.Database) -> None:
    driver = MongoDriver(MongoAdapter(mongo_db, timeout=None))
    assert driver.schema_version() == 0
    driver.migrate()
    assert driver.schema_version() == 1
    assert mongo_db["memori_schema_version"].count_documents({}) == 1
    fact_indexes = mongo_db["memori_entity_fact"].index_information()
    assert any(
        info.get("unique") and info["key"] == [("entity_id", 1), ("uniq", 1)]
        for info in fact_indexes.values()
    )


def test_mongo_migrate_is_idempotent(mongo_driver: MongoDriver) -> None:
    mongo_driver.migrate()
    assert mongo_driver.schema_version() == 1
    assert mongo_driver.adapter.collection("memori_schema_version").count_documents({}) == 1


def test_mongo_migrate_tolerates_conflicting_indexes(
    mongo_db: mongomock.Database, monkeypatch: pytest.MonkeyPatch
) -> None:
    migrations = {
        1: MONGO_MIGRATIONS[1],
        2: [IndexOperation("memori_entity", IndexModel([("external_id", ASCENDING)]))],
    }
    driver = MongoDriver(MongoAdapter(mongo_db, timeout=None), migrations=migrations)
    conflict = OperationFailure("Index already exists with different options", code=85)
    original = mongomock.Collection.create_indexes

    def create_indexes(self, indexes, *args, **kwargs):
        if self.name == "memori_entity" and not indexes[0].document.get("unique"):
            raise conflict
        return original(self, indexes, *args, **kwargs)

    monkeypatch.setattr(mongomock.Collection, "create_indexes", create_indexes)
    driver.migrate()
    assert driver.schema_version() == 2


def test_mongo_migrate_wraps_other_failures(
    mongo_db: mongomock.Database, monkeypatch: pytest.MonkeyPatch
) -> None:
    driver = MongoDriver(MongoAdapter(mongo_db, timeout=None))

    def create_indexes(self, indexes, *args, **kwargs):
        raise OperationFailure("not authorized", code=13)

    monkeypatch.setattr(mongomock.Collection, "create_indexes", create_indexes)
    with pytest.raises(MigrationError, match="migration 1"):
        driver.migrate()
    assert driver.schema_version() == 0
