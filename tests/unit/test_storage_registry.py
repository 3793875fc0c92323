import sqlite3

import mongomock
import pytest

from memori.config import Settings
from memori.errors import UnsupportedBackendError, UnsupportedDialectError
from memori.memori import Memori
from memori.storage import registry
from memori.storage.adapters import MongoAdapter, SQLAdapter, new_mongo_adapter
from memori.storage.manager import StorageManager
from memori.storage.mongo.driver import MongoDriver
from memori.storage.sql.driver import SQLDriver


class _CustomAdapter:
    dialect = "custom"

    def classify(self, exc: BaseException):
        raise NotImplementedError


def test_builtin_dialects_registered() -> None:
    assert registry.registered_dialects() == ["mongodb", "postgres", "sqlite"]


def test_resolve_sqlite_connection() -> None:
    conn = sqlite3.connect(":memory:")
    try:
        adapter = registry.resolve_adapter(conn)
        driver = registry.resolve_driver(adapter)
    finally:
        conn.close()
    assert isinstance(adapter, SQLAdapter)
    assert adapter.dialect == "sqlite"
    assert isinstance(driver, SQLDriver)


def test_unknown_connection_type_is_rejected() -> None:
    with pytest.raises(UnsupportedBackendError, match="object"):
        registry.resolve_adapter(object())


def test_unknown_dialect_is_rejected() -> None:
    with pytest.raises(UnsupportedDialectError, match="custom"):
        registry.resolve_driver(_CustomAdapter())


def test_matchers_are_tried_in_registration_order(mongo_db: mongomock.Database) -> None:
    calls: list[str] = []

    def first(conn: object) -> bool:
        calls.append("first")
        return isinstance(conn, mongomock.Database)

    def second(conn: object) -> bool:
        calls.append("second")
        return True

    registry.register_adapter(first, new_mongo_adapter)
    registry.register_adapter(second, lambda conn: _CustomAdapter())
    adapter = registry.resolve_adapter(mongo_db)
    assert isinstance(adapter, MongoAdapter)
    assert calls[-1] == "first"
    assert isinstance(registry.resolve_driver(adapter), MongoDriver)


def test_custom_driver_registration_and_reset() -> None:
    sentinel = object()
    registry.register_driver("custom", lambda adapter: sentinel)
    assert registry.resolve_driver(_CustomAdapter()) is sentinel
    registry.reset()
    with pytest.raises(UnsupportedDialectError):
        registry.resolve_driver(_CustomAdapter())


def test_manager_without_connection_is_unbound() -> None:
    manager = StorageManager().start(None)
    assert manager.dialect == ""
    assert manager.adapter is None
    assert manager.driver is None
    assert manager.repositories() is None
    assert manager.bound is False
    manager.build()


def test_manager_binds_and_builds_sqlite(sqlite_conn: sqlite3.Connection) -> None:
    manager = StorageManager().start(sqlite_conn)
    assert manager.dialect == "sqlite"
    assert manager.repositories() is manager.driver
    manager.build()
    assert manager.driver is not None
    assert manager.driver.schema_version() == 1


def test_manager_binds_mongomock(register_mongomock: None, mongo_db: mongomock.Database) -> None:
    manager = StorageManager().start(mongo_db)
    assert manager.dialect == "mongodb"
    manager.build()
    assert manager.driver is not None
    assert manager.driver.schema_version() == 1


def test_manager_propagates_unsupported_backend() -> None:
    with pytest.raises(UnsupportedBackendError):
        StorageManager().start({"not": "a connection"})



def test_memori_settings_bound_the_mongodb_adapter(
    register_mongomock: None, mongo_db: mongomock.Database
) -> None:
    instance = Memori(mongo_db, settings=Settings(storage_timeout_seconds=1.0))
    assert instance.storage.adapter is not None
    assert instance.storage.adapter.timeout == 1.0


def test_memori_settings_bound_the_sqlite_adapter(sqlite_conn: sqlite3.Connection) -> None:
    instance = Memori(sqlite_conn, settings=Settings(storage_timeout_seconds=0.25))
    assert instance.storage.adapter is not None
    assert instance.storage.adapter.timeout == 0.25
    assert sqlite_conn.execute("PRAGMA busy_timeout").fetchone() == (250,)
