import sqlite3
from collections.abc import Iterator
from pathlib import Path

import mongomock
import pytest

from memori.config import get_settings
from memori.memori import Memori
from memori.storage import registry
from memori.storage.adapters import MongoAdapter, SQLAdapter, new_mongo_adapter
from memori.storage.mongo.driver import MongoDriver
from memori.storage.sql.driver import SQLDriver


@pytest.fixture(autouse=True)
def test_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("MEMORI_EMBEDDING_PROVIDER", "hash")
    monkeypatch.setenv("MEMORI_AUGMENTATION_WORKERS", "2")
    monkeypatch.setenv("MEMORI_WRITER_RETRY_BACKOFF_MS", "0")
    monkeypatch.delenv("SILICONFLOW_API_KEY", raising=False)
    monkeypatch.delenv("SILICONFLOW_BASE_URL", raising=False)
    get_settings.cache_clear()
    registry.reset()
    yield
    get_settings.cache_clear()
    registry.reset()


def is_mongomock_database(conn: object) -> bool:
    return isinstance(conn, mongomock.Database)


@pytest.fixture
def register_mongomock() -> None:
    registry.register_adapter(is_mongomock_database, new_mongo_adapter)


@pytest.fixture
def sqlite_conn(tmp_path: Path) -> Iterator[sqlite3.Connection]:
    conn = sqlite3.connect(tmp_path / "memori.db", check_same_thread=False)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture
def sqlite_driver(sqlite_conn: sqlite3.Connection) -> SQLDriver:
    driver = SQLDriver(SQLAdapter(sqlite_conn, "sqlite"))
    driver.migrate()
    return driver


@pytest.fixture
def mongo_db() -> mongomock.Database:
    return mongomock.MongoClient()["memori_test"]


@pytest.fixture
def mongo_driver(mongo_db: mongomock.Database) -> MongoDriver:
    driver = MongoDriver(MongoAdapter(mongo_db, timeout=None))
    driver.migrate()
    return driver


@pytest.fixture(params=["sqlite_driver", "mongo_driver"], ids=["sqlite", "mongodb"])
def driver(request: pytest.FixtureRequest):
    return request.getfixturevalue(request.param)


@pytest.fixture
def memori_sqlite(sqlite_conn: sqlite3.Connection) -> Iterator[Memori]:
    instance = Memori(sqlite_conn)
    instance.storage.build()
    try:
        yield instance
    finally:
        instance.close(timeout=5)
