"""Backend registry: connection handle -> Adapter -> Driver."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from memori.errors import UnsupportedBackendError, UnsupportedDialectError
from memori.storage.base import Adapter, Driver

logger = logging.getLogger(__name__)

AdapterMatcher = Callable[[Any], bool]
AdapterFactory = Callable[[Any], Adapter]
DriverFactory = Callable[[Adapter], Driver]


@dataclass(slots=True, frozen=True)
class _AdapterEntry:
    match: AdapterMatcher
    factory: AdapterFactory


_adapters: list[_AdapterEntry] = []
_drivers: dict[str, DriverFactory] = {}


def register_adapter(match: AdapterMatcher, factory: AdapterFactory) -> None:
    """Register a matcher/factory pair; matchers are tried in registration order."""
    _adapters.append(_AdapterEntry(match=match, factory=factory))


def register_driver(dialect: str, factory: DriverFactory) -> None:
    _drivers[dialect] = factory


def resolve_adapter(conn: Any) -> Adapter:
    for entry in _adapters:
        if entry.match(conn):
            return entry.factory(conn)
    raise UnsupportedBackendError(
        f"no adapter registered for connection type: {type(conn).__name__}"
    )


def resolve_driver(adapter: Adapter) -> Driver:
    dialect = adapter.dialect
    factory = _drivers.get(dialect)
    if factory is None:
        raise UnsupportedDialectError(f"no driver registered for dialect: {dialect}")
    logger.debug("Resolved storage driver for dialect %s", dialect)
    return factory(adapter)


def registered_dialects() -> list[str]:
    return sorted(_drivers)


def _register_builtins() -> None:
    from memori.storage import adapters
    from memori.storage.mongo.driver import MongoDriver
    from memori.storage.sql.driver import SQLDriver

    register_adapter(adapters.is_sqlite_connection, adapters.new_sqlite_adapter)
    register_adapter(adapters.is_postgres_connection, adapters.new_postgres_adapter)
    register_adapter(adapters.is_mongo_database, adapters.new_mongo_adapter)

    register_driver(adapters.SQLITE, SQLDriver.from_adapter)
    register_driver(adapters.POSTGRES, SQLDriver.from_adapter)
    register_driver(adapters.MONGODB, MongoDriver.from_adapter)


def reset() -> None:
    """Drop custom registrations and restore the built-in backends (for testing)."""
    _adapters.clear()
    _drivers.clear()
    _register_builtins()


_register_builtins()
