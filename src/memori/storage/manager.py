"""Binds one backend connection to its adapter and driver."""

from __future__ import annotations

import logging
from typing import Any

from memori.config import Settings, get_settings
from memori.storage import registry
from memori.storage.base import Adapter, Driver

logger = logging.getLogger(__name__)


class StorageManager:
    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._adapter: Adapter | None = None
        self._driver: Driver | None = None

    @property
    def adapter(self) -> Adapter | None:
        return self._adapter

    @property
    def driver(self) -> Driver | None:
        return self._driver

    @property
    def dialect(self) -> str:
        return self._adapter.dialect if self._adapter is not None else ""

    @property
    def bound(self) -> bool:
        return self._driver is not None

    def start(self, conn: Any) -> StorageManager:
        """Resolve ``conn`` to an adapter and driver; no-op for ``None``.

        Every repository call made through the adapter is bounded by
        ``storage_timeout_seconds``.
        """
        if conn is None:
            return self
        adapter = registry.resolve_adapter(conn)
        adapter.timeout = self._settings.storage_timeout_seconds
        driver = registry.resolve_driver(adapter)
        self._adapter = adapter
        self._driver = driver
        logger.info("Storage bound to %s", adapter.dialect)
        return self

    def build(self) -> StorageManager:
        if self._driver is None:
            return self
        self._driver.migrate()
        return self

    def repositories(self) -> Driver | None:
        return self._driver
