"""Memori facade: attribution, sessions, recording and recall."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from memori.augmentation import AugmentationManager
from memori.config import Settings, get_settings, validate_settings
from memori.embed import Embedder, new_embedder
from memori.recall import Recall
from memori.session import RuntimeConfig
from memori.storage.manager import StorageManager
from memori.types import ConversationPayload, Fact, Message
from memori.writer import Writer

logger = logging.getLogger(__name__)


def _embedder_from_settings(settings: Settings) -> Embedder:
    return new_embedder(
        settings.embedding_provider,
        api_key=settings.embedding_api_key,
        base_url=settings.embedding_base_url,
        model=settings.embedding_model,
        dimension=settings.embedding_dimension,
        timeout=settings.timeout_seconds,
    )


class Memori:
    """Memory layer bound to at most one storage connection.

    ``conn`` may be a ``sqlite3.Connection``, a ``psycopg.Connection`` or a
    ``pymongo`` ``Database``; any other type needs a registered adapter. With
    no connection every write is a no-op and recall returns nothing. Call
    ``storage.build()`` once to create or upgrade the schema.
    """

    def __init__(
        self,
        conn: Any = None,
        *,
        settings: Settings | None = None,
        embedder: Embedder | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        validate_settings(self.settings)
        self.config = RuntimeConfig.from_settings(self.settings)
        self.storage = StorageManager(self.settings).start(conn)
        self.embedder = embedder or _embedder_from_settings(self.settings)
        self.augmentation = AugmentationManager(self.storage, self.embedder, self.settings)

    def attribution(self, entity_id: str | None = None, process_id: str | None = None) -> Memori:
        self.config.set_attribution(entity_id, process_id)
        return self

    def new_session(self) -> Memori:
        self.config.new_session()
        return self

    def set_session(self, session_id: str) -> Memori:
        self.config.set_session(session_id)
        return self

    @property
    def session_id(self) -> str:
        return self.config.session_id

    def writer(self) -> Writer:
        return Writer(self)

    def record(
        self,
        messages: Iterable[Message],
        response: Message | None = None,
    ) -> None:
        self.writer().execute(ConversationPayload(messages=list(messages), response=response))

    def recall(self, query: str, limit: int = 0) -> list[Fact]:
        return Recall(self).search_facts(query, limit)

    def close(self, timeout: float | None = None) -> bool:
        return self.augmentation.shutdown(timeout)

    async def aclose(self, timeout: float | None = None) -> bool:
        return await self.augmentation.ashutdown(timeout)
