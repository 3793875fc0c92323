"""Semantic recall over an entity's facts."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from memori.types import Fact

if TYPE_CHECKING:
    from memori.memori import Memori

logger = logging.getLogger(__name__)

SCAN_FACTOR = 10


class Recall:
    def __init__(self, memori: Memori) -> None:
        self._memori = memori

    def search_facts(self, query: str, limit: int = 0) -> list[Fact]:
        driver = self._memori.storage.repositories()
        if driver is None:
            return []
        config = self._memori.config
        entity_ref, _, _ = config.identity()
        if not entity_ref:
            return []
        if limit <= 0:
            limit = config.recall_limit

        entity_id = config.cached().entity_id
        if entity_id is None:
            entity_id = driver.entity.get_by_external_id(entity_ref)
        if entity_id is None:
            logger.debug("Recall for unknown entity %s", entity_ref)
            return []

        query_vector = self._memori.embedder.embed(query)
        results = driver.fact.search_by_embedding(
            entity_id, query_vector, limit, max(limit * SCAN_FACTOR, limit)
        )
        return [
            Fact(
                content=item.content,
                score=item.score,
                num_times=item.num_times,
                date_last_time=item.date_last_time,
            )
            for item in results
        ]
