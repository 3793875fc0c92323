"""Versioned MongoDB index definitions."""

from __future__ import annotations

from dataclasses import dataclass

from pymongo import ASCENDING, DESCENDING, IndexModel


@dataclass(slots=True, frozen=True)
class IndexOperation:
    collection: str
    index: IndexModel


def _unique(collection: str, *keys: tuple[str, int]) -> IndexOperation:
    return IndexOperation(collection, IndexModel(list(keys), unique=True))


def _plain(collection: str, *keys: tuple[str, int], name: str) -> IndexOperation:
    return IndexOperation(collection, IndexModel(list(keys), name=name))


MONGO_MIGRATIONS: dict[int, list[IndexOperation]] = {
    1: [
        _unique("memori_schema_version", ("num", ASCENDING)),
        _unique("memori_entity", ("id", ASCENDING)),
        _unique("memori_entity", ("external_id", ASCENDING)),
        _unique("memori_entity", ("uuid", ASCENDING)),
        _unique("memori_process", ("id", ASCENDING)),
        _unique("memori_process", ("external_id", ASCENDING)),
        _unique("memori_process", ("uuid", ASCENDING)),
        _unique("memori_session", ("id", ASCENDING)),
        _unique("memori_session", ("uuid", ASCENDING)),
        _plain("memori_session", ("entity_id", ASCENDING), name="idx_memori_session_entity_id"),
        _plain(
            "memori_session", ("process_id", ASCENDING), name="idx_memori_session_process_id"
        ),
        _unique("memori_conversation", ("id", ASCENDING)),
        _unique("memori_conversation", ("uuid", ASCENDING)),
        _plain(
            "memori_conversation",
            ("session_id", ASCENDING),
            ("date_created", DESCENDING),
            name="idx_memori_conversation_session_created",
        ),
        _unique("memori_conversation_message", ("uuid", ASCENDING)),
        _plain(
            "memori_conversation_message",
            ("conversation_id", ASCENDING),
            ("id", ASCENDING),
            name="idx_memori_conversation_message_conversation_id",
        ),
        _unique("memori_entity_fact", ("uuid", ASCENDING)),
        _unique("memori_entity_fact", ("entity_id", ASCENDING), ("uniq", ASCENDING)),
        _plain(
            "memori_entity_fact",
            ("entity_id", ASCENDING),
            ("num_times", DESCENDING),
            ("date_last_time", DESCENDING),
            name="idx_memori_entity_fact_entity_id_freq",
        ),
    ],
}


def latest_version(migrations: dict[int, list[IndexOperation]]) -> int:
    return max(migrations, default=0)
