"""MongoDB repositories.

Integer surrogate ids come from the ``memori_counters`` collection so that
ids look the same to callers whichever backend is bound.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import timedelta
from typing import Any

from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from memori.errors import StorageError
from memori.ids import new_uuid
from memori.storage import clock
from memori.storage.adapters import MongoAdapter
from memori.storage.base import (
    ConversationRecord,
    FactCandidate,
    FactResult,
    MessageRecord,
    rank_facts,
)

COUNTERS_COLLECTION = "memori_counters"


def next_sequence(adapter: MongoAdapter, name: str) -> int:
    doc = adapter.collection(COUNTERS_COLLECTION).find_one_and_update(
        {"_id": name},
        {"$inc": {"seq": 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    if doc is None:
        raise StorageError(f"{COUNTERS_COLLECTION}: no sequence returned for {name}")
    return int(doc["seq"])


def _now() -> Any:
    return clock.to_naive_utc(clock.now())


class _ExternalIdRepository:
    collection = ""

    def __init__(self, adapter: MongoAdapter) -> None:
        self._adapter = adapter

    def create(self, external_id: str) -> int:
        existing = self.get_by_external_id(external_id)
        if existing is not None:
            return existing
        with self._adapter.operation():
            seq = next_sequence(self._adapter, self.collection)
            try:
                self._adapter.collection(self.collection).insert_one(
                    {
                        "id": seq,
                        "uuid": new_uuid(),
                        "external_id": external_id,
                        "date_created": _now(),
                    }
                )
            except DuplicateKeyError:
                pass
            else:
                return seq
        existing = self.get_by_external_id(external_id)
        if existing is None:
            raise StorageError(f"{self.collection}: insert for {external_id!r} returned no id")
        return existing

    def get_by_external_id(self, external_id: str) -> int | None:
        with self._adapter.operation():
            doc = self._adapter.collection(self.collection).find_one(
                {"external_id": external_id}, {"id": 1}
            )
        return int(doc["id"]) if doc is not None else None


class MongoEntityRepository(_ExternalIdRepository):
    collection = "memori_entity"


class MongoProcessRepository(_ExternalIdRepository):
    collection = "memori_process"


class MongoSessionRepository:
    collection = "memori_session"

    def __init__(self, adapter: MongoAdapter) -> None:
        self._adapter = adapter

    def create(self, entity_id: int | None, process_id: int | None, session_uuid: str) -> int:
        existing = self.get_by_uuid(session_uuid)
        if existing is not None:
            return existing
        with self._adapter.operation():
            seq = next_sequence(self._adapter, self.collection)
            doc: dict[str, Any] = {"id": seq, "uuid": session_uuid, "date_created": _now()}
            if entity_id is not None:
                doc["entity_id"] = entity_id
            if process_id is not None:
                doc["process_id"] = process_id
            try:
                self._adapter.collection(self.collection).insert_one(doc)
            except DuplicateKeyError:
                pass
            else:
                return seq
        existing = self.get_by_uuid(session_uuid)
        if existing is None:
            raise StorageError(f"{self.collection}: insert for {session_uuid} returned no id")
        return existing

    def get_by_uuid(self, session_uuid: str) -> int | None:
        with self._adapter.operation():
            doc = self._adapter.collection(self.collection).find_one(
                {"uuid": session_uuid}, {"id": 1}
            )
        return int(doc["id"]) if doc is not None else None


class MongoConversationRepository:
    collection = "memori_conversation"

    def __init__(self, adapter: MongoAdapter) -> None:
        self._adapter = adapter

    def _latest(self, session_id: int) -> dict[str, Any] | None:
        with self._adapter.operation():
            return self._adapter.collection(self.collection).find_one(
                {"session_id": session_id},
                sort=[("date_created", DESCENDING), ("id", DESCENDING)],
            )

    def create(self, session_id: int, ttl_minutes: int) -> int:
        latest = self._latest(session_id)
        now = clock.now()
        if latest is not None:
            created = clock.to_utc(latest.get("date_created"))
            if created is not None and now - created < timedelta(minutes=ttl_minutes):
                return int(latest["id"])
        with self._adapter.operation():
            seq = next_sequence(self._adapter, self.collection)
            self._adapter.collection(self.collection).insert_one(
                {
                    "id": seq,
                    "uuid": new_uuid(),
                    "session_id": session_id,
                    "date_created": clock.to_naive_utc(now),
                }
            )
        return seq

    def get_by_session_id(self, session_id: int) -> int | None:
        latest = self._latest(session_id)
        return int(latest["id"]) if latest is not None else None

    def get(self, conversation_id: int) -> ConversationRecord | None:
        with self._adapter.operation():
            doc = self._adapter.collection(self.collection).find_one({"id": conversation_id})
        if doc is None:
            return None
        return ConversationRecord(
            id=int(doc["id"]),
            session_id=int(doc["session_id"]),
            summary=doc.get("summary"),
            date_created=clock.to_utc(doc.get("date_created")),
            date_updated=clock.to_utc(doc.get("date_updated")),
        )

    def update_summary(self, conversation_id: int, summary: str) -> None:
        with self._adapter.operation():
            self._adapter.collection(self.collection).update_one(
                {"id": conversation_id},
                {"$set": {"summary": summary, "date_updated": _now()}},
            )


class MongoMessageRepository:
    collection = "memori_conversation_message"

    def __init__(self, adapter: MongoAdapter) -> None:
        self._adapter = adapter

    def create(self, conversation_id: int, role: str, msg_type: str, content: str) -> None:
        with self._adapter.operation():
            seq = next_sequence(self._adapter, self.collection)
            self._adapter.collection(self.collection).insert_one(
                {
                    "id": seq,
                    "uuid": new_uuid(),
                    "conversation_id": conversation_id,
                    "role": role,
                    "type": msg_type,
                    "content": content,
                    "date_created": _now(),
                }
            )

    def list_by_conversation(self, conversation_id: int) -> list[MessageRecord]:
        with self._adapter.operation():
            docs = list(
                self._adapter.collection(self.collection)
                .find({"conversation_id": conversation_id})
                .sort("id", 1)
            )
        return [
            MessageRecord(
                conversation_id=int(doc["conversation_id"]),
                role=str(doc["role"]),
                type=str(doc.get("type") or ""),
                content=str(doc["content"]),
                date_created=clock.to_utc(doc.get("date_created")),
            )
            for doc in docs
        ]


class MongoFactRepository:
    collection = "memori_entity_fact"

    def __init__(self, adapter: MongoAdapter) -> None:
        self._adapter = adapter

    def create(self, entity_id: int, content: str, embedding: bytes, uniq: str) -> None:
        now = _now()
        with self._adapter.operation():
            self._adapter.collection(self.collection).insert_one(
                {
                    "uuid": new_uuid(),
                    "entity_id": entity_id,
                    "content": content,
                    "content_embedding": bytes(embedding),
                    "num_times": 1,
                    "date_last_time": now,
                    "uniq": uniq,
                    "date_created": now,
                }
            )

    def upsert(self, entity_id: int, content: str, embedding: bytes, uniq: str) -> None:
        now = _now()
        query = {"entity_id": entity_id, "uniq": uniq}
        update = {
            "$setOnInsert": {"uuid": new_uuid(), "date_created": now},
            "$set": {
                "content": content,
                "content_embedding": bytes(embedding),
                "date_last_time": now,
                "date_updated": now,
            },
            "$inc": {"num_times": 1},
        }
        collection = self._adapter.collection(self.collection)
        with self._adapter.operation():
            try:
                collection.update_one(query, update, upsert=True)
            except DuplicateKeyError:
                # A concurrent upsert inserted the row first; this one now matches it.
                collection.update_one(query, update, upsert=True)

    def search_by_embedding(
        self,
        entity_id: int,
        query_vector: Sequence[float],
        limit: int,
        scan_limit: int,
    ) -> list[FactResult]:
        if scan_limit <= 0:
            return []
        with self._adapter.operation():
            docs = list(
                self._adapter.collection(self.collection)
                .find(
                    {"entity_id": entity_id},
                    {"content": 1, "content_embedding": 1, "num_times": 1, "date_last_time": 1},
                )
                .sort("date_last_time", DESCENDING)
                .limit(scan_limit)
            )
        candidates = [
            FactCandidate(
                content=str(doc.get("content", "")),
                embedding=bytes(doc["content_embedding"])
                if doc.get("content_embedding") is not None
                else None,
                num_times=int(doc.get("num_times", 0)),
                date_last_time=clock.to_utc(doc.get("date_last_time")),
            )
            for doc in docs
        ]
        return rank_facts(candidates, query_vector, limit)
