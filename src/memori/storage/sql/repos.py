"""SQL repositories (SQLite and PostgreSQL).

Queries use ``?`` placeholders and go through ``SQLAdapter.sql()``; the only
other dialect difference is how the fact upsert refers to the existing row.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import timedelta

from memori.errors import StorageError
from memori.ids import new_uuid
from memori.storage import clock
from memori.storage.adapters import POSTGRES, SQLAdapter
from memori.storage.base import (
    ConversationRecord,
    FactCandidate,
    FactResult,
    MessageRecord,
    rank_facts,
)


class _ExternalIdRepository:
    """Get-or-create keyed by a caller supplied external id."""

    table = ""

    def __init__(self, adapter: SQLAdapter) -> None:
        self._adapter = adapter

    def create(self, external_id: str) -> int:
        existing = self.get_by_external_id(external_id)
        if existing is not None:
            return existing
        with self._adapter.cursor() as cur:
            cur.execute(
                self._adapter.sql(
                    f"INSERT INTO {self.table} (uuid, external_id, date_created) "
                    "VALUES (?, ?, ?) ON CONFLICT (external_id) DO NOTHING RETURNING id"
                ),
                (new_uuid(), external_id, self._adapter.timestamp(clock.now())),
            )
            row = cur.fetchone()
        if row is not None:
            return int(row[0])
        # Lost a race against a concurrent insert of the same external id.
        existing = self.get_by_external_id(external_id)
        if existing is None:
            raise StorageError(f"{self.table}: insert for {external_id!r} returned no id")
        return existing

    def get_by_external_id(self, external_id: str) -> int | None:
        with self._adapter.cursor() as cur:
            cur.execute(
                self._adapter.sql(f"SELECT id FROM {self.table} WHERE external_id = ?"),
                (external_id,),
            )
            row = cur.fetchone()
        return int(row[0]) if row is not None else None


class SQLEntityRepository(_ExternalIdRepository):
    table = "memori_entity"


class SQLProcessRepository(_ExternalIdRepository):
    table = "memori_process"


class SQLSessionRepository:
    def __init__(self, adapter: SQLAdapter) -> None:
        self._adapter = adapter

    def create(self, entity_id: int | None, process_id: int | None, session_uuid: str) -> int:
        existing = self.get_by_uuid(session_uuid)
        if existing is not None:
            return existing
        with self._adapter.cursor() as cur:
            cur.execute(
                self._adapter.sql(
                    "INSERT INTO memori_session (uuid, entity_id, process_id, date_created) "
                    "VALUES (?, ?, ?, ?) ON CONFLICT (uuid) DO NOTHING RETURNING id"
                ),
                (session_uuid, entity_id, process_id, self._adapter.timestamp(clock.now())),
            )
            row = cur.fetchone()
        if row is not None:
            return int(row[0])
        existing = self.get_by_uuid(session_uuid)
        if existing is None:
            raise StorageError(f"memori_session: insert for {session_uuid} returned no id")
        return existing

    def get_by_uuid(self, session_uuid: str) -> int | None:
        with self._adapter.cursor() as cur:
            cur.execute(
                self._adapter.sql("SELECT id FROM memori_session WHERE uuid = ?"),
                (session_uuid,),
            )
            row = cur.fetchone()
        return int(row[0]) if row is not None else None


class SQLConversationRepository:
    def __init__(self, adapter: SQLAdapter) -> None:
        self._adapter = adapter

    def _latest(self, session_id: int) -> tuple[int, object] | None:
        with self._adapter.cursor() as cur:
            cur.execute(
                self._adapter.sql(
                    "SELECT id, date_created FROM memori_conversation "
                    "WHERE session_id = ? ORDER BY date_created DESC, id DESC LIMIT 1"
                ),
                (session_id,),
            )
            row = cur.fetchone()
        if row is None:
            return None
        return int(row[0]), row[1]

    def create(self, session_id: int, ttl_minutes: int) -> int:
        latest = self._latest(session_id)
        now = clock.now()
        if latest is not None:
            conversation_id, raw_created = latest
            created = clock.to_utc(raw_created)
            if created is not None and now - created < timedelta(minutes=ttl_minutes):
                return conversation_id
        with self._adapter.cursor() as cur:
            cur.execute(
                self._adapter.sql(
                    "INSERT INTO memori_conversation (uuid, session_id, date_created) "
                    "VALUES (?, ?, ?) RETURNING id"
                ),
                (new_uuid(), session_id, self._adapter.timestamp(now)),
            )
            row = cur.fetchone()
        if row is None:
            raise StorageError("memori_conversation: insert returned no id")
        return int(row[0])

    def get_by_session_id(self, session_id: int) -> int | None:
        latest = self._latest(session_id)
        return latest[0] if latest is not None else None

    def get(self, conversation_id: int) -> ConversationRecord | None:
        with self._adapter.cursor() as cur:
            cur.execute(
                self._adapter.sql(
                    "SELECT id, session_id, summary, date_created, date_updated "
                    "FROM memori_conversation WHERE id = ?"
                ),
                (conversation_id,),
            )
            row = cur.fetchone()
        if row is None:
            return None
        return ConversationRecord(
            id=int(row[0]),
            session_id=int(row[1]),
            summary=row[2],
            date_created=clock.to_utc(row[3]),
            date_updated=clock.to_utc(row[4]),
        )

    def update_summary(self, conversation_id: int, summary: str) -> None:
        with self._adapter.cursor() as cur:
            cur.execute(
                self._adapter.sql(
                    "UPDATE memori_conversation SET summary = ?, date_updated = ? WHERE id = ?"
                ),
                (summary, self._adapter.timestamp(clock.now()), conversation_id),
            )


class SQLMessageRepository:
    def __init__(self, adapter: SQLAdapter) -> None:
        self._adapter = adapter

    def create(self, conversation_id: int, role: str, msg_type: str, content: str) -> None:
        with self._adapter.cursor() as cur:
            cur.execute(
                self._adapter.sql(
                    "INSERT INTO memori_conversation_message "
                    "(uuid, conversation_id, role, type, content, date_created) "
                    "VALUES (?, ?, ?, ?, ?, ?)"
                ),
                (
                    new_uuid(),
                    conversation_id,
                    role,
                    msg_type,
                    content,
                    self._adapter.timestamp(clock.now()),
                ),
            )

    def list_by_conversation(self, conversation_id: int) -> list[MessageRecord]:
        with self._adapter.cursor() as cur:
            cur.execute(
                self._adapter.sql(
                    "SELECT conversation_id, role, type, content, date_created "
                    "FROM memori_conversation_message WHERE conversation_id = ? ORDER BY id"
                ),
                (conversation_id,),
            )
            rows = cur.fetchall()
        return [
            MessageRecord(
                conversation_id=int(row[0]),
                role=str(row[1]),
                type=str(row[2] or ""),
                content=str(row[3]),
                date_created=clock.to_utc(row[4]),
            )
            for row in rows
        ]


_FACT_INSERT = (
    "INSERT INTO memori_entity_fact "
    "(uuid, entity_id, content, content_embedding, num_times, date_last_time, uniq, date_created) "
    "VALUES (?, ?, ?, ?, 1, ?, ?, ?)"
)

# SQLite resolves bare column names in DO UPDATE to the existing row;
# PostgreSQL needs the table qualifier to tell it apart from EXCLUDED.
_FACT_UPSERT_SQLITE = (
    _FACT_INSERT + " ON CONFLICT (entity_id, uniq) DO UPDATE SET "
    "num_times = num_times + 1, "
    "content = excluded.content, "
    "content_embedding = excluded.content_embedding, "
    "date_last_time = excluded.date_last_time, "
    "date_updated = excluded.date_last_time"
)
_FACT_UPSERT_POSTGRES = (
    _FACT_INSERT + " ON CONFLICT (entity_id, uniq) DO UPDATE SET "
    "num_times = memori_entity_fact.num_times + 1, "
    "content = EXCLUDED.content, "
    "content_embedding = EXCLUDED.content_embedding, "
    "date_last_time = EXCLUDED.date_last_time, "
    "date_updated = EXCLUDED.date_last_time"
)


class SQLFactRepository:
    def __init__(self, adapter: SQLAdapter) -> None:
        self._adapter = adapter

    def _params(self, entity_id: int, content: str, embedding: bytes, uniq: str) -> tuple:
        stamp = self._adapter.timestamp(clock.now())
        return (new_uuid(), entity_id, content, bytes(embedding), stamp, uniq, stamp)

    def create(self, entity_id: int, content: str, embedding: bytes, uniq: str) -> None:
        with self._adapter.cursor() as cur:
            cur.execute(
                self._adapter.sql(_FACT_INSERT),
                self._params(entity_id, content, embedding, uniq),
            )

    def upsert(self, entity_id: int, content: str, embedding: bytes, uniq: str) -> None:
        query = _FACT_UPSERT_POSTGRES if self._adapter.dialect == POSTGRES else _FACT_UPSERT_SQLITE
        with self._adapter.cursor() as cur:
            cur.execute(
                self._adapter.sql(query),
                self._params(entity_id, content, embedding, uniq),
            )

    def search_by_embedding(
        self,
        entity_id: int,
        query_vector: Sequence[float],
        limit: int,
        scan_limit: int,
    ) -> list[FactResult]:
        with self._adapter.cursor() as cur:
            cur.execute(
                self._adapter.sql(
                    "SELECT content, content_embedding, num_times, date_last_time "
                    "FROM memori_entity_fact WHERE entity_id = ? "
                    "ORDER BY date_last_time DESC LIMIT ?"
                ),
                (entity_id, scan_limit),
            )
            rows = cur.fetchall()
        candidates = [
            FactCandidate(
                content=str(row[0]),
                embedding=bytes(row[1]) if row[1] is not None else None,
                num_times=int(row[2]),
                date_last_time=clock.to_utc(row[3]),
            )
            for row in rows
        ]
        return rank_facts(candidates, query_vector, limit)
