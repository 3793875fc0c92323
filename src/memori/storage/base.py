"""Repository contracts shared by every storage dialect."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator, Mapping, Sequence
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from memori.embed.vectors import cosine_similarity, decode_embedding
from memori.errors import StorageError

_EPOCH = datetime.min.replace(tzinfo=UTC)


@dataclass(slots=True)
class FactResult:
    content: str
    score: float
    num_times: int
    date_last_time: datetime | None


@dataclass(slots=True)
class ConversationRecord:
    id: int
    session_id: int
    summary: str | None
    date_created: datetime | None
    date_updated: datetime | None


@dataclass(slots=True)
class MessageRecord:
    conversation_id: int
    role: str
    type: str
    content: str
    date_created: datetime | None


@dataclass(slots=True)
class FactCandidate:
    """A stored fact row before scoring."""

    content: str
    embedding: bytes | None
    num_times: int
    date_last_time: datetime | None


def rank_facts(
    candidates: Iterable[FactCandidate],
    query_vector: Sequence[float],
    limit: int,
) -> list[FactResult]:
    """Score candidates by cosine similarity; ties go to the most recent."""
    results = [
        FactResult(
            content=candidate.content,
            score=cosine_similarity(query_vector, decode_embedding(candidate.embedding)),
            num_times=int(candidate.num_times),
            date_last_time=candidate.date_last_time,
        )
        for candidate in candidates
    ]
    results.sort(key=lambda item: (item.score, item.date_last_time or _EPOCH), reverse=True)
    return results[: max(0, limit)]


class Adapter(Protocol):
    """A bound backend connection plus the dialect it speaks."""

    #: Per-call deadline in seconds; None disables it.
    timeout: float | None

    @property
    def dialect(self) -> str: ...

    def classify(self, exc: BaseException) -> StorageError: ...


class EntityRepository(Protocol):
    def create(self, external_id: str) -> int: ...

    def get_by_external_id(self, external_id: str) -> int | None: ...


class ProcessRepository(Protocol):
    def create(self, external_id: str) -> int: ...

    def get_by_external_id(self, external_id: str) -> int | None: ...


class SessionRepository(Protocol):
    def create(self, entity_id: int | None, process_id: int | None, session_uuid: str) -> int: ...

    def get_by_uuid(self, session_uuid: str) -> int | None: ...


class ConversationRepository(Protocol):
    def create(self, session_id: int, ttl_minutes: int) -> int: ...

    def get_by_session_id(self, session_id: int) -> int | None: ...

    def get(self, conversation_id: int) -> ConversationRecord | None: ...

    def update_summary(self, conversation_id: int, summary: str) -> None: ...


class MessageRepository(Protocol):
    def create(self, conversation_id: int, role: str, msg_type: str, content: str) -> None: ...

    def list_by_conversation(self, conversation_id: int) -> list[MessageRecord]: ...


class FactRepository(Protocol):
    def create(self, entity_id: int, content: str, embedding: bytes, uniq: str) -> None: ...

    def upsert(self, entity_id: int, content: str, embedding: bytes, uniq: str) -> None: ...

    def search_by_embedding(
        self,
        entity_id: int,
        query_vector: Sequence[float],
        limit: int,
        scan_limit: int,
    ) -> list[FactResult]: ...


class Driver(ABC):
    """Schema owner for one dialect; also the repository set for it."""

    @property
    @abstractmethod
    def dialect(self) -> str: ...

    @abstractmethod
    def migrate(self) -> None: ...

    @abstractmethod
    def schema_version(self) -> int: ...

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]: ...

    @property
    @abstractmethod
    def entity(self) -> EntityRepository: ...

    @property
    @abstractmethod
    def process(self) -> ProcessRepository: ...

    @property
    @abstractmethod
    def session(self) -> SessionRepository: ...

    @property
    @abstractmethod
    def conversation(self) -> ConversationRepository: ...

    @property
    @abstractmethod
    def message(self) -> MessageRepository: ...

    @property
    @abstractmethod
    def fact(self) -> FactRepository: ...


def iter_versions(migrations: Mapping[int, Sequence[object]], current: int) -> Iterator[int]:
    """Versions newer than ``current`` in ascending order."""
    for version in sorted(migrations):
        if version > current:
            yield version
