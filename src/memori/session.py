"""Per-instance runtime configuration and the resolved-identity cache."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, fields

from memori.config import Settings
from memori.errors import AttributionError
from memori.ids import coerce_uuid, new_uuid

MAX_EXTERNAL_ID_LENGTH = 100


@dataclass(slots=True)
class IdentityCache:
    """Surrogate ids resolved for the current attribution and session."""

    entity_id: int | None = None
    process_id: int | None = None
    session_id: int | None = None
    conversation_id: int | None = None

    def clear(self) -> None:
        for item in fields(self):
            setattr(self, item.name, None)


@dataclass(slots=True)
class RuntimeConfig:
    session_id: str = field(default_factory=new_uuid)
    entity_id: str = ""
    process_id: str = ""
    session_ttl_minutes: int = 30
    recall_limit: int = 5
    cache: IdentityCache = field(default_factory=IdentityCache)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> RuntimeConfig:
        return cls(
            session_ttl_minutes=settings.session_ttl_minutes,
            recall_limit=settings.recall_limit,
        )

    def set_attribution(self, entity_id: str | None, process_id: str | None) -> None:
        entity = (entity_id or "").strip()
        process = (process_id or "").strip()
        if len(entity) > MAX_EXTERNAL_ID_LENGTH:
            raise AttributionError(
                f"entity_id cannot be longer than {MAX_EXTERNAL_ID_LENGTH} characters"
            )
        if len(process) > MAX_EXTERNAL_ID_LENGTH:
            raise AttributionError(
                f"process_id cannot be longer than {MAX_EXTERNAL_ID_LENGTH} characters"
            )
        with self._lock:
            if entity != self.entity_id:
                self.cache.entity_id = None
                self.cache.session_id = None
                self.cache.conversation_id = None
            if process != self.process_id:
                self.cache.process_id = None
                self.cache.session_id = None
                self.cache.conversation_id = None
            self.entity_id = entity
            self.process_id = process

    def new_session(self) -> str:
        with self._lock:
            self.session_id = new_uuid()
            self.cache.clear()
            return self.session_id

    def set_session(self, session_id: str) -> None:
        try:
            value = coerce_uuid(session_id)
        except ValueError as exc:
            raise AttributionError(f"invalid session id: {session_id!r}") from exc
        with self._lock:
            if value != self.session_id:
                self.cache.session_id = None
                self.cache.conversation_id = None
            self.session_id = value

    def cached(self) -> IdentityCache:
        """Copy of the cache taken under the lock."""
        with self._lock:
            return IdentityCache(
                entity_id=self.cache.entity_id,
                process_id=self.cache.process_id,
                session_id=self.cache.session_id,
                conversation_id=self.cache.conversation_id,
            )

    def identity(self) -> tuple[str, str, str]:
        with self._lock:
            return self.entity_id, self.process_id, self.session_id

    def update_cache(self, resolved: IdentityCache, identity: tuple[str, str, str]) -> bool:
        """Store ids resolved for `identity`; ignored if attribution changed meanwhile."""
        with self._lock:
            if identity != (self.entity_id, self.process_id, self.session_id):
                return False
            self.cache.entity_id = resolved.entity_id
            self.cache.process_id = resolved.process_id
            self.cache.session_id = resolved.session_id
            self.cache.conversation_id = resolved.conversation_id
            return True
