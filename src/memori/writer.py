"""Transactional write path for conversation exchanges."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from memori.errors import MaxRetriesExceededError, MemoriError
from memori.logging import bound_context
from memori.storage.base import Driver
from memori.types import AugmentationInput, ConversationPayload

if TYPE_CHECKING:
    from memori.memori import Memori

logger = logging.getLogger(__name__)


class Writer:
    def __init__(self, memori: Memori) -> None:
        self._memori = memori

    def execute(self, payload: ConversationPayload) -> None:
        """Persist one exchange, retrying transient backend conflicts.

        Does nothing when no storage is bound. Errors that are not retryable
        propagate on the first attempt; once every attempt has failed on a
        transient conflict, ``MaxRetriesExceededError`` is raised from the
        last one.
        """
        driver = self._memori.storage.repositories()
        if driver is None:
            return
        entity_ref, process_ref, session_uuid = self._memori.config.identity()
        with bound_context(
            entity_id=entity_ref, process_id=process_ref, session_id=session_uuid
        ):
            self._execute_with_retries(driver, payload)

    def _execute_with_retries(self, driver: Driver, payload: ConversationPayload) -> None:
        settings = self._memori.settings
        attempts = max(1, int(settings.writer_max_retries))
        backoff = max(0, int(settings.writer_retry_backoff_ms)) / 1000.0

        last_error: MemoriError | None = None
        for attempt in range(attempts):
            try:
                job = self._execute_once(driver, payload)
            except MemoriError as exc:
                if not exc.retryable:
                    raise
                last_error = exc
                logger.warning(
                    "Transient storage conflict on attempt %d/%d: %s", attempt + 1, attempts, exc
                )
                if attempt < attempts - 1:
                    time.sleep(backoff * (2**attempt))
                continue
            self._memori.augmentation.enqueue(job)
            return
        raise MaxRetriesExceededError(
            f"write failed after {attempts} attempts: {last_error}"
        ) from last_error

    def _execute_once(self, driver: Driver, payload: ConversationPayload) -> AugmentationInput:
        config = self._memori.config
        identity = config.identity()
        entity_ref, process_ref, session_uuid = identity
        resolved = config.cached()

        with driver.transaction():
            if entity_ref and resolved.entity_id is None:
                resolved.entity_id = driver.entity.create(entity_ref)
            if process_ref and resolved.process_id is None:
                resolved.process_id = driver.process.create(process_ref)
            if resolved.session_id is None:
                resolved.session_id = driver.session.create(
                    resolved.entity_id, resolved.process_id, session_uuid
                )
            if resolved.conversation_id is None:
                resolved.conversation_id = driver.conversation.create(
                    resolved.session_id, config.session_ttl_minutes
                )
            conversation_id = resolved.conversation_id

            for message in payload.messages:
                if message.is_system:
                    continue
                driver.message.create(
                    conversation_id, message.role, message.type, message.content
                )
            if payload.response is not None:
                response = payload.response
                driver.message.create(
                    conversation_id, response.role, response.type, response.content
                )

        config.update_cache(resolved, identity)
        return AugmentationInput(
            conversation_id=conversation_id,
            entity_id=entity_ref,
            process_id=process_ref,
            messages=list(payload.messages),
        )
