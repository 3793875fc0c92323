"""Background fact augmentation.

Recorded exchanges are distilled into entity facts on a small pool of worker
threads. Nothing here ever reaches the caller: a full queue drops the job and
failures inside a job are logged.
"""

from __future__ import annotations

import asyncio
import logging
import queue
import threading
import time
from collections.abc import Iterable
from hashlib import sha256

from memori.config import Settings, get_settings
from memori.embed.base import Embedder
from memori.embed.vectors import encode_embedding
from memori.errors import MemoriError
from memori.logging import bound_context
from memori.storage.manager import StorageManager
from memori.types import AugmentationInput, Message

logger = logging.getLogger(__name__)

_STOP = object()


def fingerprint(text: str) -> str:
    return sha256(text.encode("utf-8")).hexdigest()


def extract_facts(messages: Iterable[Message], max_chars: int = 500) -> list[str]:
    facts: list[str] = []
    for message in messages:
        if message.is_system:
            continue
        content = message.content.strip()
        if not content:
            continue
        facts.append(content[:max_chars])
    return facts


def build_summary(messages: Iterable[Message], max_chars: int = 512) -> str:
    parts: list[str] = []
    for message in messages:
        if message.is_system:
            continue
        text = message.content.strip()
        if not text:
            continue
        parts.append(text)
        if len("\n".join(parts)) > max_chars:
            break
    return "\n".join(parts)[:max_chars]


class AugmentationManager:
    def __init__(
        self,
        storage: StorageManager,
        embedder: Embedder,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._storage = storage
        self._embedder = embedder
        self._queue: queue.Queue[object] = queue.Queue(
            maxsize=max(1, int(settings.augmentation_queue_size))
        )
        self._workers = max(1, int(settings.augmentation_workers))
        self._fact_max_chars = int(settings.augmentation_fact_max_chars)
        self._summary_max_chars = int(settings.augmentation_summary_max_chars)
        self._threads: list[threading.Thread] = []
        self._lock = threading.Lock()
        self._closed = False

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def started(self) -> bool:
        return bool(self._threads)

    @property
    def closed(self) -> bool:
        return self._closed

    def enqueue(self, job: AugmentationInput) -> bool:
        if not job.entity_id:
            logger.debug("Skipping augmentation without an entity id")
            return False
        with self._lock:
            if self._closed:
                logger.debug("Augmentation is shut down; dropping job")
                return False
            self._ensure_started()
            try:
                self._queue.put_nowait(job)
            except queue.Full:
                logger.debug("Augmentation queue full; dropping job for %s", job.entity_id)
                return False
        return True

    def join(self) -> None:
        """Block until every queued job has been processed."""
        self._queue.join()

    def shutdown(self, timeout: float | None = None) -> bool:
        """Stop accepting jobs, drain the queue and wait for the workers.

        Returns False if a worker was still running when ``timeout`` expired.
        """
        with self._lock:
            self._closed = True
            threads = list(self._threads)
            self._threads.clear()
        deadline = None if timeout is None else time.monotonic() + max(0.0, timeout)
        for _ in threads:
            try:
                self._queue.put(_STOP, timeout=self._remaining(deadline))
            except queue.Full:
                logger.warning("Augmentation queue still full; workers not signalled to stop")
                break
        for thread in threads:
            thread.join(self._remaining(deadline))
        stopped = not any(thread.is_alive() for thread in threads)
        if not stopped:
            logger.warning("Augmentation shutdown timed out with %d jobs pending", self.pending)
        return stopped

    async def ashutdown(self, timeout: float | None = None) -> bool:
        return await asyncio.to_thread(self.shutdown, timeout)

    @staticmethod
    def _remaining(deadline: float | None) -> float | None:
        if deadline is None:
            return None
        return max(0.0, deadline - time.monotonic())

    def _ensure_started(self) -> None:
        if self._threads:
            return
        for index in range(self._workers):
            thread = threading.Thread(
                target=self._run, name=f"memori-augmentation-{index}", daemon=True
            )
            thread.start()
            self._threads.append(thread)

    def _run(self) -> None:
        while True:
            job = self._queue.get()
            try:
                if job is _STOP:
                    return
                if isinstance(job, AugmentationInput):
                    with bound_context(entity_id=job.entity_id, process_id=job.process_id):
                        self.process(job)
            except Exception:
                logger.exception("Augmentation job failed")
            finally:
                self._queue.task_done()

    def process(self, job: AugmentationInput) -> None:
        """Upsert the job's candidate facts and refresh the conversation summary."""
        driver = self._storage.repositories()
        if driver is None:
            return
        entity_id = driver.entity.get_by_external_id(job.entity_id)
        if entity_id is None:
            logger.debug("Unknown entity %s; skipping augmentation", job.entity_id)
            return

        facts = extract_facts(job.messages, self._fact_max_chars)
        vectors: list[list[float]] = []
        if facts:
            try:
                vectors = self._embedder.embed_batch(facts)
            except MemoriError as exc:
                logger.warning("Embedding %d facts failed: %s", len(facts), exc)
        for fact, vector in zip(facts, vectors, strict=False):
            try:
                driver.fact.upsert(entity_id, fact, encode_embedding(vector), fingerprint(fact))
            except MemoriError as exc:
                logger.warning("Fact upsert failed for entity %s: %s", job.entity_id, exc)

        if job.conversation_id is not None:
            summary = build_summary(job.messages, self._summary_max_chars)
            try:
                driver.conversation.update_summary(job.conversation_id, summary)
            except MemoriError as exc:
                logger.warning(
                    "Summary update failed for conversation %s: %s", job.conversation_id, exc
                )
