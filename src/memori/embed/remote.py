"""Embedders backed by OpenAI-compatible ``/v1/embeddings`` endpoints."""

from __future__ import annotations

import logging
import os
from typing import Any

import httpx

from memori.errors import EmbeddingError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


class _EmbeddingsEndpoint:
    provider = ""
    default_base_url = ""
    default_model = ""
    default_dimension = 0
    supports_batch_input = True

    def __init__(
        self,
        *,
        api_key: str = "",
        base_url: str = "",
        model: str = "",
        dimension: int = 0,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = (base_url or self.default_base_url).rstrip("/")
        self.model = model or self.default_model
        self._dimension = dimension if dimension > 0 else self.default_dimension
        self._timeout = timeout
        self._transport = transport

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def provider_name(self) -> str:
        return self.provider

    def _zero(self) -> list[float]:
        return [0.0] * self._dimension

    def embed(self, text: str) -> list[float]:
        if not text:
            return self._zero()
        vectors = self._request(text)
        if not vectors:
            raise EmbeddingError(f"{self.provider} returned no embedding data")
        return vectors[0]

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        if not self.supports_batch_input:
            return [self.embed(text) for text in texts]
        filtered = [text for text in texts if text]
        if not filtered:
            return [self._zero() for _ in texts]
        vectors = self._request(filtered)
        if len(vectors) != len(filtered):
            raise EmbeddingError(
                f"{self.provider} expected {len(filtered)} embeddings, got {len(vectors)}"
            )
        remaining = iter(vectors)
        return [next(remaining) if text else self._zero() for text in texts]

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _request(self, payload_input: str | list[str]) -> list[list[float]]:
        payload: dict[str, Any] = {"model": self.model, "input": payload_input}
        logger.debug("Requesting %s embeddings with model %s", self.provider, self.model)
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.post(
                    f"{self.base_url}/v1/embeddings",
                    json=payload,
                    headers=self._headers(),
                )
        except httpx.HTTPError as exc:
            raise EmbeddingError(f"{self.provider} request failed: {exc}", retryable=True) from exc
        if response.status_code < 200 or response.status_code >= 300:
            raise EmbeddingError(
                f"{self.provider} API error {response.status_code}: {response.text[:200]}",
                retryable=response.status_code >= 500,
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise EmbeddingError(f"{self.provider} returned invalid JSON") from exc
        return self._parse(body)

    def _parse(self, body: object) -> list[list[float]]:
        if not isinstance(body, dict):
            raise EmbeddingError(f"{self.provider} response malformed")
        data = body.get("data")
        if not isinstance(data, list):
            raise EmbeddingError(f"{self.provider} response missing data")
        items = [item for item in data if isinstance(item, dict)]
        items.sort(key=lambda item: int(item.get("index", 0)))
        vectors: list[list[float]] = []
        for item in items:
            embedding = item.get("embedding")
            if not isinstance(embedding, list):
                raise EmbeddingError(f"{self.provider} response embedding malformed")
            vectors.append([float(value) for value in embedding])
        return vectors


class OpenAIEmbedder(_EmbeddingsEndpoint):
    provider = "openai"
    default_base_url = "https://api.openai.com"
    default_model = "text-embedding-ada-002"
    default_dimension = 1536


class SiliconFlowEmbedder(_EmbeddingsEndpoint):
    provider = "siliconflow"
    default_base_url = "https://api.siliconflow.cn"
    default_model = "BAAI/bge-large-zh-v1.5"
    default_dimension = 1024
    supports_batch_input = False

    def __init__(
        self,
        *,
        api_key: str = "",
        base_url: str = "",
        model: str = "",
        dimension: int = 0,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(
            api_key=api_key or os.environ.get("SILICONFLOW_API_KEY", ""),
            base_url=base_url or os.environ.get("SILICONFLOW_BASE_URL", ""),
            model=model,
            dimension=dimension,
            timeout=timeout,
            transport=transport,
        )
