"""Embedding providers and vector helpers."""

from __future__ import annotations

import httpx

from memori.embed.base import Embedder
from memori.embed.hash import HashEmbedder
from memori.embed.remote import OpenAIEmbedder, SiliconFlowEmbedder
from memori.embed.vectors import cosine_similarity, decode_embedding, encode_embedding

__all__ = [
    "Embedder",
    "HashEmbedder",
    "OpenAIEmbedder",
    "SiliconFlowEmbedder",
    "cosine_similarity",
    "decode_embedding",
    "encode_embedding",
    "new_embedder",
]


def new_embedder(
    provider: str = "hash",
    *,
    api_key: str = "",
    base_url: str = "",
    model: str = "",
    dimension: int = 0,
    timeout: float = 30.0,
    transport: httpx.BaseTransport | None = None,
) -> Embedder:
    """Build an embedder by provider name; unknown names fall back to hashing."""
    name = provider.strip().lower()
    if name == "openai":
        return OpenAIEmbedder(
            api_key=api_key,
            base_url=base_url,
            model=model,
            dimension=dimension,
            timeout=timeout,
            transport=transport,
        )
    if name == "siliconflow":
        return SiliconFlowEmbedder(
            api_key=api_key,
            base_url=base_url,
            model=model,
            dimension=dimension,
            timeout=timeout,
            transport=transport,
        )
    if dimension > 0:
        return HashEmbedder(dimension)
    return HashEmbedder()
