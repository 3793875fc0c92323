"""Deterministic offline embedder.

The vector is not semantic: each character is hashed on its own and folded
into a fixed-size accumulator. It exists so that augmentation and recall work
without network access and produce identical vectors for identical text.
"""

from __future__ import annotations

FNV64_OFFSET = 0xCBF29CE484222325
FNV64_PRIME = 0x100000001B3
_MASK64 = 0xFFFFFFFFFFFFFFFF

DEFAULT_DIMENSION = 64


def fnv1a_64(data: bytes) -> int:
    value = FNV64_OFFSET
    for byte in data:
        value ^= byte
        value = (value * FNV64_PRIME) & _MASK64
    return value


class HashEmbedder:
    def __init__(self, dimension: int = DEFAULT_DIMENSION) -> None:
        self._dimension = dimension if dimension > 0 else DEFAULT_DIMENSION

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def provider_name(self) -> str:
        return "hash"

    def embed(self, text: str) -> list[float]:
        vector = [0.0] * self._dimension
        for index, char in enumerate(text):
            digest = fnv1a_64(char.encode("utf-8"))
            vector[index % self._dimension] += (digest % 1000) / 1000.0
        return vector

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        return [self.embed(text) for text in texts]
