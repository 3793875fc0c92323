"""Vector byte codec and similarity."""

from __future__ import annotations

import struct
from collections.abc import Sequence
from math import sqrt

FLOAT32_SIZE = 4


def encode_embedding(vector: Sequence[float]) -> bytes:
    """Serialize a vector as contiguous little-endian float32 values.

    No header or length prefix is written; the component count is
    ``len(data) // 4``. An empty vector encodes to ``b""``.
    """
    if not vector:
        return b""
    return struct.pack(f"<{len(vector)}f", *vector)


def decode_embedding(data: bytes | bytearray | memoryview | None) -> list[float] | None:
    """Inverse of :func:`encode_embedding`.

    Returns None for empty input or a length that is not a multiple of 4.
    """
    if not data:
        return None
    raw = bytes(data)
    if len(raw) % FLOAT32_SIZE != 0:
        return None
    return list(struct.unpack(f"<{len(raw) // FLOAT32_SIZE}f", raw))


def cosine_similarity(left: Sequence[float] | None, right: Sequence[float] | None) -> float:
    if not left or not right or len(left) != len(right):
        return 0.0
    dot = 0.0
    norm_left = 0.0
    norm_right = 0.0
    for a, b in zip(left, right):
        dot += a * b
        norm_left += a * a
        norm_right += b * b
    if norm_left == 0 or norm_right == 0:
        return 0.0
    return dot / (sqrt(norm_left) * sqrt(norm_right))
