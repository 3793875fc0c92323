import struct

import pytest

from memori.embed.vectors import cosine_similarity, decode_embedding, encode_embedding


def test_encode_is_little_endian_float32_without_header() -> None:
    data = encode_embedding([1.0, -2.5])
    assert len(data) == 8
    assert data == struct.pack("<ff", 1.0, -2.5)


def test_encode_empty_vector() -> None:
    assert encode_embedding([]) == b""


def test_decode_preserves_float32_bit_patterns() -> None:
    raw = bytes.fromhex("0000803f" "cdcc4c3e" "000080ff" "01000000")
    decoded = decode_embedding(raw)
    assert decoded is not None
    assert encode_embedding(decoded) == raw


def test_decode_rejects_empty_and_ragged_input() -> None:
    assert decode_embedding(b"") is None
    assert decode_embedding(None) is None
    assert decode_embedding(b"\x00\x00\x80") is None


def test_cosine_identical_vectors() -> None:
    vector = [0.3, 0.1, 0.9]
    assert cosine_similarity(vector, vector) == pytest.approx(1.0)


def test_cosine_orthogonal_and_opposite() -> None:
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)


def test_cosine_uses_vector_norms() -> None:
    assert cosine_similarity([3.0, 4.0], [3.0, 0.0]) == pytest.approx(0.6)


def test_cosine_degenerate_inputs() -> None:
    assert cosine_similarity([1.0, 2.0], [1.0]) == 0.0
    assert cosine_similarity([], []) == 0.0
    assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0
    assert cosine_similarity(None, [1.0]) == 0.0
