"""Tests for error hierarchy."""

from memori.errors import (
    AttributionError,
    ConfigError,
    EmbeddingError,
    MaxRetriesExceededError,
    MemoriError,
    MigrationError,
    StorageError,
    TransientConflictError,
    UnsupportedBackendError,
    UnsupportedDialectError,
)


def test_hierarchy() -> None:
    assert issubclass(ConfigError, MemoriError)
    assert issubclass(AttributionError, MemoriError)
    assert issubclass(AttributionError, ValueError)
    assert issubclass(EmbeddingError, MemoriError)
    for cls in (
        UnsupportedBackendError,
        UnsupportedDialectError,
        MigrationError,
        TransientConflictError,
        MaxRetriesExceededError,
    ):
        assert issubclass(cls, StorageError)


def test_retryable_default() -> None:
    assert MemoriError("test").retryable is False
    assert StorageError("test").retryable is False
    assert MigrationError("test").retryable is False
    assert MaxRetriesExceededError("test").retryable is False
    assert TransientConflictError("test").retryable is True


def test_retryable_can_be_set_explicitly() -> None:
    assert EmbeddingError("upstream 503", retryable=True).retryable is True
    assert StorageError("locked", retryable=True).retryable is True


def test_catch_as_memori_error() -> None:
    try:
        raise TransientConflictError("database is locked")
    except MemoriError as exc:
        assert str(exc) == "database is locked"
        assert exc.retryable is True
