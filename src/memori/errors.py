"""Memori exception hierarchy.

All Memori-specific exceptions inherit from MemoriError. The ``retryable``
flag is set by whoever knows the backend: storage adapters classify driver
exceptions, the writer only reads the flag.
"""


class MemoriError(Exception):
    """Base exception for all Memori errors."""

    def __init__(self, message: str = "", *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class ConfigError(MemoriError):
    """Invalid or missing configuration."""


class AttributionError(MemoriError, ValueError):
    """Entity or process id rejected by attribution."""


class StorageError(MemoriError):
    """Error raised by a storage backend."""


class UnsupportedBackendError(StorageError):
    """No adapter matches the given connection object."""


class UnsupportedDialectError(StorageError):
    """No driver is registered for the adapter's dialect."""


class MigrationError(StorageError):
    """A schema migration failed and was rolled back."""


class TransientConflictError(StorageError):
    """Serialization/lock conflict that is safe to retry."""

    def __init__(self, message: str = "", *, retryable: bool = True) -> None:
        super().__init__(message, retryable=retryable)


class MaxRetriesExceededError(StorageError):
    """The writer exhausted its attempt budget on transient conflicts."""


class EmbeddingError(MemoriError):
    """Error obtaining an embedding from a provider."""
