"""Memory layer for LLM applications."""

from memori.augmentation import AugmentationManager
from memori.config import Settings, get_settings
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
from memori.memori import Memori
from memori.recall import Recall
from memori.types import AugmentationInput, ConversationPayload, Fact, Message
from memori.writer import Writer

__all__ = [
    "AttributionError",
    "AugmentationInput",
    "AugmentationManager",
    "ConfigError",
    "ConversationPayload",
    "EmbeddingError",
    "Fact",
    "MaxRetriesExceededError",
    "Memori",
    "MemoriError",
    "MigrationError",
    "Recall",
    "Settings",
    "StorageError",
    "TransientConflictError",
    "UnsupportedBackendError",
    "UnsupportedDialectError",
    "Writer",
    "get_settings",
]
