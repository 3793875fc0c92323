"""Storage abstraction over SQLite, PostgreSQL and MongoDB."""

from memori.storage.base import ConversationRecord, Driver, FactResult, MessageRecord
from memori.storage.manager import StorageManager
from memori.storage.registry import register_adapter, register_driver

__all__ = [
    "ConversationRecord",
    "Driver",
    "FactResult",
    "MessageRecord",
    "StorageManager",
    "register_adapter",
    "register_driver",
]
