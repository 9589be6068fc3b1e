"""Conversation memory: models, manager and framework adapter."""

from chatmem.memory.adapter import ConversationMemoryAdapter
from chatmem.memory.errors import (
    ChatMemoryError,
    ConfigurationError,
    NoActiveSessionError,
    NotInitializedError,
    StorageError,
    StorageInitializationError,
)
from chatmem.memory.manager import MemoryManager
from chatmem.memory.models import (
    MemoryStats,
    Message,
    MessageQuery,
    SearchResult,
    Session,
    SessionUpdate,
)

__all__ = [
    "MemoryManager",
    "ConversationMemoryAdapter",
    "Message",
    "Session",
    "SessionUpdate",
    "MessageQuery",
    "SearchResult",
    "MemoryStats",
    "ChatMemoryError",
    "ConfigurationError",
    "NoActiveSessionError",
    "NotInitializedError",
    "StorageError",
    "StorageInitializationError",
]
