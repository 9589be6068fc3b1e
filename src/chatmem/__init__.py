"""Persistent conversation memory with pluggable storage backends."""

from chatmem.factory import (
    create_dynamodb_memory_manager,
    create_local_memory_manager,
    create_memory_manager,
    create_memory_manager_from_env,
    create_s3_memory_manager,
)
from chatmem.memory import (
    ChatMemoryError,
    ConfigurationError,
    ConversationMemoryAdapter,
    MemoryManager,
    MemoryStats,
    Message,
    MessageQuery,
    NoActiveSessionError,
    NotInitializedError,
    SearchResult,
    Session,
    SessionUpdate,
    StorageError,
    StorageInitializationError,
)
from chatmem.storage import (
    DynamoDBStorage,
    DynamoDBStorageConfig,
    LocalStorage,
    LocalStorageConfig,
    MemoryConfig,
    MemoryStorage,
    S3Storage,
    S3StorageConfig,
)
from chatmem.version import __version__

__all__ = [
    "__version__",
    "create_memory_manager",
    "create_local_memory_manager",
    "create_s3_memory_manager",
    "create_dynamodb_memory_manager",
    "create_memory_manager_from_env",
    "MemoryManager",
    "ConversationMemoryAdapter",
    "Message",
    "Session",
    "SessionUpdate",
    "MessageQuery",
    "SearchResult",
    "MemoryStats",
    "MemoryStorage",
    "LocalStorage",
    "S3Storage",
    "DynamoDBStorage",
    "MemoryConfig",
    "LocalStorageConfig",
    "S3StorageConfig",
    "DynamoDBStorageConfig",
    "ChatMemoryError",
    "ConfigurationError",
    "NoActiveSessionError",
    "NotInitializedError",
    "StorageError",
    "StorageInitializationError",
]
