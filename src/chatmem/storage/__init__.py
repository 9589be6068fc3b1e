"""Storage backends for conversation memory.

- LocalStorage: one JSON file on disk
- S3Storage: one JSON object in S3
- DynamoDBStorage: one item per message and per session
"""

from chatmem.storage.base import MemoryStorage
from chatmem.storage.config import (
    DynamoDBStorageConfig,
    LocalStorageConfig,
    MemoryConfig,
    S3StorageConfig,
)
from chatmem.storage.dynamodb import DynamoDBStorage
from chatmem.storage.local import LocalStorage
from chatmem.storage.s3 import S3Storage

__all__ = [
    "MemoryStorage",
    "LocalStorage",
    "S3Storage",
    "DynamoDBStorage",
    "MemoryConfig",
    "LocalStorageConfig",
    "S3StorageConfig",
    "DynamoDBStorageConfig",
]
