"""Factory for memory managers.

Builds a MemoryManager bound to the requested backend. Nothing is
initialized here: callers still call manager.initialize().
"""

from loguru import logger
from pydantic import ValidationError

from chatmem.memory.constants import STORAGE_DYNAMODB, STORAGE_LOCAL, STORAGE_S3
from chatmem.memory.errors import ConfigurationError
from chatmem.memory.manager import MemoryManager
from chatmem.settings import MemorySettings
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


def create_storage(config: MemoryConfig) -> MemoryStorage:
    """Create the storage backend described by config.

    Raises:
        ConfigurationError: If the type is unknown or options do not match it
    """
    storage_type = config.type.lower()
    options = config.options

    if storage_type == STORAGE_LOCAL and isinstance(options, LocalStorageConfig):
        return LocalStorage(options)
    if storage_type == STORAGE_S3 and isinstance(options, S3StorageConfig):
        return S3Storage(options)
    if storage_type == STORAGE_DYNAMODB and isinstance(options, DynamoDBStorageConfig):
        return DynamoDBStorage(options)

    raise ConfigurationError(
        f"Storage type {config.type!r} does not match options {type(options).__name__}"
    )


def create_memory_manager(config: MemoryConfig) -> MemoryManager:
    """Create a memory manager from an explicit MemoryConfig."""
    logger.info(f"Creating memory manager with {config.type} storage")
    return MemoryManager(create_storage(config))


def _build(config_cls, storage_type: str, **options) -> MemoryManager:
    try:
        config = MemoryConfig(type=storage_type, options=config_cls(**options))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid {storage_type} storage configuration: {e}") from e
    return create_memory_manager(config)


def create_local_memory_manager(
    file_path: str,
    encoding: str = "utf-8",
    pretty_print: bool = False,
) -> MemoryManager:
    """Create a memory manager backed by a local JSON file.

    Args:
        file_path: Path to the data file (created on first write)
        encoding: File text encoding
        pretty_print: Indent the JSON document

    Example:
        >>> manager = create_local_memory_manager("./data/memory.json", pretty_print=True)
        >>> manager.initialize()
    """
    return _build(
        LocalStorageConfig,
        STORAGE_LOCAL,
        file_path=file_path,
        encoding=encoding,
        pretty_print=pretty_print,
    )


def create_s3_memory_manager(
    bucket_name: str,
    region: str,
    *,
    access_key_id: str | None = None,
    secret_access_key: str | None = None,
    session_token: str | None = None,
    prefix: str | None = None,
    encryption: str | None = None,
    endpoint_url: str | None = None,
) -> MemoryManager:
    """Create a memory manager backed by one S3 object.

    Args:
        bucket_name: S3 bucket
        region: AWS region
        access_key_id: Optional explicit access key (default credential chain otherwise)
        secret_access_key: Optional explicit secret key
        session_token: Optional session token
        prefix: Key prefix (defaults to "langchain-memory")
        encryption: Server-side encryption, "AES256" or "aws:kms"
        endpoint_url: S3-compatible endpoint (MinIO)
    """
    options = {
        "bucket_name": bucket_name,
        "region": region,
        "access_key_id": access_key_id,
        "secret_access_key": secret_access_key,
        "session_token": session_token,
        "encryption": encryption,
        "endpoint_url": endpoint_url,
    }
    if prefix:
        options["prefix"] = prefix
    return _build(S3StorageConfig, STORAGE_S3, **options)


def create_dynamodb_memory_manager(
    table_name: str,
    region: str,
    *,
    access_key_id: str | None = None,
    secret_access_key: str | None = None,
    session_token: str | None = None,
    endpoint: str | None = None,
    session_index: str | None = None,
) -> MemoryManager:
    """Create a memory manager backed by a DynamoDB table.

    Args:
        table_name: Table with hash key PK and range key SK
        region: AWS region
        access_key_id: Optional explicit access key
        secret_access_key: Optional explicit secret key
        session_token: Optional session token
        endpoint: Endpoint override (DynamoDB Local)
        session_index: GSI name for per-session queries
    """
    options = {
        "table_name": table_name,
        "region": region,
        "access_key_id": access_key_id,
        "secret_access_key": secret_access_key,
        "session_token": session_token,
        "endpoint": endpoint,
    }
    if session_index:
        options["session_index"] = session_index
    return _build(DynamoDBStorageConfig, STORAGE_DYNAMODB, **options)


def create_memory_manager_from_env(settings: MemorySettings | None = None) -> MemoryManager:
    """Create a memory manager from MEMORY_* environment variables.

    Args:
        settings: Preloaded settings (read from environment if None)

    Raises:
        ConfigurationError: If the storage type is unknown or a required
            variable for it is missing
    """
    settings = settings or MemorySettings()
    storage_type = settings.storage_type.lower()

    if storage_type == STORAGE_LOCAL:
        return create_local_memory_manager(
            settings.file_path,
            encoding=settings.file_encoding,
            pretty_print=settings.file_pretty_print,
        )

    if storage_type == STORAGE_S3:
        if not settings.s3_bucket or not settings.s3_region:
            raise ConfigurationError(
                "S3 storage requires MEMORY_S3_BUCKET and MEMORY_S3_REGION environment variables"
            )
        return create_s3_memory_manager(
            settings.s3_bucket,
            settings.s3_region,
            access_key_id=settings.s3_access_key_id,
            secret_access_key=settings.s3_secret_access_key,
            session_token=settings.s3_session_token,
            prefix=settings.s3_prefix,
            encryption=settings.s3_encryption,
            endpoint_url=settings.s3_endpoint,
        )

    if storage_type == STORAGE_DYNAMODB:
        if not settings.dynamodb_table or not settings.dynamodb_region:
            raise ConfigurationError(
                "DynamoDB storage requires MEMORY_DYNAMODB_TABLE and "
                "MEMORY_DYNAMODB_REGION environment variables"
            )
        return create_dynamodb_memory_manager(
            settings.dynamodb_table,
            settings.dynamodb_region,
            access_key_id=settings.dynamodb_access_key_id,
            secret_access_key=settings.dynamodb_secret_access_key,
            session_token=settings.dynamodb_session_token,
            endpoint=settings.dynamodb_endpoint,
            session_index=settings.dynamodb_session_index,
        )

    raise ConfigurationError(
        f"Invalid storage type: {settings.storage_type}. Valid options: local, s3, dynamodb"
    )
