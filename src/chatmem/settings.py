"""Memory settings using Pydantic Settings.

Every field maps to a MEMORY_* environment variable (or a .env entry),
e.g. storage_type <- MEMORY_STORAGE_TYPE, s3_bucket <- MEMORY_S3_BUCKET.
Required parameters per backend are checked by the factory, not here.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from chatmem.memory.constants import DEFAULT_SESSION_INDEX


class MemorySettings(BaseSettings):
    """Conversation memory configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="MEMORY_",
        case_sensitive=False,
        extra="ignore",
    )

    storage_type: str = Field(
        default="local",
        description="Storage backend: local | s3 | dynamodb",
    )

    # Local file
    file_path: str = Field(default="./memory.json", description="JSON data file path")
    file_encoding: str = Field(default="utf-8", description="Data file encoding")
    file_pretty_print: bool = Field(default=False, description="Indent JSON data file")

    # S3
    s3_bucket: str | None = Field(default=None, description="S3 bucket (required for s3)")
    s3_region: str | None = Field(default=None, description="S3 region (required for s3)")
    s3_access_key_id: str | None = Field(default=None, description="AWS access key id")
    s3_secret_access_key: str | None = Field(default=None, description="AWS secret access key")
    s3_session_token: str | None = Field(default=None, description="AWS session token")
    s3_prefix: str | None = Field(default=None, description="Key prefix for the data object")
    s3_encryption: str | None = Field(
        default=None, description="Server-side encryption: AES256 | aws:kms"
    )
    s3_endpoint: str | None = Field(default=None, description="S3-compatible endpoint URL")

    # DynamoDB
    dynamodb_table: str | None = Field(default=None, description="Table name (required for dynamodb)")
    dynamodb_region: str | None = Field(default=None, description="Region (required for dynamodb)")
    dynamodb_access_key_id: str | None = Field(default=None, description="AWS access key id")
    dynamodb_secret_access_key: str | None = Field(default=None, description="AWS secret access key")
    dynamodb_session_token: str | None = Field(default=None, description="AWS session token")
    dynamodb_endpoint: str | None = Field(default=None, description="Endpoint URL (DynamoDB Local)")
    dynamodb_session_index: str = Field(
        default=DEFAULT_SESSION_INDEX,
        description="GSI (hash SK, range PK) used for per-session queries",
    )
