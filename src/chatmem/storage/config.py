"""Backend configuration models."""

from typing import Literal

from pydantic import BaseModel, Field

from chatmem.memory.constants import DEFAULT_S3_PREFIX, DEFAULT_SESSION_INDEX

StorageType = Literal["local", "s3", "dynamodb"]
S3Encryption = Literal["AES256", "aws:kms"]


class LocalStorageConfig(BaseModel):
    """Single JSON file on the local filesystem."""

    file_path: str = Field(description="Path to the JSON data file")
    encoding: str = Field(default="utf-8", description="File text encoding")
    pretty_print: bool = Field(default=False, description="Indent JSON output")


class AWSCredentials(BaseModel):
    """Optional explicit credentials; boto3's default chain is used otherwise."""

    access_key_id: str | None = None
    secret_access_key: str | None = None
    session_token: str | None = None

    def client_kwargs(self) -> dict[str, str]:
        """Credential kwargs for boto3, only when a full key pair is given."""
        if not (self.access_key_id and self.secret_access_key):
            return {}
        kwargs = {
            "aws_access_key_id": self.access_key_id,
            "aws_secret_access_key": self.secret_access_key,
        }
        if self.session_token:
            kwargs["aws_session_token"] = self.session_token
        return kwargs


class S3StorageConfig(AWSCredentials):
    """Single JSON object in an S3 bucket."""

    bucket_name: str = Field(description="S3 bucket")
    region: str = Field(description="AWS region")
    prefix: str = Field(default=DEFAULT_S3_PREFIX, description="Key prefix for the data object")
    encryption: S3Encryption | None = Field(default=None, description="Server-side encryption")
    endpoint_url: str | None = Field(default=None, description="S3-compatible endpoint (MinIO)")


class DynamoDBStorageConfig(AWSCredentials):
    """One item per message and per session in a DynamoDB table."""

    table_name: str = Field(description="DynamoDB table (hash key PK, range key SK)")
    region: str = Field(description="AWS region")
    endpoint: str | None = Field(default=None, description="Endpoint override (DynamoDB Local)")
    session_index: str = Field(
        default=DEFAULT_SESSION_INDEX,
        description="GSI with hash key SK and range key PK for per-session queries",
    )


class MemoryConfig(BaseModel):
    """Backend selector plus its options."""

    type: StorageType
    options: LocalStorageConfig | S3StorageConfig | DynamoDBStorageConfig
