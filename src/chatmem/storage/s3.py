"""S3-backed conversation storage.

Same snapshot strategy as LocalStorage, but the document is the body of a
single object:

    s3://{bucket_name}/{prefix}/data.json

Works with AWS S3 and S3-compatible stores (MinIO) via endpoint_url.
"""

import boto3
from botocore.exceptions import ClientError
from loguru import logger

from chatmem.memory.constants import DATA_OBJECT_NAME, DEFAULT_S3_PREFIX
from chatmem.storage.config import S3StorageConfig
from chatmem.storage.snapshot import SnapshotStorage

_MISSING_OBJECT_CODES = {"NoSuchKey", "404"}


class S3Storage(SnapshotStorage):
    """Single-object JSON storage in S3.

    A missing object on first load means an empty store. Any other
    retrieval error (missing bucket, access denied) fails initialization.
    """

    def __init__(self, config: S3StorageConfig, client=None):
        """Initialize S3 storage.

        Args:
            config: Bucket, region, prefix, encryption and credentials
            client: Optional pre-built boto3 S3 client
        """
        super().__init__()
        self.config = config
        self.key = f"{config.prefix or DEFAULT_S3_PREFIX}/{DATA_OBJECT_NAME}"
        self.client = client or boto3.client(
            "s3",
            region_name=config.region,
            endpoint_url=config.endpoint_url,
            **config.client_kwargs(),
        )

    @property
    def uri(self) -> str:
        return f"s3://{self.config.bucket_name}/{self.key}"

    def _read_document(self) -> str | None:
        try:
            response = self.client.get_object(Bucket=self.config.bucket_name, Key=self.key)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code")
            if error_code in _MISSING_OBJECT_CODES:
                logger.warning(f"No data object at {self.uri}, starting empty")
                return None
            raise
        return response["Body"].read().decode("utf-8")

    def _write_document(self, text: str) -> None:
        params = {
            "Bucket": self.config.bucket_name,
            "Key": self.key,
            "Body": text.encode("utf-8"),
            "ContentType": "application/json",
        }
        if self.config.encryption:
            params["ServerSideEncryption"] = self.config.encryption
        self.client.put_object(**params)
