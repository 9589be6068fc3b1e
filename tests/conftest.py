"""Shared fixtures: one contract suite, three backends.

S3 and DynamoDB run against moto's in-process AWS mock.
"""

from datetime import datetime, timedelta, timezone

import boto3
import pytest
from moto import mock_aws

from chatmem.memory.models import Message
from chatmem.storage.config import DynamoDBStorageConfig, LocalStorageConfig, S3StorageConfig
from chatmem.storage.dynamodb import DynamoDBStorage
from chatmem.storage.local import LocalStorage
from chatmem.storage.s3 import S3Storage

REGION = "us-east-1"
BUCKET = "chatmem-test"
TABLE = "chatmem-test"
BASE_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake credentials so boto3 never reaches a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", REGION)


@pytest.fixture
def mocked_aws(aws_credentials):
    with mock_aws():
        yield


def create_table(name: str = TABLE, index_name: str = "SessionIndex") -> None:
    """Create the table layout DynamoDBStorage expects."""
    client = boto3.client("dynamodb", region_name=REGION)
    client.create_table(
        TableName=name,
        KeySchema=[
            {"AttributeName": "PK", "KeyType": "HASH"},
            {"AttributeName": "SK", "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": "PK", "AttributeType": "S"},
            {"AttributeName": "SK", "AttributeType": "S"},
        ],
        GlobalSecondaryIndexes=[
            {
                "IndexName": index_name,
                "KeySchema": [
                    {"AttributeName": "SK", "KeyType": "HASH"},
                    {"AttributeName": "PK", "KeyType": "RANGE"},
                ],
                "Projection": {"ProjectionType": "ALL"},
            }
        ],
        BillingMode="PAY_PER_REQUEST",
    )


@pytest.fixture
def local_backend(tmp_path):
    """Uninitialized LocalStorage in a temp directory."""
    return LocalStorage(LocalStorageConfig(file_path=str(tmp_path / "data" / "memory.json")))


@pytest.fixture
def s3_backend(mocked_aws):
    """Uninitialized S3Storage against an empty mocked bucket."""
    boto3.client("s3", region_name=REGION).create_bucket(Bucket=BUCKET)
    return S3Storage(S3StorageConfig(bucket_name=BUCKET, region=REGION))


@pytest.fixture
def dynamodb_backend(mocked_aws):
    """Uninitialized DynamoDBStorage against an empty mocked table."""
    create_table()
    return DynamoDBStorage(DynamoDBStorageConfig(table_name=TABLE, region=REGION))


@pytest.fixture(params=["local", "s3", "dynamodb"])
def backend(request):
    """Each backend, uninitialized."""
    return request.getfixturevalue(f"{request.param}_backend")


@pytest.fixture
def storage(backend):
    """Each backend, initialized and empty."""
    backend.initialize()
    return backend


def make_message(
    session_id: str = "s1",
    role: str = "user",
    content: str = "hello",
    minutes: int = 0,
    message_id: str | None = None,
    metadata: dict | None = None,
) -> Message:
    """Build a message at BASE_TIME + minutes."""
    return Message(
        id=message_id,
        session_id=session_id,
        role=role,
        content=content,
        timestamp=BASE_TIME + timedelta(minutes=minutes),
        metadata=metadata,
    )


@pytest.fixture
def message_factory():
    return make_message


@pytest.fixture
def table_factory(mocked_aws):
    """Create extra tables inside the active AWS mock."""
    return create_table
