"""DynamoDBStorage item layout and error handling tests."""

import json
from unittest.mock import Mock, patch

import boto3
import pytest
from botocore.exceptions import ClientError

from chatmem.memory.errors import StorageError, StorageInitializationError
from chatmem.memory.models import MessageQuery, SessionUpdate
from chatmem.storage.config import DynamoDBStorageConfig
from chatmem.storage.dynamodb import DynamoDBStorage, item_to_session

REGION = "us-east-1"
TABLE = "chatmem-test"


@pytest.fixture
def table(dynamodb_backend):
    """Raw table handle next to an initialized storage."""
    dynamodb_backend.initialize()
    return boto3.resource("dynamodb", region_name=REGION).Table(TABLE)


def test_message_item_layout(dynamodb_backend, table, message_factory):
    dynamodb_backend.save_message(message_factory(message_id="m1", metadata={"lang": "en"}))

    item = table.get_item(Key={"PK": "MESSAGE#m1", "SK": "SESSION#s1"})["Item"]

    assert item["type"] == "message"
    assert item["id"] == "m1"
    assert item["sessionId"] == "s1"
    assert item["role"] == "user"
    assert item["content"] == "hello"
    assert item["timestamp"] == "2024-01-01T12:00:00.000Z"
    assert json.loads(item["metadata"]) == {"lang": "en"}
    assert item["createdAt"].endswith("Z")


def test_message_without_metadata_omits_attribute(dynamodb_backend, table, message_factory):
    dynamodb_backend.save_message(message_factory(message_id="m1"))

    item = table.get_item(Key={"PK": "MESSAGE#m1", "SK": "SESSION#s1"})["Item"]

    assert "metadata" not in item


def test_session_item_layout(dynamodb_backend, table, message_factory):
    dynamodb_backend.save_message(message_factory(message_id="m1"))
    dynamodb_backend.update_session("s1", SessionUpdate(title="Support", metadata={"tier": 2}))

    item = table.get_item(Key={"PK": "SESSION#s1", "SK": "SESSION#s1"})["Item"]

    assert item["type"] == "session"
    assert item["id"] == "s1"
    assert item["title"] == "Support"
    assert item["messageCount"] == 1
    assert json.loads(item["metadata"]) == {"tier": 2}


def test_session_count_decimal_becomes_int(dynamodb_backend, table, message_factory):
    dynamodb_backend.save_message(message_factory(message_id="m1"))

    raw = table.get_item(Key={"PK": "SESSION#s1", "SK": "SESSION#s1"})["Item"]
    session = item_to_session(raw)

    assert session.message_count == 1
    assert isinstance(session.message_count, int)


def test_delete_session_removes_all_items(dynamodb_backend, table, message_factory):
    for i in range(30):
        dynamodb_backend.save_message(message_factory(message_id=f"m{i}", minutes=i))

    dynamodb_backend.delete_session("s1")

    assert table.scan()["Items"] == []


def test_custom_session_index(table_factory, message_factory):
    table_factory(name="custom", index_name="BySession")
    storage = DynamoDBStorage(
        DynamoDBStorageConfig(table_name="custom", region=REGION, session_index="BySession")
    )
    storage.initialize()

    storage.save_message(message_factory(message_id="m1"))
    storage.save_message(message_factory(message_id="m2", minutes=1))

    assert storage.get_session("s1").message_count == 2
    assert [m.id for m in storage.get_messages(MessageQuery(session_id="s1")).messages] == ["m1", "m2"]


def test_missing_table_fails_initialize(mocked_aws):
    storage = DynamoDBStorage(DynamoDBStorageConfig(table_name="missing", region=REGION))

    with pytest.raises(StorageInitializationError, match="missing"):
        storage.initialize()
    assert storage.is_ready() is False


def test_remote_fault_raises_storage_error(dynamodb_backend, message_factory):
    dynamodb_backend.initialize()
    error = ClientError(
        {"Error": {"Code": "ProvisionedThroughputExceededException", "Message": "slow down"}},
        "PutItem",
    )

    with patch.object(dynamodb_backend.table, "put_item", side_effect=error):
        with pytest.raises(StorageError, match="ProvisionedThroughputExceeded"):
            dynamodb_backend.save_message(message_factory(message_id="m1"))


def test_paginate_follows_last_evaluated_key():
    storage = DynamoDBStorage(
        DynamoDBStorageConfig(table_name=TABLE, region=REGION), resource=Mock()
    )
    operation = Mock(
        side_effect=[
            {"Items": [{"n": 1}], "LastEvaluatedKey": {"PK": "a"}},
            {"Items": [{"n": 2}], "LastEvaluatedKey": {"PK": "b"}},
            {"Items": [{"n": 3}]},
        ]
    )

    items = storage._paginate(operation, Limit=10)

    assert items == [{"n": 1}, {"n": 2}, {"n": 3}]
    assert operation.call_count == 3
    assert operation.call_args_list[0].kwargs == {"Limit": 10}
    assert operation.call_args_list[2].kwargs == {"Limit": 10, "ExclusiveStartKey": {"PK": "b"}}


def test_counts_do_not_read_the_session_index(dynamodb_backend, message_factory):
    """A lagging index must not leak into message_count."""
    dynamodb_backend.initialize()

    with patch.object(DynamoDBStorage, "_session_messages", return_value=[]):
        dynamodb_backend.save_message(message_factory(message_id="m1"))
        dynamodb_backend.save_message(message_factory(message_id="m2", minutes=1))
        dynamodb_backend.save_message(message_factory(message_id="m2", content="edited"))
        assert dynamodb_backend.get_session("s1").message_count == 2

        dynamodb_backend.delete_message("m1")
        assert dynamodb_backend.get_session("s1").message_count == 1


def test_moved_message_leaves_single_item(dynamodb_backend, table, message_factory):
    dynamodb_backend.save_message(message_factory(session_id="a", message_id="m1"))
    dynamodb_backend.save_message(message_factory(session_id="b", message_id="m1"))

    messages = [i for i in table.scan()["Items"] if i["type"] == "message"]

    assert [(i["PK"], i["SK"]) for i in messages] == [("MESSAGE#m1", "SESSION#b")]


def test_decrement_never_creates_or_underflows_session(dynamodb_backend):
    dynamodb_backend.initialize()

    assert dynamodb_backend._update_session("ghost", delta=-1) is None
    assert dynamodb_backend.get_session("ghost") is None

    dynamodb_backend.update_session("s1", SessionUpdate(title="x"))
    assert dynamodb_backend._update_session("s1", delta=-1) is None
    assert dynamodb_backend.get_session("s1").message_count == 0


def test_update_session_none_removes_attribute(dynamodb_backend, table):
    dynamodb_backend.initialize()
    dynamodb_backend.update_session("s1", SessionUpdate(title="Support", metadata={"a": 1}))

    session = dynamodb_backend.update_session("s1", SessionUpdate(title=None))

    item = table.get_item(Key={"PK": "SESSION#s1", "SK": "SESSION#s1"})["Item"]
    assert "title" not in item
    assert session.title is None
    assert session.metadata == {"a": 1}


def test_failed_reinitialize_marks_not_ready(dynamodb_backend):
    dynamodb_backend.initialize()
    error = ClientError({"Error": {"Code": "ResourceNotFoundException", "Message": "gone"}}, "Scan")

    with patch.object(dynamodb_backend.table, "scan", side_effect=error):
        with pytest.raises(StorageInitializationError):
            dynamodb_backend.initialize()

    assert dynamodb_backend.is_ready() is False
