"""DynamoDB-backed conversation storage.

No in-memory mirror: every operation is a direct remote call.

Item layout (table hash key PK, range key SK):
    message: PK="MESSAGE#{id}"  SK="SESSION#{sessionId}"  type="message"
    session: PK="SESSION#{id}"  SK="SESSION#{id}"         type="session"

Fields are flattened onto the item with camelCase names; metadata is a
JSON string. Per-session message lookups query a global secondary index
(hash key SK, range key PK). Listing all messages or all sessions is a full
table scan filtered on `type`, so cost grows with total table size no
matter how small the result is.

messageCount is kept with atomic ADD updates on the session item, driven
by what put_item and delete_item report (ReturnValues="ALL_OLD"), so it never
depends on reading the index back after a write. Point reads and scans use
ConsistentRead. GSI queries cannot: a per-session listing, and the message
set removed by delete_session, may miss a message written moments earlier.

Multi-item sequences (cascade delete, message write then count update) are
not transactional: a crash midway leaves partial state.
"""

import json
import uuid
from contextlib import contextmanager
from typing import Any, Callable, Iterator

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from chatmem.memory.constants import (
    ITEM_TYPE_MESSAGE,
    ITEM_TYPE_SESSION,
    MESSAGE_KEY_PREFIX,
    SESSION_KEY_PREFIX,
)
from chatmem.memory.errors import StorageError, StorageInitializationError
from chatmem.memory.models import (
    MemoryStats,
    Message,
    MessageQuery,
    SearchResult,
    Session,
    SessionUpdate,
    build_search_result,
    build_stats,
)
from chatmem.memory.utils import format_timestamp, parse_timestamp, utc_now
from chatmem.storage.base import MemoryStorage
from chatmem.storage.config import DynamoDBStorageConfig


def message_key(message_id: str) -> str:
    return f"{MESSAGE_KEY_PREFIX}{message_id}"


def session_key(session_id: str) -> str:
    return f"{SESSION_KEY_PREFIX}{session_id}"


def message_to_item(message: Message) -> dict[str, Any]:
    """Flatten a message into a DynamoDB item."""
    item = {
        "PK": message_key(message.id),
        "SK": session_key(message.session_id),
        "type": ITEM_TYPE_MESSAGE,
        "id": message.id,
        "sessionId": message.session_id,
        "role": message.role,
        "content": message.content,
        "timestamp": format_timestamp(message.timestamp),
        "createdAt": format_timestamp(utc_now()),
    }
    if message.metadata is not None:
        item["metadata"] = json.dumps(message.metadata)
    return item


def item_to_message(item: dict[str, Any]) -> Message:
    """Rebuild a message from a DynamoDB item."""
    metadata = item.get("metadata")
    return Message(
        id=item["id"],
        session_id=item["sessionId"],
        role=item["role"],
        content=item.get("content", ""),
        timestamp=parse_timestamp(item["timestamp"]),
        metadata=json.loads(metadata) if metadata else None,
    )


def session_to_item(session: Session) -> dict[str, Any]:
    """Flatten a session into a DynamoDB item."""
    item = {
        "PK": session_key(session.id),
        "SK": session_key(session.id),
        "type": ITEM_TYPE_SESSION,
        "id": session.id,
        "createdAt": format_timestamp(session.created_at),
        "updatedAt": format_timestamp(session.updated_at),
        "messageCount": session.message_count,
    }
    if session.title is not None:
        item["title"] = session.title
    if session.metadata is not None:
        item["metadata"] = json.dumps(session.metadata)
    return item


def item_to_session(item: dict[str, Any]) -> Session:
    """Rebuild a session from a DynamoDB item."""
    metadata = item.get("metadata")
    return Session(
        id=item["id"],
        title=item.get("title"),
        created_at=parse_timestamp(item["createdAt"]),
        updated_at=parse_timestamp(item["updatedAt"]),
        # Numbers come back from the resource API as Decimal
        message_count=int(item.get("messageCount", 0)),
        metadata=json.loads(metadata) if metadata else None,
    )


class DynamoDBStorage(MemoryStorage):
    """Item-per-record storage in a DynamoDB table.

    Required table:
        KeySchema: PK (HASH), SK (RANGE)
        GSI {session_index}: SK (HASH), PK (RANGE), projection ALL
    """

    def __init__(self, config: DynamoDBStorageConfig, resource=None):
        """Initialize DynamoDB storage.

        Args:
            config: Table, region, endpoint, index name and credentials
            resource: Optional pre-built boto3 DynamoDB service resource
        """
        super().__init__()
        self.config = config
        self.resource = resource or boto3.resource(
            "dynamodb",
            region_name=config.region,
            endpoint_url=config.endpoint,
            **config.client_kwargs(),
        )
        self.table = self.resource.Table(config.table_name)

    @contextmanager
    def _remote(self, action: str) -> Iterator[None]:
        try:
            yield
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"DynamoDB {action} failed on {self.config.table_name}: {e}") from e

    def _paginate(self, operation: Callable[..., dict[str, Any]], **kwargs: Any) -> list[dict[str, Any]]:
        """Follow LastEvaluatedKey until the result set is exhausted."""
        items: list[dict[str, Any]] = []
        while True:
            response = operation(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    # --------- lifecycle ----------
    def initialize(self) -> None:
        self._ready = False
        try:
            self.table.scan(Limit=1)
        except Exception as e:
            raise StorageInitializationError(
                f"Failed to initialize DynamoDB storage ({self.config.table_name}): {e}"
            ) from e
        self._ready = True
        logger.info(f"DynamoDBStorage ready: table={self.config.table_name}")

    # --------- reads ----------
    def _session_messages(self, session_id: str) -> list[Message]:
        with self._remote("session query"):
            items = self._paginate(
                self.table.query,
                IndexName=self.config.session_index,
                KeyConditionExpression=Key("SK").eq(session_key(session_id))
                & Key("PK").begins_with(MESSAGE_KEY_PREFIX),
            )
        return [item_to_message(item) for item in items]

    def _all_items(self, item_type: str) -> list[dict[str, Any]]:
        with self._remote(f"{item_type} scan"):
            return self._paginate(
                self.table.scan,
                FilterExpression=Attr("type").eq(item_type),
                ConsistentRead=True,
            )

    def get_messages(self, query: MessageQuery | None = None) -> SearchResult:
        self._require_ready()
        query = query or MessageQuery()
        if query.session_id is not None:
            messages = self._session_messages(query.session_id)
        else:
            messages = [item_to_message(i) for i in self._all_items(ITEM_TYPE_MESSAGE)]
        return build_search_result(messages, query)

    def get_message(self, message_id: str) -> Message | None:
        self._require_ready()
        with self._remote("message lookup"):
            response = self.table.query(
                KeyConditionExpression=Key("PK").eq(message_key(message_id)),
                ConsistentRead=True,
                Limit=1,
            )
        items = response.get("Items", [])
        return item_to_message(items[0]) if items else None

    def get_sessions(self) -> list[Session]:
        self._require_ready()
        sessions = [item_to_session(i) for i in self._all_items(ITEM_TYPE_SESSION)]
        return sorted(sessions, key=lambda s: s.updated_at, reverse=True)

    def get_session(self, session_id: str) -> Session | None:
        self._require_ready()
        key = session_key(session_id)
        with self._remote("session lookup"):
            response = self.table.get_item(Key={"PK": key, "SK": key}, ConsistentRead=True)
        item = response.get("Item")
        return item_to_session(item) if item else None

    # --------- writes ----------
    def _update_session(self, session_id: str, delta: int = 0, **fields: Any) -> Session | None:
        """Adjust a session's message count and merge fields in one update_item.

        Creates the session when missing. A decrement is conditional on the
        session existing with a count of at least -delta; when that check
        fails nothing is written and None is returned.

        Args:
            session_id: Session identifier
            delta: Change to messageCount (+1 insert, -1 delete, 0 touch)
            **fields: title/metadata to set (None removes the attribute)

        Returns:
            The session as stored after the update, or None
        """
        names = {
            "#type": "type",
            "#id": "id",
            "#createdAt": "createdAt",
            "#updatedAt": "updatedAt",
            "#messageCount": "messageCount",
        }
        values: dict[str, Any] = {
            ":type": ITEM_TYPE_SESSION,
            ":id": session_id,
            ":now": format_timestamp(utc_now()),
            ":delta": delta,
        }
        assignments = [
            "#type = :type",
            "#id = :id",
            "#createdAt = if_not_exists(#createdAt, :now)",
            "#updatedAt = :now",
        ]
        removals = []
        for name, value in fields.items():
            names[f"#{name}"] = name
            if value is None:
                removals.append(f"#{name}")
            else:
                assignments.append(f"#{name} = :{name}")
                values[f":{name}"] = json.dumps(value) if name == "metadata" else value

        expression = "SET " + ", ".join(assignments)
        if removals:
            expression += " REMOVE " + ", ".join(removals)
        expression += " ADD #messageCount :delta"

        key = session_key(session_id)
        params: dict[str, Any] = {
            "Key": {"PK": key, "SK": key},
            "UpdateExpression": expression,
            "ExpressionAttributeNames": names,
            "ExpressionAttributeValues": values,
            "ReturnValues": "ALL_NEW",
        }
        if delta < 0:
            params["ConditionExpression"] = "#messageCount >= :floor"
            values[":floor"] = -delta

        with self._remote("session update"):
            try:
                response = self.table.update_item(**params)
            except ClientError as e:
                if e.response.get("Error", {}).get("Code") != "ConditionalCheckFailedException":
                    raise
                logger.warning(f"Session {session_id} is missing or empty, count left unchanged")
                return None
        return item_to_session(response["Attributes"])

    def _delete_message_item(self, message: Message) -> None:
        with self._remote("message delete"):
            response = self.table.delete_item(
                Key={"PK": message_key(message.id), "SK": session_key(message.session_id)},
                ReturnValues="ALL_OLD",
            )
        if "Attributes" in response:
            self._update_session(message.session_id, delta=-1)

    def save_message(self, message: Message) -> Message:
        self._require_ready()
        if not message.id:
            message = message.model_copy(update={"id": str(uuid.uuid4())})
        previous = self.get_message(message.id)

        with self._remote("message put"):
            response = self.table.put_item(Item=message_to_item(message), ReturnValues="ALL_OLD")
        inserted = "Attributes" not in response
        self._update_session(message.session_id, delta=1 if inserted else 0)

        # Same id saved under another session: the old item has a different key
        if previous is not None and previous.session_id != message.session_id:
            self._delete_message_item(previous)

        logger.debug(f"Saved message {message.id} to session {message.session_id}")
        return message

    def update_session(self, session_id: str, updates: SessionUpdate) -> Session:
        self._require_ready()
        return self._update_session(session_id, **updates.model_dump(exclude_unset=True))

    def delete_message(self, message_id: str) -> None:
        self._require_ready()
        message = self.get_message(message_id)
        if message is None:
            return

        self._delete_message_item(message)
        logger.debug(f"Deleted message {message_id} from session {message.session_id}")

    def delete_session(self, session_id: str) -> None:
        self._require_ready()
        messages = self._session_messages(session_id)
        key = session_key(session_id)

        with self._remote("session delete"):
            with self.table.batch_writer() as batch:
                for message in messages:
                    batch.delete_item(Key={"PK": message_key(message.id), "SK": key})
            self.table.delete_item(Key={"PK": key, "SK": key})
        logger.debug(f"Deleted session {session_id} and {len(messages)} messages")

    def get_stats(self) -> MemoryStats:
        self._require_ready()
        sessions = self.get_sessions()
        messages = [item_to_message(i) for i in self._all_items(ITEM_TYPE_MESSAGE)]
        return build_stats(sessions, messages)

    def clear(self) -> None:
        self._require_ready()
        with self._remote("clear"):
            keys = self._paginate(
                self.table.scan, ProjectionExpression="PK, SK", ConsistentRead=True
            )
            with self.table.batch_writer() as batch:
                for key in keys:
                    batch.delete_item(Key={"PK": key["PK"], "SK": key["SK"]})
        logger.info(f"DynamoDBStorage cleared {len(keys)} items from {self.config.table_name}")
