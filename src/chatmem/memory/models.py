"""Pydantic models for conversation memory.

Field names are snake_case in Python and camelCase on the wire, so
documents written by existing stores load unchanged:

    {"id": "...", "sessionId": "...", "role": "user", "content": "...",
     "timestamp": "2025-01-02T03:04:05.678Z", "metadata": {...}}

Timestamps are normalized to aware UTC datetimes with millisecond
precision on validation and rendered as ISO 8601 with a 'Z' suffix.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from chatmem.memory.utils import format_timestamp, truncate_to_millis

Role = Literal["user", "assistant", "system"]


class WireModel(BaseModel):
    """Base model with camelCase aliases and millisecond UTC timestamps."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    @field_validator("*", mode="after")
    @classmethod
    def normalize_datetimes(cls, v: Any) -> Any:
        """Bring every datetime field to aware UTC, millisecond precision."""
        if isinstance(v, datetime):
            return truncate_to_millis(v)
        return v

    def to_wire(self) -> dict[str, Any]:
        """Serialize with wire aliases, omitting unset optional fields."""
        data = self.model_dump(mode="json", by_alias=True)
        return {k: v for k, v in data.items() if v is not None}


class Message(WireModel):
    """A single conversation message."""

    id: str | None = Field(default=None, description="Message UUID (assigned on save if missing)")
    session_id: str = Field(description="Owning session identifier")
    role: Role = Field(description="Message role")
    content: str = Field(description="Message text")
    timestamp: datetime = Field(description="Creation time (UTC)")
    metadata: dict[str, Any] | None = Field(default=None, description="Arbitrary caller metadata")

    @field_serializer("timestamp", when_used="json")
    def serialize_timestamp(self, v: datetime) -> str:
        return format_timestamp(v)


class Session(WireModel):
    """A named conversation thread.

    message_count is derived by the storage backend and always equals the
    number of stored messages referencing this session.
    """

    id: str = Field(description="Session identifier")
    title: str | None = Field(default=None, description="Optional display title")
    created_at: datetime = Field(description="Creation time (UTC)")
    updated_at: datetime = Field(description="Last modification time (UTC)")
    message_count: int = Field(default=0, ge=0, description="Number of messages in session")
    metadata: dict[str, Any] | None = Field(default=None, description="Arbitrary caller metadata")

    @field_serializer("created_at", "updated_at", when_used="json")
    def serialize_timestamps(self, v: datetime) -> str:
        return format_timestamp(v)


class SessionUpdate(BaseModel):
    """Caller-editable session fields for a partial update.

    Only fields explicitly set are merged into the stored session.
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    metadata: dict[str, Any] | None = None


class MessageQuery(BaseModel):
    """Conjunctive message filter with offset/limit pagination."""

    session_id: str | None = None
    role: Role | None = None
    start_date: datetime | None = Field(default=None, description="Inclusive lower bound")
    end_date: datetime | None = Field(default=None, description="Inclusive upper bound")
    limit: int | None = Field(default=None, ge=0, description="Max results (None = all)")
    offset: int = Field(default=0, ge=0)

    @field_validator("start_date", "end_date", mode="after")
    @classmethod
    def normalize_bounds(cls, v: datetime | None) -> datetime | None:
        return truncate_to_millis(v) if v is not None else None

    def matches(self, message: Message) -> bool:
        """Check a message against every configured filter."""
        if self.session_id is not None and message.session_id != self.session_id:
            return False
        if self.role is not None and message.role != self.role:
            return False
        if self.start_date is not None and message.timestamp < self.start_date:
            return False
        if self.end_date is not None and message.timestamp > self.end_date:
            return False
        return True


class SearchResult(BaseModel):
    """A page of messages plus the total number of matches."""

    messages: list[Message] = Field(default_factory=list)
    total: int = 0
    has_more: bool = False


class MemoryStats(BaseModel):
    """Aggregate statistics across all stored data."""

    total_sessions: int = 0
    total_messages: int = 0
    oldest_message: datetime | None = None
    newest_message: datetime | None = None
    average_messages_per_session: float = 0


def build_search_result(messages: list[Message], query: MessageQuery) -> SearchResult:
    """Filter, sort ascending by timestamp and paginate.

    has_more is offset + limit < total; with no limit every match from
    offset onwards is returned and has_more is False.

    Args:
        messages: Candidate messages (any order)
        query: Filters and pagination

    Returns:
        SearchResult for the requested page
    """
    matched = sorted((m for m in messages if query.matches(m)), key=lambda m: m.timestamp)
    total = len(matched)
    offset = query.offset
    limit = query.limit if query.limit is not None else total

    return SearchResult(
        messages=matched[offset : offset + limit],
        total=total,
        has_more=offset + limit < total,
    )


def build_stats(sessions: list[Session], messages: list[Message]) -> MemoryStats:
    """Compute aggregate statistics from full session and message lists."""
    timestamps = [m.timestamp for m in messages]
    return MemoryStats(
        total_sessions=len(sessions),
        total_messages=len(messages),
        oldest_message=min(timestamps) if timestamps else None,
        newest_message=max(timestamps) if timestamps else None,
        average_messages_per_session=len(messages) / len(sessions) if sessions else 0,
    )
