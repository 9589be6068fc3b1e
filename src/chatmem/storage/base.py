"""Abstract conversation storage interface.

Defines the contract shared by every backend:
- LocalStorage: one JSON file on disk
- S3Storage: one JSON object in an S3 bucket
- DynamoDBStorage: one item per message and per session

Every operation except is_ready() requires a successful initialize().
"""

from abc import ABC, abstractmethod

from chatmem.memory.errors import NotInitializedError
from chatmem.memory.models import (
    MemoryStats,
    Message,
    MessageQuery,
    SearchResult,
    Session,
    SessionUpdate,
)


class MemoryStorage(ABC):
    """Abstract interface for message and session persistence.

    Missing sessions are created by save_message() and by update_session().
    Point lookups return None for unknown ids. Backend faults surface as
    StorageError; nothing is retried and multi-step operations are not
    rolled back.
    """

    def __init__(self):
        self._ready = False

    def is_ready(self) -> bool:
        """Check whether initialize() has completed successfully."""
        return self._ready

    def _require_ready(self) -> None:
        if not self._ready:
            raise NotInitializedError()

    @abstractmethod
    def initialize(self) -> None:
        """Prepare the backend (open file, load object, probe table).

        Raises:
            StorageInitializationError: If the backend is unreachable or unreadable
        """
        pass

    @abstractmethod
    def save_message(self, message: Message) -> Message:
        """Upsert a message and refresh its session.

        Args:
            message: Message to store (id assigned if missing)

        Returns:
            The stored message
        """
        pass

    def save_messages(self, messages: list[Message]) -> list[Message]:
        """Save messages one at a time. Not atomic as a batch.

        Args:
            messages: Messages to store, in order

        Returns:
            Stored messages
        """
        self._require_ready()
        return [self.save_message(message) for message in messages]

    @abstractmethod
    def get_messages(self, query: MessageQuery | None = None) -> SearchResult:
        """Query messages with conjunctive filters.

        Args:
            query: Filters and pagination (None = every message)

        Returns:
            Page of messages sorted ascending by timestamp
        """
        pass

    @abstractmethod
    def get_message(self, message_id: str) -> Message | None:
        """Get a message by id, or None if absent."""
        pass

    @abstractmethod
    def get_sessions(self) -> list[Session]:
        """Get all sessions ordered by updated_at descending."""
        pass

    @abstractmethod
    def get_session(self, session_id: str) -> Session | None:
        """Get a session by id, or None if absent."""
        pass

    @abstractmethod
    def update_session(self, session_id: str, updates: SessionUpdate) -> Session:
        """Merge explicitly set fields into a session, creating it if missing.

        Args:
            session_id: Session identifier
            updates: Fields to merge (unset fields are left alone)

        Returns:
            The stored session
        """
        pass

    @abstractmethod
    def delete_message(self, message_id: str) -> None:
        """Delete a message if present and refresh its session count."""
        pass

    @abstractmethod
    def delete_session(self, session_id: str) -> None:
        """Delete a session and every message that references it."""
        pass

    @abstractmethod
    def get_stats(self) -> MemoryStats:
        """Compute aggregate statistics over all stored data."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove all messages and sessions."""
        pass
