"""Conversation memory manager.

Tracks one current session per instance and forwards every durable
operation to the bound storage backend. Callers that need several
concurrent conversations should hold one manager per conversation or use
the explicit session_id variants (get_session_history, search_messages).
"""

import uuid
from typing import Any, TYPE_CHECKING

from loguru import logger

from chatmem.memory.adapter import ConversationMemoryAdapter
from chatmem.memory.constants import ROLE_ASSISTANT, ROLE_SYSTEM, ROLE_USER
from chatmem.memory.errors import NoActiveSessionError, NotInitializedError
from chatmem.memory.models import (
    MemoryStats,
    Message,
    MessageQuery,
    Role,
    SearchResult,
    Session,
    SessionUpdate,
)
from chatmem.memory.utils import MonotonicClock

if TYPE_CHECKING:
    from chatmem.storage.base import MemoryStorage


class MemoryManager:
    """Manage conversation sessions and messages on top of a storage backend.

    Message timestamps come from a per-instance monotonic clock, so a
    message saved after another through the same manager always sorts after
    it (e.g. an assistant reply saved right after the user turn).

    Example:
        >>> manager = MemoryManager(LocalStorage(LocalStorageConfig(file_path="memory.json")))
        >>> manager.initialize()
        >>> manager.start_session("s1", title="Support chat")
        's1'
        >>> user_id = manager.save_user_message("hi")
        >>> reply_id = manager.save_assistant_message("hello")
        >>> [m.role for m in manager.get_current_session_history()]
        ['user', 'assistant']
    """

    def __init__(self, storage: "MemoryStorage"):
        """Initialize memory manager.

        Args:
            storage: Backend that owns all durable state
        """
        self._storage = storage
        self._current_session_id: str | None = None
        self._ready = False
        self._clock = MonotonicClock()

    @property
    def storage(self) -> "MemoryStorage":
        """The bound storage backend."""
        return self._storage

    def initialize(self) -> None:
        """Initialize the backend and mark the manager ready.

        Raises:
            StorageInitializationError: If the backend fails to initialize
        """
        self._storage.initialize()
        self._ready = True
        logger.info(f"Memory manager initialized with {type(self._storage).__name__}")

    def is_ready(self) -> bool:
        return self._ready and self._storage.is_ready()

    # --------- sessions ----------
    def start_session(self, session_id: str | None = None, title: str | None = None) -> str:
        """Start (or resume) a session and make it current.

        The session record exists in storage by the time this returns.

        Args:
            session_id: Session identifier (UUID generated if None)
            title: Title for a newly created session

        Returns:
            The current session id

        Raises:
            NotInitializedError: If initialize() has not been called
        """
        if not self._ready:
            raise NotInitializedError("Memory manager")

        session_id = session_id or str(uuid.uuid4())
        self._current_session_id = session_id

        if self._storage.get_session(session_id) is None:
            updates = SessionUpdate(title=title) if title is not None else SessionUpdate()
            self._storage.update_session(session_id, updates)
            logger.debug(f"Started new session {session_id}")
        else:
            logger.debug(f"Resumed session {session_id}")

        return session_id

    def get_current_session_id(self) -> str | None:
        return self._current_session_id

    def set_current_session(self, session_id: str) -> None:
        """Point at a session without checking that it exists."""
        self._current_session_id = session_id

    def _require_session(self) -> str:
        if not self._current_session_id:
            raise NoActiveSessionError()
        return self._current_session_id

    # --------- messages ----------
    def _save(self, role: Role, content: str, metadata: dict[str, Any] | None) -> str:
        session_id = self._require_session()
        message = Message(
            id=str(uuid.uuid4()),
            session_id=session_id,
            role=role,
            content=content,
            timestamp=self._clock.now(),
            metadata=metadata,
        )
        self._storage.save_message(message)
        return message.id

    def save_user_message(self, content: str, metadata: dict[str, Any] | None = None) -> str:
        """Save a user message to the current session.

        Returns:
            Message id

        Raises:
            NoActiveSessionError: If no session has been started
        """
        return self._save(ROLE_USER, content, metadata)

    def save_assistant_message(self, content: str, metadata: dict[str, Any] | None = None) -> str:
        """Save an assistant message to the current session.

        Returns:
            Message id

        Raises:
            NoActiveSessionError: If no session has been started
        """
        return self._save(ROLE_ASSISTANT, content, metadata)

    def save_system_message(self, content: str, metadata: dict[str, Any] | None = None) -> str:
        """Save a system message to the current session.

        Returns:
            Message id

        Raises:
            NoActiveSessionError: If no session has been started
        """
        return self._save(ROLE_SYSTEM, content, metadata)

    def get_current_session_history(self, limit: int | None = None) -> list[Message]:
        """Messages of the current session, oldest first.

        Raises:
            NoActiveSessionError: If no session has been started
        """
        return self.get_session_history(self._require_session(), limit)

    def get_session_history(self, session_id: str, limit: int | None = None) -> list[Message]:
        """Messages of any session, oldest first."""
        result = self._storage.get_messages(MessageQuery(session_id=session_id, limit=limit))
        return result.messages

    # --------- pass-throughs ----------
    def search_messages(self, query: MessageQuery | None = None, **filters: Any) -> SearchResult:
        """Query messages by session, role and date range with pagination.

        Args:
            query: Prebuilt query (takes precedence over filters)
            **filters: MessageQuery fields (session_id, role, start_date, ...)
        """
        return self._storage.get_messages(query or MessageQuery(**filters))

    def get_sessions(self) -> list[Session]:
        return self._storage.get_sessions()

    def get_session(self, session_id: str) -> Session | None:
        return self._storage.get_session(session_id)

    def update_session(self, session_id: str, updates: SessionUpdate | dict[str, Any]) -> Session:
        """Merge title/metadata into a session, creating it if missing."""
        if not isinstance(updates, SessionUpdate):
            updates = SessionUpdate.model_validate(updates)
        return self._storage.update_session(session_id, updates)

    def get_message(self, message_id: str) -> Message | None:
        return self._storage.get_message(message_id)

    def delete_message(self, message_id: str) -> None:
        self._storage.delete_message(message_id)

    def delete_session(self, session_id: str) -> None:
        """Delete a session with its messages; drops it as current if it was."""
        self._storage.delete_session(session_id)
        if self._current_session_id == session_id:
            self._current_session_id = None

    def get_stats(self) -> MemoryStats:
        return self._storage.get_stats()

    def clear(self) -> None:
        """Delete everything and forget the current session."""
        self._storage.clear()
        self._current_session_id = None

    def create_langchain_memory(self) -> ConversationMemoryAdapter:
        """Memory object for conversation frameworks (LangChain memory contract)."""
        return ConversationMemoryAdapter(self)
