"""Full-state snapshot storage shared by the local and S3 backends.

All sessions and messages live in memory and are mirrored as one JSON
document, overwritten completely on every mutating call:

    {"messages": [...], "sessions": [...], "lastUpdated": "...Z"}

Reads are served from memory. A per-instance lock serializes each
read-modify-write cycle inside one process. There is no cross-process
locking: two processes writing the same document race without detection
and the last write wins.
"""

import json
import threading
import uuid
from abc import abstractmethod
from datetime import datetime
from typing import Any

from loguru import logger

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


class SnapshotStorage(MemoryStorage):
    """In-memory state with a whole-document durable mirror.

    Subclasses only implement _read_document() and _write_document().
    A failed write leaves memory ahead of the mirror until the next
    successful write.
    """

    def __init__(self, pretty_print: bool = False):
        super().__init__()
        self.pretty_print = pretty_print
        self._messages: dict[str, Message] = {}
        self._sessions: dict[str, Session] = {}
        self._last_updated: datetime = utc_now()
        self._lock = threading.RLock()

    # --------- mirror ----------
    @abstractmethod
    def _read_document(self) -> str | None:
        """Return the stored document text, or None if nothing is stored yet."""
        pass

    @abstractmethod
    def _write_document(self, text: str) -> None:
        """Overwrite the stored document."""
        pass

    @property
    def _name(self) -> str:
        return type(self).__name__

    # --------- lifecycle ----------
    def initialize(self) -> None:
        with self._lock:
            self._ready = False
            try:
                text = self._read_document()
                if text:
                    self._load(json.loads(text))
                else:
                    self._reset()
            except Exception as e:
                raise StorageInitializationError(f"Failed to initialize {self._name}: {e}") from e
            self._ready = True
            logger.info(
                f"{self._name} ready: {len(self._sessions)} sessions, "
                f"{len(self._messages)} messages"
            )

    def _reset(self) -> None:
        self._messages = {}
        self._sessions = {}
        self._last_updated = utc_now()

    def _load(self, document: dict[str, Any]) -> None:
        messages = [Message.model_validate(m) for m in document.get("messages", [])]
        sessions = [Session.model_validate(s) for s in document.get("sessions", [])]
        self._messages = {m.id: m for m in messages}
        self._sessions = {s.id: s for s in sessions}
        last_updated = document.get("lastUpdated")
        self._last_updated = parse_timestamp(last_updated) if last_updated else utc_now()

    def _dump(self) -> str:
        document = {
            "messages": [m.to_wire() for m in self._messages.values()],
            "sessions": [s.to_wire() for s in self._sessions.values()],
            "lastUpdated": format_timestamp(self._last_updated),
        }
        if self.pretty_print:
            return json.dumps(document, indent=2, ensure_ascii=False)
        return json.dumps(document, separators=(",", ":"), ensure_ascii=False)

    def _flush(self) -> None:
        self._last_updated = utc_now()
        try:
            self._write_document(self._dump())
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"{self._name} failed to persist data: {e}") from e

    # --------- sessions ----------
    def _count_messages(self, session_id: str) -> int:
        return sum(1 for m in self._messages.values() if m.session_id == session_id)

    def _refresh_session(self, session_id: str, **fields: Any) -> Session:
        """Recount a session's messages and merge fields, creating it if missing."""
        now = utc_now()
        count = self._count_messages(session_id)
        existing = self._sessions.get(session_id)

        if existing:
            session = existing.model_copy(
                update={**fields, "message_count": count, "updated_at": now}
            )
        else:
            session = Session(
                id=session_id,
                created_at=now,
                updated_at=now,
                message_count=count,
                **fields,
            )
            logger.debug(f"Created session {session_id}")

        self._sessions[session_id] = session
        return session

    # --------- operations ----------
    def save_message(self, message: Message) -> Message:
        self._require_ready()
        with self._lock:
            if not message.id:
                message = message.model_copy(update={"id": str(uuid.uuid4())})
            previous = self._messages.get(message.id)
            self._messages[message.id] = message
            self._refresh_session(message.session_id)
            if previous is not None and previous.session_id != message.session_id:
                self._refresh_session(previous.session_id)
            self._flush()
            logger.debug(f"Saved message {message.id} to session {message.session_id}")
            return message

    def get_messages(self, query: MessageQuery | None = None) -> SearchResult:
        self._require_ready()
        with self._lock:
            return build_search_result(list(self._messages.values()), query or MessageQuery())

    def get_message(self, message_id: str) -> Message | None:
        self._require_ready()
        return self._messages.get(message_id)

    def get_sessions(self) -> list[Session]:
        self._require_ready()
        with self._lock:
            return sorted(self._sessions.values(), key=lambda s: s.updated_at, reverse=True)

    def get_session(self, session_id: str) -> Session | None:
        self._require_ready()
        return self._sessions.get(session_id)

    def update_session(self, session_id: str, updates: SessionUpdate) -> Session:
        self._require_ready()
        with self._lock:
            session = self._refresh_session(session_id, **updates.model_dump(exclude_unset=True))
            self._flush()
            return session

    def delete_message(self, message_id: str) -> None:
        self._require_ready()
        with self._lock:
            message = self._messages.pop(message_id, None)
            if message is None:
                return
            self._refresh_session(message.session_id)
            self._flush()
            logger.debug(f"Deleted message {message_id} from session {message.session_id}")

    def delete_session(self, session_id: str) -> None:
        self._require_ready()
        with self._lock:
            self._messages = {
                mid: m for mid, m in self._messages.items() if m.session_id != session_id
            }
            self._sessions.pop(session_id, None)
            self._flush()
            logger.debug(f"Deleted session {session_id}")

    def get_stats(self) -> MemoryStats:
        self._require_ready()
        with self._lock:
            return build_stats(list(self._sessions.values()), list(self._messages.values()))

    def clear(self) -> None:
        self._require_ready()
        with self._lock:
            self._reset()
            self._flush()
            logger.info(f"{self._name} cleared")
