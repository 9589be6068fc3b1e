"""Conversation-framework memory adapter.

Duck-types the classic LangChain memory interface (memory_variables,
save_context, load_memory_variables, clear) without importing LangChain.
A fault while persisting a turn is logged and swallowed so memory problems
never abort the host conversation; loading and clearing still raise.
"""

from typing import Any, TYPE_CHECKING

from loguru import logger

from chatmem.memory.constants import OUTPUT_KEYS
from chatmem.memory.models import Message

if TYPE_CHECKING:
    from chatmem.memory.manager import MemoryManager


def format_transcript(messages: list[Message]) -> str:
    """Render messages as newline-joined 'role: content' lines."""
    return "\n".join(f"{m.role}: {m.content}" for m in messages)


class ConversationMemoryAdapter:
    """Memory object bound to a manager's current session."""

    memory_key = "history"

    def __init__(self, manager: "MemoryManager"):
        self.manager = manager

    @property
    def memory_variables(self) -> list[str]:
        return [self.memory_key]

    def persist_turn(self, inputs: dict[str, Any], outputs: dict[str, Any]) -> None:
        """Save one user/assistant exchange.

        Args:
            inputs: Chain inputs; "input" is saved as the user message
            outputs: Chain outputs; first of output/response/text/result is
                saved as the assistant message
        """
        try:
            user_text = inputs.get("input")
            if user_text:
                self.manager.save_user_message(user_text)

            output = next((outputs[k] for k in OUTPUT_KEYS if outputs.get(k)), None)
            if output:
                self.manager.save_assistant_message(output)
        except Exception as e:
            logger.error(f"Failed to persist conversation turn: {e}")

    def load_history(self, inputs: dict[str, Any] | None = None) -> dict[str, Any]:
        """Current session history as a transcript plus structured messages.

        Returns:
            {"history": "user: ...\\nassistant: ...", "messages": [Message, ...]}
        """
        messages = self.manager.get_current_session_history()
        return {self.memory_key: format_transcript(messages), "messages": messages}

    def clear(self) -> None:
        self.manager.clear()

    # LangChain method names
    save_context = persist_turn
    load_memory_variables = load_history
