"""Conversation turns, the message store interface and context assembly."""

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Protocol

from docchat.constants import CONTEXT_INSTRUCTION, DEFAULT_MAX_HISTORY
from docchat.errors import HistoryUnavailableError
from docchat.service.index.models import Chunk

logger = logging.getLogger(__name__)

SYSTEM = "system"
USER = "user"
ASSISTANT = "assistant"
HISTORY_ROLES = (USER, ASSISTANT)


@dataclass(frozen=True)
class ConversationTurn:
    """One message of a chat.

    Attributes:
        role: "system", "user" or "assistant"
        content: Message text
        position: Ordinal position in the chat's history (-1 for unsaved turns)
    """

    role: str
    content: str
    position: int = -1

    def to_message(self) -> dict:
        """Render as a chat message dict for an LLM service."""
        return {"role": self.role, "content": self.content}


class MessageStore(Protocol):
    """Append-only chat history owned outside the RAG core."""

    def append(self, chat_id: str, role: str, content: str) -> int:
        """Append a turn and return its id."""
        ...

    def list_recent(self, chat_id: str, limit: int | None = None) -> list[ConversationTurn]:
        """Return the most recent ``limit`` turns (all if None), oldest first."""
        ...


class InMemoryMessageStore:
    """Thread-safe in-process message store."""

    def __init__(self) -> None:
        self._chats: dict[str, list[ConversationTurn]] = defaultdict(list)
        self._next_id = 1
        self._lock = threading.Lock()

    def append(self, chat_id: str, role: str, content: str) -> int:
        with self._lock:
            history = self._chats[chat_id]
            history.append(ConversationTurn(role=role, content=content, position=len(history)))
            turn_id = self._next_id
            self._next_id += 1
        logger.debug(f"Saved {role} turn for chat {chat_id} ({len(content)} chars)")
        return turn_id

    def list_recent(self, chat_id: str, limit: int | None = None) -> list[ConversationTurn]:
        with self._lock:
            history = list(self._chats.get(chat_id, []))
        if limit is None:
            return history
        if limit <= 0:
            return []
        return history[-limit:]


def format_context(chunks: list[Chunk]) -> str:
    """Join passage texts, each followed by a blank line."""
    return "".join(f"{chunk.text}\n\n" for chunk in chunks)


class ConversationContextBuilder:
    """Assembles the turns sent to the generator.

    The result is one system turn carrying the instruction and the retrieved
    passages, then the most recent user/assistant turns of the chat (oldest
    first), then the new user turn.

    Args:
        message_store: Source of chat history
        max_history: Maximum number of prior turns included
        instruction: Text placed before the retrieved passages
    """

    def __init__(
        self,
        message_store: MessageStore,
        max_history: int = DEFAULT_MAX_HISTORY,
        instruction: str = CONTEXT_INSTRUCTION,
    ) -> None:
        self.message_store = message_store
        self.max_history = max_history
        self.instruction = instruction

    def load_history(self, chat_id: str) -> list[ConversationTurn]:
        """Read the bounded history of a chat, degrading to empty on failure."""
        if self.max_history <= 0:
            return []
        try:
            turns = self.message_store.list_recent(chat_id, self.max_history)
        except Exception as e:
            error = HistoryUnavailableError(f"{type(e).__name__}: {e}")
            logger.warning(f"⚠️ History unavailable for chat {chat_id}, continuing without it: {error}")
            return []

        turns = list(turns)[-self.max_history :]
        kept = [turn for turn in turns if turn.role in HISTORY_ROLES]
        if len(kept) != len(turns):
            logger.debug(f"Skipped {len(turns) - len(kept)} history turns with unrecognized roles")
        return kept

    def build(
        self, chat_id: str, passages: list[Chunk], user_message: str
    ) -> list[ConversationTurn]:
        """Build the ordered turn list for one question.

        Args:
            chat_id: Chat whose history is included
            passages: Retrieved chunks, best match first
            user_message: The new question

        Returns:
            list[ConversationTurn]: system turn, history, new user turn
        """
        system_turn = ConversationTurn(
            role=SYSTEM, content=f"{self.instruction}\n\n{format_context(passages)}"
        )
        history = self.load_history(chat_id)
        turns = [system_turn, *history, ConversationTurn(role=USER, content=user_message)]
        logger.debug(
            f"Built context for chat {chat_id}: {len(passages)} passages, {len(history)} history turns"
        )
        return turns
