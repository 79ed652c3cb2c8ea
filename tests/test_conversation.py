"""Tests for conversation history and context assembly."""

from unittest.mock import MagicMock

from docchat.constants import CONTEXT_INSTRUCTION
from docchat.service.conversation import (
    ASSISTANT,
    SYSTEM,
    USER,
    ConversationContextBuilder,
    InMemoryMessageStore,
    format_context,
)
from docchat.service.index import Chunk


class TestInMemoryMessageStore:
    """Tests for InMemoryMessageStore."""

    def test_append_and_list(self):
        """Test that turns are returned oldest first with positions."""
        store = InMemoryMessageStore()
        first = store.append("c1", USER, "hi")
        second = store.append("c1", ASSISTANT, "hello")

        turns = store.list_recent("c1")

        assert second > first
        assert [(t.role, t.content, t.position) for t in turns] == [
            (USER, "hi", 0),
            (ASSISTANT, "hello", 1),
        ]

    def test_limit_keeps_most_recent(self):
        """Test that a limit returns the newest turns."""
        store = InMemoryMessageStore()
        for i in range(5):
            store.append("c1", USER, f"m{i}")
        assert [t.content for t in store.list_recent("c1", 2)] == ["m3", "m4"]
        assert store.list_recent("c1", 0) == []

    def test_chats_are_isolated(self):
        """Test that chats do not see each other's turns."""
        store = InMemoryMessageStore()
        store.append("c1", USER, "one")
        assert store.list_recent("c2") == []


class TestFormatContext:
    """Tests for the format_context function."""

    def test_each_passage_followed_by_blank_line(self):
        """Test that passages are joined with trailing blank lines."""
        chunks = [Chunk("a.txt", "First.", 0), Chunk("b.txt", "Second.", 0)]
        assert format_context(chunks) == "First.\n\nSecond.\n\n"

    def test_no_passages(self):
        assert format_context([]) == ""


class TestConversationContextBuilder:
    """Tests for ConversationContextBuilder."""

    def test_turn_order(self):
        """Test system turn, then history oldest first, then the new question."""
        store = InMemoryMessageStore()
        store.append("c1", USER, "earlier question")
        store.append("c1", ASSISTANT, "earlier answer")
        builder = ConversationContextBuilder(store)

        turns = builder.build("c1", [Chunk("a.txt", "Passage.", 0)], "new question")

        assert [t.role for t in turns] == [SYSTEM, USER, ASSISTANT, USER]
        assert turns[0].content == f"{CONTEXT_INSTRUCTION}\n\nPassage.\n\n"
        assert turns[-1].content == "new question"

    def test_history_is_bounded(self):
        """Test that only the most recent max_history turns are included."""
        store = InMemoryMessageStore()
        for i in range(12):
            store.append("c1", USER if i % 2 == 0 else ASSISTANT, f"m{i}")
        builder = ConversationContextBuilder(store, max_history=4)

        turns = builder.build("c1", [], "q")

        assert [t.content for t in turns[1:-1]] == ["m8", "m9", "m10", "m11"]

    def test_zero_history(self):
        """Test that max_history=0 sends no history."""
        store = InMemoryMessageStore()
        store.append("c1", USER, "old")
        turns = ConversationContextBuilder(store, max_history=0).build("c1", [], "q")
        assert len(turns) == 2

    def test_unknown_roles_skipped(self):
        """Test that stored system or tool turns are not replayed."""
        store = InMemoryMessageStore()
        store.append("c1", "tool", "tool output")
        store.append("c1", USER, "question")
        turns = ConversationContextBuilder(store).build("c1", [], "q")
        assert [t.role for t in turns] == [SYSTEM, USER, USER]

    def test_history_failure_degrades_to_empty(self):
        """Test that an unreadable store yields no history instead of an error."""
        store = MagicMock()
        store.list_recent.side_effect = ConnectionError("db down")
        turns = ConversationContextBuilder(store).build("c1", [], "q")
        assert [t.role for t in turns] == [SYSTEM, USER]

    def test_empty_passages(self):
        """Test that the instruction is still sent without passages."""
        turns = ConversationContextBuilder(InMemoryMessageStore()).build("c1", [], "q")
        assert turns[0].content == f"{CONTEXT_INSTRUCTION}\n\n"
