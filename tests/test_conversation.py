"""Tests for docfill.conversation."""

import pytest

from docfill.conversation import ConversationLog, Turn


class TestConversationLog:
    """Append-only turn history."""

    def test_append_preserves_order(self):
        log = ConversationLog()
        log.append(Turn(role="assistant", content="Hi, what's the company?"))
        log.append(Turn(role="user", content="Acme"))
        assert [t.content for t in log.all()] == ["Hi, what's the company?", "Acme"]
        assert len(log) == 2

    def test_tail(self):
        log = ConversationLog()
        for i in range(5):
            log.append(Turn(role="user", content=str(i)))
        assert [t.content for t in log.tail(2)] == ["3", "4"]
        assert len(log.tail(10)) == 5
        assert log.tail(0) == []

    def test_all_returns_copy(self):
        """Mutating the returned list does not touch the log."""
        log = ConversationLog()
        log.append(Turn(role="user", content="a"))
        log.all().clear()
        assert len(log) == 1

    def test_turns_are_frozen(self):
        turn = Turn(role="user", content="a")
        with pytest.raises(Exception):
            turn.content = "b"

    def test_invalid_role(self):
        with pytest.raises(Exception):
            Turn(role="system", content="a")

    def test_json_round_trip(self):
        log = ConversationLog(turns=[Turn(role="user", content="hello")])
        assert ConversationLog.model_validate_json(log.model_dump_json()) == log
