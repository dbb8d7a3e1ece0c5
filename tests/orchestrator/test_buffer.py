"""Tests for the conversation buffer."""

import pytest

from chimein.orchestrator.buffer import ConversationBuffer, format_context


class TestConversationBuffer:
    """Bounded FIFO behaviour."""

    def test_keeps_latest_twenty(self, msg):
        """25 messages in, the buffer holds messages 6 through 25."""
        buffer = ConversationBuffer()
        for i in range(1, 26):
            buffer.append(msg(f"message {i}"))

        assert len(buffer) == 20
        texts = [m.text for m in buffer]
        assert texts[0] == "message 6"
        assert texts[-1] == "message 25"

    def test_recent_returns_suffix_in_order(self, msg):
        buffer = ConversationBuffer()
        for i in range(8):
            buffer.append(msg(str(i)))

        assert [m.text for m in buffer.recent(3)] == ["5", "6", "7"]

    def test_recent_larger_than_size(self, msg):
        buffer = ConversationBuffer()
        buffer.append(msg("only"))

        assert [m.text for m in buffer.recent(10)] == ["only"]
        assert buffer.recent(0) == []

    def test_recent_does_not_mutate(self, msg):
        buffer = ConversationBuffer()
        buffer.append(msg("a"))
        buffer.recent(5).clear()

        assert len(buffer) == 1

    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError):
            ConversationBuffer(0)

    def test_format_context(self, msg):
        lines = format_context([msg("hi", author="alice"), msg("yo", author="bob")])
        assert lines == "alice: hi\nbob: yo"
