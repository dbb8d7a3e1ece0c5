"""Tests for command and highlighted-message replies."""

from unittest.mock import AsyncMock

import pytest

from chimein.config.schema import ChannelPointsConfig, CommandModeConfig
from chimein.errors import CompletionError
from chimein.modes.command import CommandHandler, HighlightHandler, split_message
from chimein.providers.completion import Conversation


@pytest.fixture
def sleep():
    return AsyncMock()


@pytest.fixture
def command(ctx, sleep):
    return CommandHandler(
        ctx,
        CommandModeConfig(prefixes=["!gpt", "!ask"]),
        Conversation("You are a helpful Twitch Chatbot."),
        sleep=sleep,
    )


class TestSplitMessage:
    def test_exact_slices(self):
        chunks = split_message("a" * 1000, 399)
        assert [len(c) for c in chunks] == [399, 399, 202]
        assert "".join(chunks) == "a" * 1000

    def test_short_text_single_chunk(self):
        assert split_message("hello", 399) == ["hello"]


class TestCommandHandler:
    """Explicit command replies."""

    def test_prefix_match_is_case_insensitive(self, command, msg):
        assert command.can_handle(msg("!ASK something"))
        assert command.can_handle(msg("!gpt"))
        assert not command.can_handle(msg("hey !gpt"))

    def test_disabled(self, command, msg):
        command.config.enabled = False
        assert not command.can_handle(msg("!gpt hi"))

    @pytest.mark.asyncio
    async def test_long_reply_is_chunked(self, command, completion, sender, sleep, msg):
        """!ask from alice: prompt carries the username, 1000 chars go out as 3 lines."""
        completion.default = "x" * 1000

        handled = await command.handle(msg("!ask what time is it", author="alice"))

        assert handled
        user_turn = completion.calls[0]["messages"][-1]
        assert user_turn == {"role": "user", "content": "Message from user alice: what time is it"}
        assert [len(t) for t in sender.texts] == [399, 399, 202]
        assert all(len(t) <= 399 for t in sender.texts)
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 1.0]

    @pytest.mark.asyncio
    async def test_without_username(self, command, completion, msg):
        command.config.send_username = False
        await command.handle(msg("!gpt   tell a joke  "))
        assert completion.calls[0]["messages"][-1]["content"] == "tell a joke"

    @pytest.mark.asyncio
    async def test_cooldown_notice_claims_message(self, command, completion, sender, clock, msg):
        await command.handle(msg("!gpt one"))
        clock.advance(2.5)

        handled = await command.handle(msg("!gpt two"))

        assert handled
        assert len(completion.calls) == 1
        assert sender.texts[-1] == (
            "Cooldown active. Please wait 7.5 seconds before sending another message."
        )

    @pytest.mark.asyncio
    async def test_cooldown_without_notice(self, command, sender, clock, msg):
        command.config.cooldown_notice = False
        await command.handle(msg("!gpt one"))
        sent = len(sender.sent)

        assert await command.handle(msg("!gpt two"))
        assert len(sender.sent) == sent

    @pytest.mark.asyncio
    async def test_cooldown_expires(self, command, completion, clock, msg):
        await command.handle(msg("!gpt one"))
        clock.advance(10)
        await command.handle(msg("!gpt two"))
        assert len(completion.calls) == 2

    @pytest.mark.asyncio
    async def test_completion_failure_leaves_cooldown_untouched(self, command, completion, sender, msg):
        completion.replies = [CompletionError("timeout")]

        with pytest.raises(CompletionError):
            await command.handle(msg("!gpt hi"))

        assert sender.sent == []
        assert command.cooldown.last_triggered_at == 0.0
        assert command.conversation.history == []

    @pytest.mark.asyncio
    async def test_speech_failure_is_logged_only(self, command, msg):
        command.speech = AsyncMock()
        command.speech.synthesize.side_effect = OSError("disk full")

        assert await command.handle(msg("!gpt hi"))
        command.speech.synthesize.assert_awaited_once_with("ok")

    def test_status(self, command):
        status = command.status()
        assert status["enabled"] is True
        assert status["prefixes"] == ["!gpt", "!ask"]
        assert status["seconds_since_last"] is None


class TestHighlightHandler:
    """Highlighted messages bypass the prefix and share the command cooldown."""

    @pytest.fixture
    def highlight(self, ctx, command):
        return HighlightHandler(ctx, ChannelPointsConfig(enabled=True), command)

    def test_matches_only_highlighted(self, highlight, msg):
        assert highlight.can_handle(msg("no prefix here", is_highlighted=True))
        assert not highlight.can_handle(msg("!gpt plain"))

    def test_disabled(self, highlight, msg):
        highlight.config.enabled = False
        assert not highlight.can_handle(msg("x", is_highlighted=True))

    @pytest.mark.asyncio
    async def test_sends_raw_text(self, highlight, completion, msg):
        await highlight.handle(msg("why is the sky blue", is_highlighted=True))
        assert completion.calls[0]["messages"][-1]["content"] == "why is the sky blue"

    @pytest.mark.asyncio
    async def test_shares_command_cooldown(self, highlight, command, completion, sender, msg):
        await highlight.handle(msg("first", is_highlighted=True))

        assert await command.handle(msg("!gpt second"))
        assert len(completion.calls) == 1
        assert sender.texts[-1].startswith("Cooldown active.")
