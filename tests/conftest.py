"""Shared fakes and fixtures."""

import asyncio
import random

import pytest

from chimein.bus.events import ChatMessage
from chimein.config.schema import CommitPolicy, Config
from chimein.errors import CompletionError
from chimein.modes.base import ModeContext
from chimein.orchestrator.buffer import ConversationBuffer
from chimein.orchestrator.gate import CooldownGate, CooldownState
from chimein.orchestrator.prompts import PromptBook
from chimein.orchestrator.state import AmbientState


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRng(random.Random):
    """Random whose uniform draws come from a script (default 0.0, always passes)."""

    def __init__(self, draws=None, default: float = 0.0):
        super().__init__(42)
        self.draws = list(draws or [])
        self.default = default
        self.draw_count = 0

    def random(self) -> float:
        self.draw_count += 1
        if self.draws:
            return self.draws.pop(0)
        return self.default


class FakeCompletion:
    """Stands in for CompletionService. Replies may be strings or exceptions."""

    def __init__(self, replies=None, default: str = "ok"):
        self.replies = list(replies or [])
        self.default = default
        self.calls: list[dict] = []
        self.release: asyncio.Event | None = None

    async def complete(self, messages, max_tokens: int = 150, temperature: float = 0.7) -> str:
        self.calls.append({"messages": messages, "max_tokens": max_tokens, "temperature": temperature})
        if self.release is not None:
            await self.release.wait()
        reply = self.replies.pop(0) if self.replies else self.default
        if isinstance(reply, BaseException):
            raise reply
        return reply


class FakeSender:
    """Records every chat line sent."""

    def __init__(self, fail: bool = False):
        self.sent: list[tuple[str, str]] = []
        self.fail = fail

    async def __call__(self, channel: str, text: str) -> None:
        if self.fail:
            raise CompletionError("send failed")
        self.sent.append((channel, text))

    @property
    def texts(self) -> list[str]:
        return [text for _, text in self.sent]


def make_message(text: str, author: str = "viewer", **kwargs) -> ChatMessage:
    kwargs.setdefault("channel", "gigasnail")
    return ChatMessage(author=author, text=text, **kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rng():
    return FakeRng()


@pytest.fixture
def completion():
    return FakeCompletion()


@pytest.fixture
def sender():
    return FakeSender()


@pytest.fixture
def gate(clock, rng):
    return CooldownGate(clock=clock, rng=rng, policy=CommitPolicy.LAZY)


@pytest.fixture
def ctx(gate, completion, sender):
    """ModeContext wired to fakes."""
    return ModeContext(
        gate=gate,
        buffer=ConversationBuffer(),
        completion=completion,
        send=sender,
        ambient=AmbientState(),
        ambient_cooldown=CooldownState(),
        prompts=PromptBook(bot="gigarob0t", streamer="gigasnail"),
        default_channel="gigasnail",
    )


@pytest.fixture
def config():
    """Minimal valid configuration."""
    return Config.model_validate({
        "twitch": {"username": "gigarob0t", "channels": ["gigasnail"], "authToken": "oauth:abc"},
    })


@pytest.fixture
def msg():
    """Factory for chat messages."""
    return make_message
