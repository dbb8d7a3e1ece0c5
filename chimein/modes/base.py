"""Base class for behavioural modes."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from loguru import logger

from chimein.bus.events import ChatMessage
from chimein.config.schema import ModeConfig
from chimein.orchestrator.buffer import ConversationBuffer
from chimein.orchestrator.gate import CooldownGate, CooldownState
from chimein.orchestrator.prompts import PromptBook
from chimein.orchestrator.state import AmbientState
from chimein.providers.completion import CompletionService

SendFn = Callable[[str, str], Awaitable[None]]


@dataclass
class ModeContext:
    """Shared collaborators and state handed to every mode."""
    gate: CooldownGate
    buffer: ConversationBuffer
    completion: CompletionService
    send: SendFn
    ambient: AmbientState
    ambient_cooldown: CooldownState
    prompts: PromptBook
    default_channel: str = ""

    def now(self) -> float:
        return self.gate.clock()

    def mark_automated_reply(self) -> None:
        """Any automated reply makes ambient chatter back off."""
        self.ambient.reset()
        self.ambient_cooldown.last_triggered_at = self.now()


class ModeHandler(ABC):
    """
    One independently toggleable behaviour.

    ``can_handle`` is a cheap synchronous match (including the enabled
    flag); ``handle`` does the gated, possibly slow work and returns True
    when it claimed the message.
    """

    slug: str = ""
    label: str = ""
    exclusive: bool = True

    def __init__(self, ctx: ModeContext, config: ModeConfig):
        self.ctx = ctx
        self.config = config
        self.cooldown = CooldownState()

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    @abstractmethod
    def can_handle(self, message: ChatMessage) -> bool:
        pass

    @abstractmethod
    async def handle(self, message: ChatMessage) -> bool:
        pass

    def on_enabled(self) -> None:
        """Hook run when the mode is switched on at runtime."""

    def status(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "cooldown": self.config.cooldown_s,
            "probability": self.config.probability,
            "seconds_since_last": self.cooldown.seconds_since(self.ctx.now()),
        }

    def channel_for(self, message: ChatMessage | None) -> str:
        if message is not None and message.channel:
            return message.channel
        return self.ctx.default_channel

    async def say(self, channel: str, text: str) -> None:
        logger.info(f"[{self.label}] Responding: {text}")
        await self.ctx.send(channel, text)
