"""Explicit command replies and highlighted (channel points) messages."""

import asyncio
from typing import Any, Awaitable, Callable

from loguru import logger

from chimein.bus.events import ChatMessage
from chimein.config.schema import ChannelPointsConfig, CommandModeConfig
from chimein.modes.base import ModeContext, ModeHandler
from chimein.providers.completion import Conversation
from chimein.providers.speech import SpeechSynthesizer

Sleep = Callable[[float], Awaitable[None]]

COOLDOWN_NOTICE = "Cooldown active. Please wait {remaining:.1f} seconds before sending another message."


def split_message(text: str, limit: int) -> list[str]:
    """Cut ``text`` into consecutive pieces of at most ``limit`` characters."""
    if limit <= 0:
        raise ValueError("limit must be positive")
    return [text[i:i + limit] for i in range(0, len(text), limit)] or [""]


class CommandHandler(ModeHandler):
    """Answers ``!gpt ...`` style commands through the rolling conversation."""

    slug = "command"
    label = "Command"
    config: CommandModeConfig

    def __init__(
        self,
        ctx: ModeContext,
        config: CommandModeConfig,
        conversation: Conversation,
        speech: SpeechSynthesizer | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        super().__init__(ctx, config)
        self.conversation = conversation
        self.speech = speech
        self.sleep = sleep

    def match_prefix(self, text: str) -> str | None:
        lowered = text.lower()
        for prefix in self.config.prefixes:
            if lowered.startswith(prefix.lower()):
                return prefix
        return None

    def can_handle(self, message: ChatMessage) -> bool:
        return self.enabled and self.match_prefix(message.text) is not None

    async def handle(self, message: ChatMessage) -> bool:
        prefix = self.match_prefix(message.text) or ""
        prompt = message.text[len(prefix):].strip()
        if self.config.send_username:
            prompt = f"Message from user {message.author}: {prompt}"
        return await self.respond(message, prompt)

    async def respond(self, message: ChatMessage, prompt: str) -> bool:
        """Shared path for commands and highlighted messages."""
        channel = self.channel_for(message)
        remaining = self.ctx.gate.remaining(self.cooldown, self.config.cooldown_s)
        if remaining > 0:
            # A command on cooldown is still claimed so nothing else answers it
            if self.config.cooldown_notice:
                await self.ctx.send(channel, COOLDOWN_NOTICE.format(remaining=remaining))
            return True

        ticket = self.ctx.gate.reserve(self.cooldown, self.config.cooldown_s, self.config.probability)
        if ticket is None:
            return False

        with ticket:
            reply = await self.conversation.ask(self.ctx.completion, prompt)
            await self.send_chunked(channel, reply)

        if self.speech is not None:
            await self.speak(reply)
        return True

    async def send_chunked(self, channel: str, text: str) -> None:
        chunks = split_message(text, self.config.max_message_length)
        for i, chunk in enumerate(chunks):
            if i:
                await self.sleep(self.config.chunk_delay_s)
            await self.ctx.send(channel, chunk)
        logger.info(f"[{self.label}] Replied in {len(chunks)} message(s)")

    async def speak(self, text: str) -> None:
        try:
            await self.speech.synthesize(text)
        except Exception as e:
            logger.error(f"[{self.label}] TTS error: {e}")

    def status(self) -> dict[str, Any]:
        data = super().status()
        data["prefixes"] = list(self.config.prefixes)
        data["remaining"] = round(self.ctx.gate.remaining(self.cooldown, self.config.cooldown_s), 1)
        return data


class HighlightHandler(ModeHandler):
    """Sends highlighted messages straight to the command conversation."""

    slug = "channel-points"
    label = "Channel Points"

    def __init__(self, ctx: ModeContext, config: ChannelPointsConfig, command: CommandHandler):
        super().__init__(ctx, config)
        self.command = command
        # Highlighted messages share the command cooldown
        self.cooldown = command.cooldown

    def can_handle(self, message: ChatMessage) -> bool:
        return self.enabled and message.is_highlighted

    async def handle(self, message: ChatMessage) -> bool:
        logger.info(f"[{self.label}] Highlighted message: {message.text}")
        return await self.command.respond(message, message.text)

    def status(self) -> dict[str, Any]:
        data = super().status()
        data["cooldown"] = self.command.config.cooldown_s
        return data
