"""Streamer mention detection."""

from typing import Any

from chimein.bus.events import ChatMessage
from chimein.config.schema import MentionModeConfig
from chimein.modes.base import ModeHandler
from chimein.orchestrator.buffer import format_context


class MentionHandler(ModeHandler):
    slug = "streamer-mention"
    label = "Streamer Mention"
    config: MentionModeConfig

    def can_handle(self, message: ChatMessage) -> bool:
        if not self.enabled:
            return False
        lowered = message.text.lower()
        return any(name.lower() in lowered for name in self.config.names if name)

    async def handle(self, message: ChatMessage) -> bool:
        ticket = self.ctx.gate.reserve(self.cooldown, self.config.cooldown_s, self.config.probability)
        if ticket is None:
            return False
        with ticket:
            context = format_context(self.ctx.buffer.recent(self.config.context_messages))
            reply = await self.ctx.completion.complete(
                self.ctx.prompts.mention(message.author, message.text, context),
                max_tokens=100,
                temperature=0.8,
            )
            await self.say(self.channel_for(message), reply)
            self.ctx.mark_automated_reply()
        return True

    def status(self) -> dict[str, Any]:
        data = super().status()
        data["names"] = list(self.config.names)
        return data
