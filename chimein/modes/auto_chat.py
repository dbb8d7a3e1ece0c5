"""Ambient relevance-judged replies (auto-chat)."""

from typing import Any

from loguru import logger

from chimein.bus.events import ChatMessage
from chimein.config.schema import AutoChatConfig
from chimein.modes.base import ModeContext, ModeHandler
from chimein.orchestrator.buffer import format_context


class AmbientHandler(ModeHandler):
    """
    Joins the conversation now and then.

    Phase 1 is local and cheap: enabled, enough messages since the last
    automated reply, and the gate. Phase 2 asks the model a strict yes/no
    question and only then generates the reply.
    """

    slug = "auto-chat"
    label = "Auto-chat"
    exclusive = False
    config: AutoChatConfig

    def __init__(self, ctx: ModeContext, config: AutoChatConfig):
        super().__init__(ctx, config)
        # Every automated reply stamps this state, not just ours
        self.cooldown = ctx.ambient_cooldown

    def can_handle(self, message: ChatMessage) -> bool:
        return (
            self.enabled
            and self.ctx.ambient.messages_since_last_response >= self.config.min_messages
        )

    async def should_respond(self, context: str) -> bool:
        decision = await self.ctx.completion.complete(
            self.ctx.prompts.relevance(context), max_tokens=10, temperature=0.7
        )
        return "yes" in decision.strip().lower()

    async def handle(self, message: ChatMessage) -> bool:
        ticket = self.ctx.gate.reserve(self.cooldown, self.config.cooldown_s, self.config.probability)
        if ticket is None:
            return False
        with ticket:
            context = format_context(self.ctx.buffer.recent(self.config.context_messages))
            if not await self.should_respond(context):
                logger.debug(f"[{self.label}] Model declined to chime in")
                ticket.rollback()
                return False
            reply = await self.ctx.completion.complete(
                self.ctx.prompts.chime_in(context), max_tokens=100, temperature=0.9
            )
            await self.say(self.channel_for(message), reply)
            self.ctx.mark_automated_reply()
        return True

    def status(self) -> dict[str, Any]:
        data = super().status()
        data.update(
            min_messages=self.config.min_messages,
            messages_since_last=self.ctx.ambient.messages_since_last_response,
        )
        return data
