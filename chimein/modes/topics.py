"""Background topic extraction."""

from typing import Any

from loguru import logger

from chimein.bus.events import ChatMessage
from chimein.config.schema import TopicTrackingConfig
from chimein.modes.base import ModeContext, ModeHandler
from chimein.orchestrator.buffer import format_context

MIN_SLICE = 3


def parse_topics(text: str) -> list[str]:
    """Split a comma-separated model answer into clean topic names."""
    return [t.strip() for t in text.split(",") if t.strip()]


class TopicExtractor(ModeHandler):
    """Keeps a short list of what chat is talking about. Never sends to chat."""

    slug = "topic-tracking"
    label = "Topic Tracking"
    exclusive = False
    config: TopicTrackingConfig

    def __init__(self, ctx: ModeContext, config: TopicTrackingConfig):
        super().__init__(ctx, config)
        self.topics: list[str] = []

    def can_handle(self, message: ChatMessage) -> bool:
        return self.enabled and len(self.ctx.buffer) >= self.config.min_buffered

    async def handle(self, message: ChatMessage) -> bool:
        recent = self.ctx.buffer.recent(self.config.context_messages)
        if len(recent) < MIN_SLICE:
            return False
        ticket = self.ctx.gate.reserve(self.cooldown, self.config.cooldown_s, self.config.probability)
        if ticket is None:
            return False
        with ticket:
            answer = await self.ctx.completion.complete(
                self.ctx.prompts.topics(format_context(recent)), max_tokens=30, temperature=0.5
            )
            topics = parse_topics(answer)
            if not topics:
                ticket.rollback()
                return False
            self.topics = topics
            logger.info(f"[{self.label}] Current topics: {', '.join(topics)}")
        return True

    def status(self) -> dict[str, Any]:
        data = super().status()
        data["topics"] = list(self.topics)
        return data
