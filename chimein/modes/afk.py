"""Idle-silence storyteller (AFK mode)."""

import asyncio
import re
from typing import Any

from loguru import logger

from chimein.bus.events import ChatMessage
from chimein.config.schema import AfkModeConfig, CommitPolicy
from chimein.modes.base import ModeContext, ModeHandler
from chimein.orchestrator.buffer import format_context
from chimein.orchestrator.state import SilenceState

QUESTION_PROBABILITY = 0.5
QUESTION_WORDS = re.compile(
    r"\b(what|why|how|when|where|who|can|should|would|could)\b", re.IGNORECASE
)


def looks_like_question(text: str) -> bool:
    return "?" in text or QUESTION_WORDS.search(text) is not None


class IdleSilenceHandler(ModeHandler):
    """
    Keeps chat entertained while the streamer is away.

    Story branch: once per uninterrupted silence period of at least
    ``min_silence_s``, tell a short story. Driven by both the idle timer and
    message dispatch, so it is single-flight: a caller that finds a story
    already being generated simply backs off.

    Question branch: on message dispatch, answer a recent question with
    probability 0.5, subject to the mode cooldown.
    """

    slug = "afk-mode"
    label = "AFK Mode"
    exclusive = False
    config: AfkModeConfig

    def __init__(self, ctx: ModeContext, config: AfkModeConfig, silence: SilenceState):
        super().__init__(ctx, config)
        self.silence = silence
        self._story_lock = asyncio.Lock()

    def can_handle(self, message: ChatMessage) -> bool:
        return self.enabled

    async def handle(self, message: ChatMessage) -> bool:
        if await self.maybe_tell_story():
            return True
        return await self.maybe_answer_question(message)

    def story_due(self) -> bool:
        if not self.enabled or self.silence.story_told:
            return False
        return self.silence.silent_for(self.ctx.now()) >= self.config.min_silence_s

    async def maybe_tell_story(self, channel: str | None = None) -> bool:
        if not self.story_due() or self._story_lock.locked():
            return False

        async with self._story_lock:
            period = self.silence.period
            eager = self.ctx.gate.policy is CommitPolicy.EAGER
            if eager:
                self.silence.story_told = True
            try:
                story = await self.ctx.completion.complete(
                    self.ctx.prompts.story(), max_tokens=150, temperature=0.9
                )
                await self.say(channel or self.ctx.default_channel, story)
            except Exception:
                if eager and self.silence.period == period:
                    self.silence.story_told = False
                raise

            # Chat resumed while generating: that new period is still untold
            if self.silence.period == period:
                self.silence.story_told = True
            else:
                logger.debug(f"[{self.label}] Chat resumed during story, new period left open")
            self.silence.last_story_at = self.ctx.now()
            self.ctx.mark_automated_reply()
            return True

    async def maybe_answer_question(self, message: ChatMessage | None = None) -> bool:
        recent = self.ctx.buffer.recent(self.config.question_window)
        if not any(looks_like_question(m.text) for m in recent):
            return False

        ticket = self.ctx.gate.reserve(self.cooldown, self.config.cooldown_s, QUESTION_PROBABILITY)
        if ticket is None:
            return False
        with ticket:
            reply = await self.ctx.completion.complete(
                self.ctx.prompts.chime_in(format_context(recent)), max_tokens=100, temperature=0.9
            )
            await self.say(self.channel_for(message), reply)
            self.ctx.mark_automated_reply()
        return True

    def on_enabled(self) -> None:
        self.silence.story_told = False

    def status(self) -> dict[str, Any]:
        now = self.ctx.now()
        data = super().status()
        data.update(
            min_silence=self.config.min_silence_s,
            story_told=self.silence.story_told,
            seconds_since_last_story=(
                int(now - self.silence.last_story_at) if self.silence.last_story_at else None
            ),
            seconds_since_last_message=int(self.silence.silent_for(now)),
        )
        return data
