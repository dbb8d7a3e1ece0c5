"""Orchestrator: the core processing engine."""

import asyncio
import random
import time
from typing import Any, Awaitable, Callable, Optional

from loguru import logger

from chimein.bus.events import ChatMessage, ConnectionEvent, InboundEvent
from chimein.bus.queue import MessageBus
from chimein.config.loader import DEFAULT_PERSONA
from chimein.config.schema import CompletionMode, Config
from chimein.modes import (
    AmbientHandler,
    CommandHandler,
    EmojiReactHandler,
    HighlightHandler,
    HypeHandler,
    IdleSilenceHandler,
    MentionHandler,
    ModeContext,
    ModeHandler,
    TopicExtractor,
)
from chimein.modes.base import SendFn
from chimein.orchestrator.buffer import ConversationBuffer
from chimein.orchestrator.chain import ArbitrationChain, ChainResult
from chimein.orchestrator.gate import CooldownGate, CooldownState
from chimein.orchestrator.idle_timer import IdleTimer
from chimein.orchestrator.prompts import PromptBook
from chimein.orchestrator.state import AmbientState, SilenceState
from chimein.providers.completion import CompletionService, Conversation
from chimein.providers.speech import SpeechSynthesizer


class Orchestrator:
    """
    Turns inbound chat events into at most one exclusive reply each.

    It:
    1. Consumes typed events from the message bus
    2. Updates the conversation buffer and mode state in arrival order
    3. Spawns one arbitration task per message
    4. Runs the idle timer for silence stories
    """

    def __init__(
        self,
        config: Config,
        completion: CompletionService,
        send: SendFn,
        bus: MessageBus | None = None,
        persona: str = DEFAULT_PERSONA,
        speech: SpeechSynthesizer | None = None,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config
        self.behavior = config.behavior
        self.bus = bus or MessageBus()
        self.completion = completion
        self.bot_username = config.twitch.username.lower()

        self.gate = CooldownGate(clock=clock, rng=rng, policy=self.behavior.commit_policy)
        self.buffer = ConversationBuffer(self.behavior.buffer_size)
        self.silence = SilenceState(last_message_at=clock())
        self.ambient = AmbientState()
        self.conversation = Conversation(persona, config.llm.history_length)

        channels = config.twitch.channels
        self.ctx = ModeContext(
            gate=self.gate,
            buffer=self.buffer,
            completion=completion,
            send=send,
            ambient=self.ambient,
            ambient_cooldown=CooldownState(),
            prompts=PromptBook(
                bot=config.twitch.username or "chimein",
                streamer=channels[0] if channels else "the streamer",
            ),
            default_channel=channels[0] if channels else "",
        )

        b = self.behavior
        self.command = CommandHandler(self.ctx, b.command, self.conversation, speech=speech, sleep=sleep)
        self.afk = IdleSilenceHandler(self.ctx, b.afk, self.silence)
        self.ambient_mode = AmbientHandler(self.ctx, b.auto_chat)
        self.topic_mode = TopicExtractor(self.ctx, b.topics)

        self.chain = ArbitrationChain(
            exclusive=[
                HighlightHandler(self.ctx, b.channel_points, self.command),
                self.command,
                HypeHandler(self.ctx, b.hype),
                MentionHandler(self.ctx, b.mention),
                EmojiReactHandler(self.ctx, b.emoji),
            ],
            background=[self.afk, self.ambient_mode, self.topic_mode],
        )
        self.modes: dict[str, ModeHandler] = {h.slug: h for h in self.chain.handlers}
        self.idle_timer = IdleTimer(self.afk, b.afk.timer_interval_s)

        self._running = False
        self._tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Intake and dispatch
    # ------------------------------------------------------------------

    def intake(self, message: ChatMessage) -> bool:
        """Record a message in the shared state. Returns False for our own lines."""
        if message.is_self or message.author.lower() == self.bot_username:
            return False
        self.buffer.append(message)
        self.silence.note_message(self.gate.clock())
        self.ambient.note_message()
        return True

    def submit(self, message: ChatMessage) -> Optional[asyncio.Task]:
        """Intake synchronously, then arbitrate in a task of its own."""
        if not self.intake(message):
            return None
        if not self.behavior.bot_enabled:
            return None
        task = asyncio.create_task(self.dispatch(message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def dispatch(self, message: ChatMessage) -> ChainResult:
        result = await self.chain.dispatch(message)
        if result.handled:
            logger.debug(f"Message from {message.author} handled by {result.handled_by}")
        return result

    def handle_event(self, event: InboundEvent) -> Optional[asyncio.Task]:
        if isinstance(event, ChatMessage):
            return self.submit(event)
        if isinstance(event, ConnectionEvent):
            if event.kind == "connected":
                logger.info(f"* Connected to {event.address}")
                for channel in self.config.twitch.channels:
                    logger.info(f"* Joined #{channel}")
            else:
                logger.warning(f"Disconnected: {event.reason or 'unknown reason'}")
        return None

    async def run(self) -> None:
        """Consume the bus until stopped."""
        self._running = True
        self.idle_timer.start()
        logger.info("Orchestrator started")

        while self._running:
            try:
                event = await asyncio.wait_for(self.bus.consume_inbound(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            self.handle_event(event)

    def stop(self) -> None:
        self._running = False
        logger.info("Orchestrator stopping")

    async def shutdown(self) -> None:
        """Stop the loop and the timer, and cancel in-flight dispatch tasks."""
        self.stop()
        self.idle_timer.stop()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------

    async def ask(self, text: str) -> str:
        """Direct question, no cooldown.

        In chat mode it goes through the command conversation; in prompt mode
        it is a one-off prompt with the persona in front and nothing recorded.
        """
        if self.config.llm.mode is CompletionMode.PROMPT:
            prompt = f"{self.conversation.system_prompt}\n\nUser: {text}\nAgent:"
            return await self.completion.complete([{"role": "user", "content": prompt}])
        return await self.conversation.ask(self.completion, text)

    @property
    def bot_enabled(self) -> bool:
        return self.behavior.bot_enabled

    def set_bot_enabled(self, enabled: bool) -> None:
        self.behavior.bot_enabled = enabled
        logger.info(f"Bot {'enabled' if enabled else 'disabled (standby mode)'}")

    def set_mode_enabled(self, slug: str, enabled: bool) -> None:
        """Toggle one mode. Raises KeyError for an unknown slug."""
        handler = self.modes[slug]
        handler.config.enabled = enabled
        if enabled:
            handler.on_enabled()
        logger.info(f"{handler.label} {'enabled' if enabled else 'disabled'}")

    def mode_status(self, slug: str) -> dict[str, Any]:
        """Status payload of one mode. Raises KeyError for an unknown slug."""
        return self.modes[slug].status()

    def status(self) -> dict[str, Any]:
        return {
            "bot_enabled": self.bot_enabled,
            "buffered_messages": len(self.buffer),
            "queued_events": self.bus.inbound_size,
            "commit_policy": self.gate.policy.value,
            "modes": {slug: h.status() for slug, h in self.modes.items()},
        }
