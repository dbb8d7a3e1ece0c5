"""Arbitration chain: decides which mode answers a chat message.

Exclusive modes are tried in priority order and the first one that claims
the message wins. Background modes then run concurrently regardless of the
exclusive outcome, each isolated from the others' failures.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Optional, Sequence

from loguru import logger

from chimein.bus.events import ChatMessage
from chimein.modes.base import ModeHandler


@dataclass
class ChainResult:
    """What the chain did with one message."""
    handled_by: Optional[str] = None
    background: list[str] = field(default_factory=list)  # Background modes that acted
    failed: list[str] = field(default_factory=list)

    @property
    def handled(self) -> bool:
        return self.handled_by is not None


class ArbitrationChain:
    """Runs exclusive handlers in order, then background handlers together.

    Rules:
    1. Exclusive handlers short-circuit on the first one returning True
    2. A failing handler is logged and counts as "not handled"
    3. Background handlers run after the exclusive step, concurrently
    """

    def __init__(self, exclusive: Sequence[ModeHandler], background: Sequence[ModeHandler] = ()):
        self.exclusive = list(exclusive)
        self.background = list(background)

    @property
    def handlers(self) -> list[ModeHandler]:
        return self.exclusive + self.background

    async def _attempt(self, handler: ModeHandler, message: ChatMessage, result: ChainResult) -> bool:
        try:
            if not handler.can_handle(message):
                return False
            return await handler.handle(message)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"[{handler.label}] Error: {e}")
            result.failed.append(handler.slug)
            return False

    async def dispatch(self, message: ChatMessage) -> ChainResult:
        result = ChainResult()

        for handler in self.exclusive:
            if await self._attempt(handler, message, result):
                result.handled_by = handler.slug
                break

        if self.background:
            outcomes = await asyncio.gather(
                *(self._attempt(h, message, result) for h in self.background),
                return_exceptions=True,
            )
            for handler, outcome in zip(self.background, outcomes):
                if isinstance(outcome, BaseException):
                    logger.error(f"[{handler.label}] Error: {outcome}")
                elif outcome:
                    result.background.append(handler.slug)

        return result
