"""Async message queue for decoupled transport-orchestrator communication."""

import asyncio

from chimein.bus.events import InboundEvent


class MessageBus:
    """
    Async message bus that decouples the chat transport from the orchestrator.

    The transport pushes typed events in arrival order; the orchestrator
    consumes them one at a time, so buffer intake is never reordered.
    """

    def __init__(self, maxsize: int = 0):
        self.inbound: asyncio.Queue[InboundEvent] = asyncio.Queue(maxsize=maxsize)

    async def publish_inbound(self, event: InboundEvent) -> None:
        """Publish an event from the transport to the orchestrator."""
        await self.inbound.put(event)

    async def consume_inbound(self) -> InboundEvent:
        """Consume the next inbound event (blocks until available)."""
        return await self.inbound.get()

    @property
    def inbound_size(self) -> int:
        """Number of pending inbound events."""
        return self.inbound.qsize()
