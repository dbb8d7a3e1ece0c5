"""Message bus module for decoupled transport-orchestrator communication."""

from chimein.bus.events import ChatMessage, ConnectionEvent, InboundEvent
from chimein.bus.queue import MessageBus

__all__ = ["MessageBus", "ChatMessage", "ConnectionEvent", "InboundEvent"]
