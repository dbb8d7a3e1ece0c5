"""Base channel interface for chat platforms."""

from abc import ABC, abstractmethod
from typing import Any

from loguru import logger

from chimein.bus.events import ChatMessage, ConnectionEvent, ConnectionKind
from chimein.bus.queue import MessageBus


class BaseChannel(ABC):
    """
    Abstract base class for chat transports.

    A channel connects to the chat platform, forwards every inbound line to
    the message bus as a typed event, and sends replies on request.
    """

    name: str = "base"

    def __init__(self, config: Any, bus: MessageBus):
        """
        Initialize the channel.

        Args:
            config: Channel-specific configuration.
            bus: The message bus for communication.
        """
        self.config = config
        self.bus = bus
        self._running = False
        self._connected = False

    @abstractmethod
    async def start(self) -> None:
        """
        Start the channel and begin listening for messages.

        This should be a long-running async task that:
        1. Connects to the chat platform
        2. Listens for incoming messages
        3. Forwards them to the bus via _handle_message()
        """
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Stop the channel and clean up resources."""
        pass

    @abstractmethod
    async def send(self, channel: str, text: str) -> None:
        """
        Send one chat line.

        Raises:
            ChannelError: when not connected or the write fails.
        """
        pass

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def _handle_message(
        self,
        author: str,
        channel: str,
        text: str,
        is_self: bool = False,
        is_highlighted: bool = False,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Publish an inbound chat line."""
        await self.bus.publish_inbound(ChatMessage(
            author=author,
            text=text,
            channel=channel,
            is_self=is_self,
            is_highlighted=is_highlighted,
            metadata=metadata or {},
        ))

    async def _handle_connection(self, kind: ConnectionKind, address: str = "", reason: str = "") -> None:
        """Publish a connection state change."""
        self._connected = kind == "connected"
        logger.debug(f"[{self.name}] {kind} {address or reason}")
        await self.bus.publish_inbound(ConnectionEvent(kind=kind, address=address, reason=reason))
