"""Typed payloads carried from the chat transport to the orchestrator."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Literal, Union

ConnectionKind = Literal["connected", "disconnected"]


@dataclass(frozen=True)
class ChatMessage:
    """One chat line as received from the transport. Never mutated."""

    author: str
    text: str
    channel: str = ""
    received_at: float = field(default_factory=time.time)
    is_self: bool = False
    is_highlighted: bool = False
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)

    def as_context_line(self) -> str:
        """Render as ``author: text`` for completion prompts."""
        return f"{self.author}: {self.text}"


@dataclass(frozen=True)
class ConnectionEvent:
    """Transport lifecycle change."""

    kind: ConnectionKind
    address: str = ""
    reason: str = ""


InboundEvent = Union[ChatMessage, ConnectionEvent]
