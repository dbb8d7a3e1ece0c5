"""Bounded window of recent chat messages shared by the modes."""

from collections import deque
from typing import Iterator

from chimein.bus.events import ChatMessage

DEFAULT_CAPACITY = 20


class ConversationBuffer:
    """FIFO of the most recent chat messages, oldest evicted first.

    Only the orchestrator's intake step appends; modes read suffix slices.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self._messages: deque[ChatMessage] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._messages.maxlen or DEFAULT_CAPACITY

    def append(self, message: ChatMessage) -> None:
        self._messages.append(message)

    def recent(self, n: int) -> list[ChatMessage]:
        """Last ``n`` messages in arrival order (fewer if the buffer is shorter)."""
        if n <= 0:
            return []
        return list(self._messages)[-n:]

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(list(self._messages))


def format_context(messages: list[ChatMessage]) -> str:
    """Join messages as ``author: text`` lines for prompts."""
    return "\n".join(m.as_context_line() for m in messages)
