"""In-memory mode state. Created at start, never persisted."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class SilenceState:
    """Tracks the current silence period for the idle storyteller.

    ``period`` increments with every inbound message, so a story that was
    generated during one period never marks a later period as told.
    """
    last_message_at: float = 0.0
    last_story_at: float = 0.0
    story_told: bool = False
    period: int = 0

    def note_message(self, now: float) -> None:
        """A message ends the current silence period."""
        self.last_message_at = now
        self.story_told = False
        self.period += 1

    def silent_for(self, now: float) -> float:
        return now - self.last_message_at


@dataclass
class HypeRotationState:
    """Round-robin cursor over the hype command list."""
    commands: list[str] = field(default_factory=list)
    last_index: int = -1

    def next(self) -> Optional[str]:
        if not self.commands:
            return None
        self.last_index = (self.last_index + 1) % len(self.commands)
        return self.commands[self.last_index]


@dataclass
class AmbientState:
    """Message count since the last automated (non-command) reply."""
    messages_since_last_response: int = 0

    def note_message(self) -> None:
        self.messages_since_last_response += 1

    def reset(self) -> None:
        self.messages_since_last_response = 0
