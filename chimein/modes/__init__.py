"""Behavioural modes arbitrated by the orchestrator."""

from chimein.modes.afk import IdleSilenceHandler
from chimein.modes.auto_chat import AmbientHandler
from chimein.modes.base import ModeContext, ModeHandler
from chimein.modes.command import CommandHandler, HighlightHandler
from chimein.modes.emoji import EmojiReactHandler
from chimein.modes.hype import HypeHandler
from chimein.modes.mention import MentionHandler
from chimein.modes.topics import TopicExtractor

__all__ = [
    "ModeContext",
    "ModeHandler",
    "CommandHandler",
    "HighlightHandler",
    "HypeHandler",
    "MentionHandler",
    "EmojiReactHandler",
    "IdleSilenceHandler",
    "AmbientHandler",
    "TopicExtractor",
]
