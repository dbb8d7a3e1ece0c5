"""Chat transports."""

from chimein.channels.base import BaseChannel
from chimein.channels.twitch import IrcMessage, TwitchChannel, parse_irc_line

__all__ = ["BaseChannel", "IrcMessage", "TwitchChannel", "parse_irc_line"]
