"""Emote reactions."""

import re

from chimein.bus.events import ChatMessage
from chimein.config.schema import EmojiReactConfig
from chimein.modes.base import ModeHandler

EMOJI_PATTERN = re.compile(
    "[\U0001F600-\U0001F64F\U0001F300-\U0001F5FF\U0001F680-\U0001F6FF"
    "\U0001F1E0-\U0001F1FF\u2600-\u26FF\u2700-\u27BF]"
    r"|[:;8][-']?[)(\[\]DPpOo]"
)

# Emote names recognised in incoming chat, compared case-insensitively
KNOWN_EMOTES = frozenset(e.lower() for e in (
    "LUL", "KEKW", "Pog", "PogChamp", "OMEGALUL", "MonkaS", "Pepega", "FeelsGoodMan",
    "FeelsBadMan", "Sadge", "Copium", "EZ", "5Head", "PepeHands", "Clap", "TriHard",
    "KappaPride", "SeemsGood", "BlessRNG", "NotLikeThis", "Kappa", "PogU", "widepeepoHappy",
    "POGGERS", "monkaW", "PepeLaugh", "WeirdChamp", "ResidentSleeper", "CmonBruh", "WutFace",
))

_WORD = re.compile(r"[A-Za-z0-9]+")


def contains_emoji(text: str) -> bool:
    """Unicode emoji, a simple emoticon, or a known emote token."""
    if EMOJI_PATTERN.search(text):
        return True
    return any(word.lower() in KNOWN_EMOTES for word in _WORD.findall(text))


class EmojiReactHandler(ModeHandler):
    """Replies to emote-heavy chat with one to three random emotes. No LLM call."""

    slug = "emoji-react"
    label = "Emoji React"
    config: EmojiReactConfig

    def can_handle(self, message: ChatMessage) -> bool:
        return self.enabled and bool(self.config.emotes) and contains_emoji(message.text)

    def pick_emotes(self) -> list[str]:
        pool = list(dict.fromkeys(self.config.emotes))
        count = min(self.ctx.gate.rng.randint(1, 3), len(pool))
        return self.ctx.gate.rng.sample(pool, count)

    async def handle(self, message: ChatMessage) -> bool:
        ticket = self.ctx.gate.reserve(self.cooldown, self.config.cooldown_s, self.config.probability)
        if ticket is None:
            return False
        with ticket:
            await self.say(self.channel_for(message), " ".join(self.pick_emotes()))
        return True
