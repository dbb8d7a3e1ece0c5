"""Prompt templates for the automated modes.

``{bot}`` is the bot's chat login and ``{streamer}`` the channel owner.
"""

from dataclasses import dataclass

RELEVANCE_SYSTEM = (
    "You are analyzing a Twitch chat conversation. Determine if it would be natural and "
    "appropriate for a chatbot to join the conversation. Respond with ONLY \"yes\" or \"no\". "
    "Say \"yes\" if: there's an interesting discussion happening, someone asks a question to the "
    "chat, or there's an opportunity for a witty/helpful comment. Say \"no\" if: the conversation "
    "is too brief, very personal, or the bot would be intrusive."
)
RELEVANCE_USER = "Recent chat messages:\n{context}\n\nShould the bot chime in?"

CHIME_IN_SYSTEM = (
    "You are {bot}, a friendly and witty AI assistant in {streamer}'s Twitch chat. Join the "
    "conversation naturally with helpful, entertaining, or thoughtful comments. Keep responses "
    "concise (1-2 sentences max). Be casual and match the chat's energy. Don't be overly formal."
)
CHIME_IN_USER = "Recent chat conversation:\n{context}\n\nChime in with a natural response:"

STORY_SYSTEM = (
    "You are {bot}, entertaining the Twitch chat while {streamer} is AFK. Tell a short, engaging "
    "story or share an interesting fact to keep chat entertained. Keep it to 2-3 sentences max. "
    "Be funny, interesting, or thoughtful. Topics can include: gaming facts, random trivia, mini "
    "stories, or playful observations about Twitch culture."
)
STORY_USER = "Tell chat something entertaining while the streamer is AFK:"

MENTION_SYSTEM = (
    "You are {bot}, {streamer}'s AI assistant. Someone just mentioned {streamer} in chat. Respond "
    "naturally - you might defend them, agree with the comment, add context, or make a playful "
    "remark. Keep it 1-2 sentences and stay in character as the loyal bot."
)
MENTION_USER = "{author} said: \"{text}\"\n\nRecent context:\n{context}\n\nRespond naturally:"

TOPICS_SYSTEM = (
    "Extract the main conversation topics from these Twitch chat messages. Return ONLY a "
    "comma-separated list of 1-3 topics. Be concise. Examples: \"gameplay strategy, boss fight, "
    "weapon choice\" or \"stream schedule, new game\" or \"memes, chat banter\""
)


@dataclass(frozen=True)
class PromptBook:
    """Renders chat-completion message lists for one bot identity."""
    bot: str = "chimein"
    streamer: str = "the streamer"

    def _fmt(self, template: str, **kwargs: str) -> str:
        return template.format(bot=self.bot, streamer=self.streamer, **kwargs)

    def relevance(self, context: str) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": RELEVANCE_SYSTEM},
            {"role": "user", "content": RELEVANCE_USER.format(context=context)},
        ]

    def chime_in(self, context: str) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self._fmt(CHIME_IN_SYSTEM)},
            {"role": "user", "content": CHIME_IN_USER.format(context=context)},
        ]

    def story(self) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self._fmt(STORY_SYSTEM)},
            {"role": "user", "content": STORY_USER},
        ]

    def mention(self, author: str, text: str, context: str) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self._fmt(MENTION_SYSTEM)},
            {"role": "user", "content": MENTION_USER.format(author=author, text=text, context=context)},
        ]

    def topics(self, context: str) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": TOPICS_SYSTEM},
            {"role": "user", "content": context},
        ]
