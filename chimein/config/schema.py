"""Configuration schema using Pydantic."""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict


class CommitPolicy(str, Enum):
    """When a mode stamps its cooldown relative to the action it guards."""
    LAZY = "lazy"    # Stamp after the action succeeds
    EAGER = "eager"  # Stamp before the action, restore on failure


class CompletionMode(str, Enum):
    """How the direct question endpoint talks to the model."""
    CHAT = "chat"      # Rolling conversation behind the persona system prompt
    PROMPT = "prompt"  # Stateless single prompt with the persona prepended


class Base(BaseModel):
    """Base model that accepts both camelCase and snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TwitchConfig(Base):
    """Twitch chat transport and OAuth configuration."""
    username: str = ""  # Bot account login
    channels: list[str] = Field(default_factory=list)  # Channels to join, without '#'
    auth_token: str = ""  # Legacy static "oauth:..." token, used when OAuth is not configured
    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = "http://localhost:3000/auth/twitch/callback"
    refresh_token: str = ""  # Seeds the credential manager on first start
    token_file: str = ".twitch_tokens.json"
    irc_url: str = "wss://irc-ws.chat.twitch.tv:443"
    reconnect_delay_s: float = 5.0
    max_reconnect_delay_s: float = 300.0

    @property
    def use_oauth(self) -> bool:
        """OAuth with automatic refresh is used when client credentials are set."""
        return bool(self.client_id and self.client_secret)


class ProviderConfig(Base):
    """LLM provider configuration."""
    api_key: str = ""
    api_base: str | None = None
    extra_headers: dict[str, str] | None = None


class LLMConfig(Base):
    """Completion service configuration."""
    model: str = "gpt-3.5-turbo"
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    timeout_s: float = 30.0
    persona_file: str = "file_context.txt"  # System prompt for command replies
    history_length: int = 5  # Command conversation exchanges kept
    mode: CompletionMode = CompletionMode.CHAT


class ModeConfig(Base):
    """Settings shared by every behavioural mode."""
    enabled: bool = False
    cooldown_s: float = 0.0
    probability: float = Field(default=1.0, ge=0.0, le=1.0)


class CommandModeConfig(ModeConfig):
    """Explicit command replies ("!gpt ...")."""
    enabled: bool = True
    cooldown_s: float = 10.0
    prefixes: list[str] = Field(default_factory=lambda: ["!gpt"])
    send_username: bool = True
    max_message_length: int = 399  # Twitch rejects longer lines
    chunk_delay_s: float = 1.0
    cooldown_notice: bool = True


class ChannelPointsConfig(ModeConfig):
    """Replies to highlighted (channel points) messages. Shares the command cooldown."""


class HypeModeConfig(ModeConfig):
    """Hype command echo with round-robin rotation."""
    cooldown_s: float = 5.0
    commands: list[str] = Field(default_factory=lambda: [
        "!hype", "!riot", "!riot2", "!chels", "!rendan", "!holunka", "!snailarmy", "!riot3",
    ])


class MentionModeConfig(ModeConfig):
    """Streamer mention detection."""
    names: list[str] = Field(default_factory=lambda: ["gigasnail", "giga"])
    context_messages: int = 5


class EmojiReactConfig(ModeConfig):
    """Emote reactions to emote-heavy messages."""
    cooldown_s: float = 10.0
    probability: float = Field(default=0.15, ge=0.0, le=1.0)
    emotes: list[str] = Field(default_factory=lambda: [
        "LUL", "KEKW", "Pog", "PogChamp", "OMEGALUL", "MonkaS", "Pepega", "FeelsGoodMan",
        "FeelsBadMan", "Sadge", "Copium", "EZ", "5Head", "PepeHands", "Clap", "TriHard",
        "KappaPride", "SeemsGood", "BlessRNG", "NotLikeThis",
    ])


class AfkModeConfig(ModeConfig):
    """Idle-silence stories and question answering."""
    cooldown_s: float = 30.0  # Applies to the question branch
    min_silence_s: float = 60.0
    timer_interval_s: float = 30.0
    question_window: int = 5


class AutoChatConfig(ModeConfig):
    """Ambient relevance-judged replies."""
    cooldown_s: float = 300.0
    probability: float = Field(default=0.15, ge=0.0, le=1.0)
    min_messages: int = 5
    context_messages: int = 10


class TopicTrackingConfig(ModeConfig):
    """Background topic extraction."""
    cooldown_s: float = 60.0
    min_buffered: int = 10
    context_messages: int = 10


# Control-surface slug -> BehaviorConfig field
MODE_FIELDS = {
    "command": "command",
    "channel-points": "channel_points",
    "hype-mode": "hype",
    "streamer-mention": "mention",
    "emoji-react": "emoji",
    "afk-mode": "afk",
    "auto-chat": "auto_chat",
    "topic-tracking": "topics",
}


class BehaviorConfig(Base):
    """All behavioural modes, owned by the orchestrator."""
    bot_enabled: bool = True  # Master switch; False means standby
    commit_policy: CommitPolicy = CommitPolicy.LAZY
    buffer_size: int = 20
    command: CommandModeConfig = Field(default_factory=CommandModeConfig)
    channel_points: ChannelPointsConfig = Field(default_factory=ChannelPointsConfig)
    hype: HypeModeConfig = Field(default_factory=HypeModeConfig)
    mention: MentionModeConfig = Field(default_factory=MentionModeConfig)
    emoji: EmojiReactConfig = Field(default_factory=EmojiReactConfig)
    afk: AfkModeConfig = Field(default_factory=AfkModeConfig)
    auto_chat: AutoChatConfig = Field(default_factory=AutoChatConfig)
    topics: TopicTrackingConfig = Field(default_factory=TopicTrackingConfig)

    def modes(self) -> dict[str, ModeConfig]:
        """Every mode config keyed by its control-surface slug."""
        return {slug: getattr(self, name) for slug, name in MODE_FIELDS.items()}


class TTSConfig(Base):
    """Speech synthesis after command replies."""
    enabled: bool = False
    model: str = "tts-1"
    voice: str = "alloy"
    output_path: str = "public/file.mp3"


class LogConfig(Base):
    """Console and file log sinks."""
    level: str = "INFO"  # Console level; --verbose forces DEBUG
    file: str = "~/.chimein/chimein.log"  # Empty disables the file sink
    file_level: str = "DEBUG"
    rotation: str = "10 MB"
    retention: str = "1 week"


class GatewayConfig(Base):
    """HTTP control surface configuration."""
    host: str = "0.0.0.0"
    port: int = 3000


class Config(BaseSettings):
    """Root configuration for chimein."""
    twitch: TwitchConfig = Field(default_factory=TwitchConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    behavior: BehaviorConfig = Field(default_factory=BehaviorConfig)
    tts: TTSConfig = Field(default_factory=TTSConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    logging: LogConfig = Field(default_factory=LogConfig)

    @property
    def token_path(self) -> Path:
        """Expanded path of the persisted credential file."""
        return Path(self.twitch.token_file).expanduser()

    model_config = SettingsConfigDict(
        env_prefix="CHIMEIN_",
        env_nested_delimiter="__"
    )
