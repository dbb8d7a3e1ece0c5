"""Configuration loading utilities."""

import json
import os
import stat
from pathlib import Path

from loguru import logger

from chimein.config.schema import Config
from chimein.errors import ConfigError

DEFAULT_PERSONA = "You are a helpful Twitch Chatbot."


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".chimein" / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file or create default.

    Environment variables (``CHIMEIN_...``) are applied when no file exists.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        Loaded configuration object.
    """
    path = config_path or get_config_path()

    if path.exists():
        try:
            current_mode = stat.S_IMODE(os.stat(path).st_mode)
            if current_mode & 0o077:
                logger.warning(
                    f"Config file has insecure permissions: {oct(current_mode)}. "
                    f"Fixing to 0o600 (owner read/write only)..."
                )
                os.chmod(path, 0o600)
        except OSError as e:
            logger.warning(f"Could not verify config permissions: {e}")

        try:
            with open(path) as f:
                data = json.load(f)
            return Config.model_validate(data)
        except (json.JSONDecodeError, ValueError) as e:
            raise ConfigError(f"Failed to load config from {path}: {e}") from e

    return Config()


def save_config(config: Config, config_path: Path | None = None) -> None:
    """
    Save configuration to file with secure permissions.

    Args:
        config: Configuration to save.
        config_path: Optional path to save to. Uses default if not provided.
    """
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = config.model_dump(by_alias=True, mode="json")

    with open(path, "w") as f:
        json.dump(data, f, indent=2)

    os.chmod(path, 0o600)
    logger.debug(f"Config saved with secure permissions: {path}")


def load_persona(config: Config) -> str:
    """Read the command system prompt, falling back to the stock persona."""
    path = Path(config.llm.persona_file).expanduser()
    try:
        text = path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        logger.info(f"No persona file at {path}, using default system prompt")
        return DEFAULT_PERSONA
    return text or DEFAULT_PERSONA


def validate_startup(config: Config) -> None:
    """
    Refuse to start without the settings the bot cannot run without.

    Raises:
        ConfigError: listing every missing setting.
    """
    problems = []
    twitch = config.twitch

    if not twitch.username:
        problems.append("twitch.username is required")
    if not [c for c in twitch.channels if c.strip()]:
        problems.append("twitch.channels must name at least one channel")
    if not twitch.use_oauth and not twitch.auth_token:
        problems.append(
            "either twitch.authToken (legacy) or twitch.clientId + twitch.clientSecret (OAuth) is required"
        )
    if not config.llm.model:
        problems.append("llm.model is required")

    if problems:
        raise ConfigError("; ".join(problems))
