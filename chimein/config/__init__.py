"""Configuration module for chimein."""

from chimein.config.loader import get_config_path, load_config, validate_startup
from chimein.config.schema import Config

__all__ = ["Config", "load_config", "get_config_path", "validate_startup"]
