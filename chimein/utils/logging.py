"""loguru sinks for the bot process."""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from chimein.config.schema import LogConfig

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"


def configure_logging(config: LogConfig | None = None, verbose: bool = False) -> Optional[Path]:
    """
    Replace loguru's default sink with the configured console and file sinks.

    Args:
        config: The ``logging`` section of the config (defaults when omitted).
        verbose: Force the console to DEBUG.

    Returns:
        Path of the log file, or None when the file sink is disabled.
    """
    config = config or LogConfig()
    logger.remove()

    console_level = "DEBUG" if verbose else config.level.upper()
    logger.add(
        sys.stderr,
        level=console_level,
        format=CONSOLE_FORMAT,
        backtrace=True,
        diagnose=False,
    )

    if not config.file:
        logger.debug(f"Logging to console only at {console_level}")
        return None

    log_file = Path(config.file).expanduser()
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        str(log_file),
        level=config.file_level.upper(),
        format=FILE_FORMAT,
        rotation=config.rotation,
        retention=config.retention,
        compression="zip",
        enqueue=True,
    )

    logger.debug(f"Logging to console at {console_level} and to {log_file}")
    return log_file
