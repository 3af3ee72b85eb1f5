"""Logging setup shared by the API, services and CLI."""

import logging
import os
import sys

from pydantic import BaseModel, Field

# Client libraries that log every request at INFO
QUIET_LOGGERS = ("google_genai", "httpx", "uvicorn.access")


def _env_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


class LogConfig(BaseModel):
    """Root handler settings; the level comes from LOG_LEVEL unless given."""

    level: str = Field(default_factory=_env_level)
    format: str = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
    date_format: str = "%Y-%m-%dT%H:%M:%S"
    quiet_loggers: tuple[str, ...] = QUIET_LOGGERS
    quiet_level: str = "WARNING"


def setup_logging(config: LogConfig | None = None) -> None:
    """Route all records to stdout and turn down chatty client libraries."""
    config = config or LogConfig()

    logging.basicConfig(
        level=config.level.upper(),
        format=config.format,
        datefmt=config.date_format,
        stream=sys.stdout,
        force=True,
    )

    for name in config.quiet_loggers:
        logging.getLogger(name).setLevel(config.quiet_level.upper())


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    """Module logger at LOG_LEVEL, or at an explicit level.

    Args:
        name: Module name (typically __name__)
        level: Explicit level name

    Returns:
        Logger with its level set
    """
    logger = logging.getLogger(name)
    logger.setLevel((level or _env_level()).upper())
    return logger
