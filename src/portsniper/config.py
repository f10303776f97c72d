"""Configuration and logging setup for portsniper."""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

from textual.logging import TextualHandler

logger = logging.getLogger(__name__)

ENV_PREFIX = "PORTSNIPER_"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _float_from_env(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(ENV_PREFIX + key)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring %s%s=%r: not a number", ENV_PREFIX, key, raw)
        return default


@dataclass(slots=True, frozen=True)
class Settings:
    """Runtime settings."""

    poll_rate: float = 2.0  # Seconds between stats reads
    port_interval: float = 3.0  # Seconds between port listings
    command_timeout: float = 10.0  # Seconds allowed for lsof and kill
    log_level: str = "WARNING"
    log_file: str | None = None

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from PORTSNIPER_* environment variables."""
        if env is None:
            env = os.environ
        defaults = cls()
        return cls(
            poll_rate=_float_from_env(env, "POLL_RATE", defaults.poll_rate),
            port_interval=_float_from_env(env, "PORT_INTERVAL", defaults.port_interval),
            command_timeout=_float_from_env(env, "COMMAND_TIMEOUT", defaults.command_timeout),
            log_level=(env.get(ENV_PREFIX + "LOG_LEVEL") or defaults.log_level).upper(),
            log_file=env.get(ENV_PREFIX + "LOG_FILE") or None,
        )


def configure_logging(settings: Settings) -> None:
    """
    Route log records to the Textual console and, optionally, a file.

    Writing to stderr would corrupt the terminal UI, so records go through
    TextualHandler (visible with ``textual console``).
    """
    level = logging.getLevelName(settings.log_level)
    if not isinstance(level, int):
        level = logging.WARNING

    handlers: list[logging.Handler] = [TextualHandler()]
    if settings.log_file:
        file_handler = logging.FileHandler(settings.log_file)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)
