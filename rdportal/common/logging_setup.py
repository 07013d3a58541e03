"""
Logging configuration for the rdportal command.

Records carry an `[rdportal <version>+<build>]` tag so logs from several
portal clients on one desktop can be told apart.
"""

from __future__ import annotations

import logging
from pathlib import Path

from rdportal import __build__, __version__
from rdportal.common.config import LoggingConfig

__all__ = [
    "logging_setup",
    "logFormatTagged_get",
    "logLevel_resolve",
]

_VERSION_TAG = f"[rdportal {__version__}+{__build__}]"


def logLevel_resolve(name: str) -> int:
    """
    Convert a level name such as "info" or "DEBUG" to its numeric level.

    Raises:
        ValueError: If the name is not a logging level.
    """
    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name}")
    return level


def logFormatTagged_get(log_format: str) -> str:
    """Place the version tag after the timestamp, or first when there is none."""
    if "%(asctime)s" in log_format:
        return log_format.replace("%(asctime)s", f"%(asctime)s {_VERSION_TAG}", 1)
    return f"{_VERSION_TAG} {log_format}"


def logging_setup(config: LoggingConfig) -> None:
    """
    Configure root logging from the `logging` config section.

    Args:
        config: Level, format and optional log file. The log file's
            directory is created when missing.

    Raises:
        ValueError: If the configured level is unknown.
    """
    level = logLevel_resolve(config.level)

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.file:
        log_path = Path(config.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=level,
        format=logFormatTagged_get(config.format),
        handlers=handlers,
        force=True,
    )
    # asyncio reports slow executor callbacks at DEBUG; every GDBus call runs there.
    logging.getLogger("asyncio").setLevel(max(level, logging.INFO))
