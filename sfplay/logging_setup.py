"""Logging configuration helpers for sfplay."""

from __future__ import annotations

import logging
import os
import sys

LEVEL_ENV_VARS = ("SFPLAY_LOG_LEVEL", "LOG_LEVEL")


def _requested_level(default_level: str, verbose: int) -> str:
    if verbose >= 2:
        return "DEBUG"
    if verbose == 1:
        return "INFO"
    for var in LEVEL_ENV_VARS:
        value = os.environ.get(var)
        if value:
            return value.upper()
    return default_level.upper()


def configure_logging(default_level: str = "WARNING", verbose: int = 0) -> int:
    """Configure process-wide logging and return the resolved level.

    ``-v`` / ``-vv`` on the command line (``verbose``) win over the
    environment; otherwise ``SFPLAY_LOG_LEVEL`` then ``LOG_LEVEL`` are read,
    falling back to ``default_level``.
    """
    level_name = _requested_level(default_level, verbose)
    level = getattr(logging, level_name, None)
    invalid_level = None
    if not isinstance(level, int):
        invalid_level = level_name
        level = getattr(logging, default_level.upper(), logging.WARNING)

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
        force=True,
    )
    # the player shell owns stdout; keep asyncio's debug chatter out of it
    logging.getLogger("asyncio").setLevel(max(level, logging.INFO))

    if invalid_level is not None:
        logging.getLogger(__name__).warning(
            "Invalid log level '%s'; using %s", invalid_level, logging.getLevelName(level)
        )

    return level
