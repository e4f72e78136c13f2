"""Logging setup for libbgit front ends."""

import os
import sys

from loguru import logger

from .constants import LOG_LEVEL_ENV

DEFAULT_LOG_LEVEL = 'WARNING'
LOG_FORMAT = '<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>'


def default_level() -> str:
    """Return the level from the environment, or the default when unset."""
    return os.environ.get(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL).upper()


def configure_logging(level: str | None = None, verbose: bool = False) -> None:
    """Replace loguru's handlers with a single stderr sink.

    :param level: The minimum level to emit. Defaults to the environment setting.
    :param verbose: Emit debug messages regardless of `level`."""
    logger.remove()
    logger.add(
        sys.stderr,
        format=LOG_FORMAT,
        level='DEBUG' if verbose else (level or default_level()),
    )
