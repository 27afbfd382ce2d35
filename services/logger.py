"""
Logging setup

Project-wide logging built on the standard `logging` module. Four
verbosity names map onto Python levels:

    QUIET    -> WARNING (30)
    NORMAL   -> INFO    (20)
    VERBOSE  -> VERBOSE (15, custom)
    DEBUG    -> DEBUG   (10)

Configure once at startup, then get named loggers anywhere:

    configure_logging("VERBOSE")
    log = get_logger("engine.match_maker")
    log.info("Creating schedule...")

The `MATCHDAY_LOG_LEVEL` environment variable is used when no explicit
level is passed.
"""

import logging
import os
import sys
from typing import Optional


VERBOSE = 15
logging.addLevelName(VERBOSE, "VERBOSE")

QUIET = logging.WARNING
NORMAL = logging.INFO
DEBUG = logging.DEBUG

_LEVEL_MAP: dict[str, int] = {
    "QUIET": QUIET,
    "NORMAL": NORMAL,
    "VERBOSE": VERBOSE,
    "DEBUG": DEBUG,
}

ROOT_LOGGER_NAME = "matchday"
LOG_LEVEL_ENV = "MATCHDAY_LOG_LEVEL"
_LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)-8s | %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure the `matchday` logger hierarchy.

    Args:
        level: One of "QUIET", "NORMAL", "VERBOSE" or "DEBUG"
            (case-insensitive). None falls through to the environment
            variable, then to "NORMAL".

    Raises:
        ValueError: If the level name is not recognised
    """
    resolved = level if level is not None else os.environ.get(LOG_LEVEL_ENV, "NORMAL")
    resolved_upper = resolved.upper()

    if resolved_upper not in _LEVEL_MAP:
        raise ValueError(
            f"Unknown log level {resolved!r}. Valid levels: {', '.join(sorted(_LEVEL_MAP))}"
        )

    numeric_level = _LEVEL_MAP[resolved_upper]

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(numeric_level)

    # Re-configuring replaces the previous handler
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    root.addHandler(handler)
    root.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the `matchday` hierarchy."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
