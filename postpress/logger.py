"""Logging setup for Postpress.

Library modules log through ``loguru.logger`` directly; the CLI calls
configure_logging once to choose where and how much gets printed.
"""

from __future__ import annotations

import sys

from loguru import logger

CONSOLE_FORMAT = "<level>{level: <7}</level> | <level>{message}</level>"

LEVEL_COLORS = {
    "WARNING": "<yellow>",
    "ERROR": "<red>",
    "CRITICAL": "<bold><red>",
}


def configure_logging(verbose: bool = False, sink=None) -> int:
    """Replace loguru's default handler with a console sink.

    Args:
        verbose: Log DEBUG messages (every rendered page) instead of INFO.
        sink: Where to write; defaults to stderr.

    Returns:
        The loguru handler id, for removal in tests.
    """
    logger.remove()
    for level_name, color in LEVEL_COLORS.items():
        logger.level(level_name, color=color)
    return logger.add(
        sink if sink is not None else sys.stderr,
        format=CONSOLE_FORMAT,
        level="DEBUG" if verbose else "INFO",
        colorize=None if sink is None else False,
    )
