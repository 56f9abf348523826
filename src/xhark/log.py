"""Logging setup.

The TUI owns the terminal, so log records only ever go to a file, and only
when debugging is switched on.
"""

import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(enabled: bool, path: Path) -> None:
    """Send xhark's records to ``path`` (truncated) when ``enabled``."""
    logger = logging.getLogger("xhark")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False

    if not enabled:
        logger.addHandler(logging.NullHandler())
        return

    handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
