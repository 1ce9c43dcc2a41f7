"""Logging setup for the command line tool."""

import logging
import sys


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO"):
    """Send log records to stdout at ``level``.

    Handlers from an earlier call are replaced, so the level can be set
    again once the config file has been read.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=[handler],
        force=True,
    )

    # Streamed command output is logged at DEBUG; keep the event loop quiet there
    logging.getLogger("asyncio").setLevel(logging.WARNING)
