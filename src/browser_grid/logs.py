"""Logging setup.

stdout carries the MCP stdio protocol, so log records go to stderr and,
optionally, to a log file.
"""

import logging
import sys

from browser_grid.config import LoggingConfig

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"


def configure_logging(config: LoggingConfig | None = None) -> logging.Logger:
    """Configure the ``browser_grid`` logger tree.

    Calling this more than once replaces the previously installed handlers.

    Args:
        config: Logging configuration (defaults to INFO on stderr)

    Returns:
        The package root logger
    """
    config = config or LoggingConfig()
    root = logging.getLogger("browser_grid")
    root.setLevel(config.level.upper())

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if config.file:
        config.file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    root.propagate = False
    return root
