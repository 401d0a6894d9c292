import logging
from os import environ

from rich.logging import RichHandler


def setup_logging() -> None:
    """Route ``vanish.*`` loggers through a Rich console handler.

    The level comes from ``LOG_LEVEL`` and defaults to INFO.
    """
    level = environ.get("LOG_LEVEL", "INFO").upper()
    handler = RichHandler(rich_tracebacks=True, show_path=False)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    logger = logging.getLogger("vanish")
    logger.setLevel(level)
    logger.handlers = [handler]
    logger.propagate = False
