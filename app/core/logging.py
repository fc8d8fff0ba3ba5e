"""
Logging configuration.

Call configure_logging() once at startup; modules use logging.getLogger(__name__).
"""

import logging
import sys


def configure_logging(level: str = "INFO") -> None:
    """Configure root logger with a timestamped console handler."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    root_logger.setLevel(level.upper())
    root_logger.addHandler(handler)

    # SQL echo is controlled by DEBUG, keep the pool quiet otherwise
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)
