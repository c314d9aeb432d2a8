"""
Application-wide logging setup.

Console logging in a single format (timestamp | level | module | message).
Call ``configure_logging`` once at startup, then in any module:

    from notes_app.core.logging import get_logger
    logger = get_logger(__name__)

Never pass passwords, hashes, one-time codes or cookie values to a logger.
"""

import logging

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    logging.getLogger(__name__).info("Logging initialized with level %s", level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
