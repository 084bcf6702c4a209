"""
logging_config.py - Centralized logging configuration for the bookstore.

Every module logs through the standard ``logging`` package with a shared
format. ``setup_logging`` is called once by the application factory.
"""

import logging
import sys

from bookshelf.core import config


def setup_logging(level: str = None, log_file: str = None):
    """
    Configures the root logger for the application.

    The configuration includes:
        - Log level: ``LOG_LEVEL`` (INFO by default)
        - Log format: timestamp, level, process ID, logger name and message
        - Output destinations: stdout, plus ``LOG_FILE`` when it is set
        - Reduced verbosity for SQLAlchemy and the ASGI server
    """
    log_format = '%(asctime)s - %(levelname)s - [PID:%(process)d] - %(name)s - %(message)s'

    handlers = [logging.StreamHandler(sys.stdout)]
    log_file = log_file if log_file is not None else config.LOG_FILE
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level or config.LOG_LEVEL,
        format=log_format,
        handlers=handlers,
        force=True,
    )

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name):
    """Returns a logger that follows the global format and handlers."""
    return logging.getLogger(name)
