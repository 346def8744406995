"""Process-wide logging setup."""

import logging
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure the root logger to write to stdout and return it.

    Existing handlers are replaced so repeated calls (uvicorn reload, tests)
    do not duplicate output.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    return root_logger
