"""
JSON log output for the API and the shared library.
"""

import logging
import sys

from pythonjsonlogger import jsonlogger


def configure_logging(app_name: str, log_level: str = "INFO") -> logging.Logger:
    """
    Attach a JSON stdout handler to the ``app_name`` logger.

    Both the application logger and the ``comanda_shared`` library logger get
    the JSON handler so gateway and store events land in the same stream.

    Args:
        app_name: Name of the application
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Configured logger instance
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    logger = logging.getLogger(app_name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    formatter = jsonlogger.JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s",
        rename_fields={"levelname": "level", "name": "logger", "asctime": "timestamp"},
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    library_logger = logging.getLogger("comanda_shared")
    library_logger.setLevel(level)
    if not library_logger.handlers:
        library_logger.addHandler(handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Module logger; handlers are attached once by ``configure_logging``."""
    return logging.getLogger(name)
