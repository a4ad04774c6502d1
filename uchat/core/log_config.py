import logging
import sys

from .config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logging(level: str = settings.log_level) -> logging.Logger:
    """
    Configure the application logger once and return it.
    Repeated calls only adjust the level.
    """
    app_logger = logging.getLogger("uchat")
    app_logger.setLevel(level.upper())

    if not app_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        app_logger.addHandler(handler)
        app_logger.propagate = False

    return app_logger

logger = setup_logging()
