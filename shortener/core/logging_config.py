"""
Logging Configuration

Configures standard-library logging once at application startup.
Modules log through ``logging.getLogger(__name__)``; the request middleware
logs through the "shortener.access" logger.
"""

import logging
import logging.config

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Apply the service logging configuration.

    Args:
        level: Log level name for the service loggers
    """
    level = (level or "INFO").upper()
    if not isinstance(logging.getLevelName(level), int):
        level = "INFO"

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": LOG_FORMAT},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
            },
        },
        "loggers": {
            "shortener": {
                "handlers": ["console"],
                "level": level,
                "propagate": False,
            },
        },
    })
