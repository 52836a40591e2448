import logging
import logging.config

from mock_interview.core.config import settings


LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "mock_interview": {
            "level": settings.LOG_LEVEL,
        },
    },
}


def setup_logging():
    """Apply the service logging configuration."""
    logging.config.dictConfig(LOGGING_CONFIG)
