"""
Centralized logging configuration.

Sets up a console handler and, when UPLOAD_AI_LOG_FILE is set,
a rotating file handler next to it.
"""

import logging
import logging.config

from .config import get_config


def setup_logging(level: str | None = None) -> None:
    """Configure logging once at process startup."""
    cfg = get_config()
    level = (level or cfg.LOG_LEVEL).upper()

    handlers: dict[str, dict] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "default",
        },
    }
    if cfg.LOG_FILE:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "DEBUG",
            "formatter": "default",
            "filename": cfg.LOG_FILE,
            "maxBytes": cfg.LOG_MAX_BYTES,
            "backupCount": cfg.LOG_BACKUP_COUNT,
            "encoding": "utf8",
        }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                },
            },
            "handlers": handlers,
            "root": {
                "level": "DEBUG" if cfg.LOG_FILE else level,
                "handlers": list(handlers),
            },
        }
    )
    logging.getLogger(__name__).debug("Logging configured at %s", level)
