from __future__ import annotations

import logging
import logging.config
from pathlib import Path

LOG_FILE_NAME = "mail_responder.log"
# Google client libraries log every discovery/cache lookup at INFO
QUIET_LOGGERS = ("googleapiclient.discovery", "googleapiclient.discovery_cache", "google_auth_oauthlib", "werkzeug")


def configure_logging(log_dir: Path, level: str = "INFO") -> Path:
    """Send records to a rotating file and to the console."""

    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / LOG_FILE_NAME

    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": "%(asctime)s | %(levelname)s | %(threadName)s | %(name)s | %(message)s",
            },
            "brief": {
                "format": "%(asctime)s %(levelname)s %(message)s",
                "datefmt": "%H:%M:%S",
            },
        },
        "handlers": {
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "detailed",
                "filename": str(log_path),
                "maxBytes": 2_000_000,
                "backupCount": 5,
                "encoding": "utf-8",
            },
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "brief",
            },
        },
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
        "root": {
            "handlers": ["file", "console"],
            "level": level.upper(),
        },
    }

    logging.config.dictConfig(config)
    logging.getLogger(__name__).debug("Logging to %s at %s", log_path, level)
    return log_path
