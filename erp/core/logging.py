"""
Logging configuration for the record store.
Plain text by default; JSON lines when LOG_JSON is enabled.
"""

import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from erp.core.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that stamps timestamp, level and logger name."""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name

        for attr in ("table_name", "entity_id", "user_id"):
            if hasattr(record, attr):
                log_record[attr] = getattr(record, attr)


def build_logging_config(level: str, as_json: bool) -> Dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            },
            "json": {
                "()": CustomJsonFormatter,
                "format": "%(timestamp)s %(level)s %(logger)s %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json" if as_json else "standard",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "erp": {"handlers": ["console"], "level": level.upper(), "propagate": False},
            "sqlalchemy.engine": {"handlers": ["console"], "level": "WARNING", "propagate": False},
        },
        "root": {"handlers": ["console"], "level": "WARNING"},
    }


def setup_logging() -> None:
    logging.config.dictConfig(build_logging_config(settings.log_level, settings.log_json))
