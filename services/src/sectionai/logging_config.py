"""Structured logging helpers for the section AI service."""

from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Dict, Mapping

_SECRET_KEY_NAMES = frozenset({"api_key", "apikey", "authorization", "bearer", "secret", "token"})
_REDACTED = "***"


def scrub_payload(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``payload`` with secret-looking keys masked."""

    scrubbed: dict[str, Any] = {}
    for key, value in payload.items():
        if str(key).lower() in _SECRET_KEY_NAMES:
            scrubbed[key] = _REDACTED
        elif isinstance(value, Mapping):
            scrubbed[key] = scrub_payload(value)
        else:
            scrubbed[key] = value
    return scrubbed


class JsonFormatter(logging.Formatter):
    """JSON lines formatter; merges ``extra_payload`` into the record."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        extra = getattr(record, "extra_payload", None)
        if isinstance(extra, Mapping):
            payload.update(scrub_payload(extra))
        return json.dumps(payload, ensure_ascii=False, default=str)


LOGGING_CONFIG: Dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "()": "sectionai.logging_config.JsonFormatter",
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
        }
    },
    "loggers": {
        "uvicorn.access": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "uvicorn.error": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "sectionai": {"handlers": ["console"], "level": "INFO", "propagate": False},
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
}


def configure_logging(level: str | None = None) -> None:
    """Apply the structured logging configuration."""

    config = json.loads(json.dumps(LOGGING_CONFIG))
    if level:
        config["loggers"]["sectionai"]["level"] = level.upper()
    logging.config.dictConfig(config)


__all__ = ["JsonFormatter", "LOGGING_CONFIG", "configure_logging", "scrub_payload"]
