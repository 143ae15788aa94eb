"""Structured JSON logging with correlation ID support.

Levels come from EngineSettings.log_level. Loggers created through
get_logger() are tracked so configure_logging() can re-apply a level once
settings are loaded (service modules create their loggers at import time).
"""

import json
import logging
import sys
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Mapping

from stayquote.infra.settings import EngineSettings, load_settings

from .correlation import get_correlation_id

_configured: dict[str, logging.Logger] = {}


def _json_default(value: Any) -> str:
    # amounts keep their exact digits
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


class JsonFormatter(logging.Formatter):
    """One JSON object per record.

    Carries the record timestamp, level, logger name, message, the current
    correlation ID, any ``extra_fields`` passed by the caller and the
    formatter's static fields (e.g. the quote currency).
    """

    def __init__(self, static_fields: Mapping[str, Any] | None = None) -> None:
        super().__init__()
        self.static_fields = dict(static_fields or {})

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **self.static_fields,
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            entry["correlationId"] = correlation_id

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        entry.update(getattr(record, "extra_fields", None) or {})
        return json.dumps(entry, default=_json_default)


def get_logger(name: str, settings: EngineSettings | None = None) -> logging.Logger:
    """Get a logger writing JSON to stdout at the settings' level."""
    logger = logging.getLogger(name)
    settings = settings or load_settings()

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter({"currency": settings.currency}))
        logger.addHandler(handler)
        logger.setLevel(settings.log_level)
        logger.propagate = False
        _configured[name] = logger

    return logger


def configure_logging(settings: EngineSettings) -> None:
    """Apply the settings' level and currency to every logger from get_logger()."""
    for logger in _configured.values():
        logger.setLevel(settings.log_level)
        for handler in logger.handlers:
            if isinstance(handler.formatter, JsonFormatter):
                handler.formatter.static_fields["currency"] = settings.currency
