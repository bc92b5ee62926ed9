from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any

from asgi_correlation_id.context import correlation_id
from pythonjsonlogger.json import JsonFormatter

SERVICE_NAME = "postdesk"

JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s %(correlation_id)s %(service)s"
TEXT_FORMAT = "%(asctime)s %(levelname)-8s [%(correlation_id)s] %(name)s: %(message)s"


class CorrelationIdFilter(logging.Filter):
    """Attach the request correlation ID and service name to each log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id.get() or "unknown"
        record.service = SERVICE_NAME
        return True


def build_logging_config(level: str = "INFO", json_logs: bool = True) -> dict[str, Any]:
    """Return a dictConfig mapping; JSON lines in production, plain text otherwise."""
    if json_logs:
        formatter: dict[str, Any] = {"()": JsonFormatter, "fmt": JSON_FORMAT}
    else:
        formatter = {"format": TEXT_FORMAT}

    def _routed() -> dict[str, Any]:
        return {"handlers": ["default"], "level": level, "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"with_correlation": {"()": CorrelationIdFilter}},
        "formatters": {"default": formatter},
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "filters": ["with_correlation"],
            }
        },
        "root": {"handlers": ["default"], "level": level},
        "loggers": {
            "uvicorn.error": _routed(),
            "uvicorn.access": _routed(),
        },
    }


def configure_logging(level: str = "INFO", json_logs: bool = True) -> None:
    dictConfig(build_logging_config(level.upper(), json_logs))
