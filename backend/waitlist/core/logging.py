"""Structured JSON logging configuration."""

import logging
import sys
from contextvars import ContextVar
from typing import Any

from pythonjsonlogger import jsonlogger

from waitlist.core.config import settings

# Set by RequestIDMiddleware for the duration of a request
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)


class RequestIdFilter(logging.Filter):
    """Attach the current request id unless the call site passed one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = request_id_ctx.get()
        return True


class WaitlistJsonFormatter(jsonlogger.JsonFormatter):
    """One JSON object per record: timestamp, level, logger, event and extras."""

    def add_fields(self, log_record: dict[str, Any], record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["event"] = record.getMessage()
        if log_record.get("request_id") is None:
            log_record.pop("request_id", None)

        log_record.pop("message", None)
        log_record.pop("asctime", None)


def setup_logging() -> None:
    """Route everything through a single JSON stdout handler."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        WaitlistJsonFormatter("%(timestamp)s %(level)s %(logger)s", datefmt="%Y-%m-%dT%H:%M:%S%z")
    )
    handler.addFilter(RequestIdFilter())
    root_logger.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.DATABASE_ECHO else logging.WARNING
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
