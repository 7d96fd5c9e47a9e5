# -*- coding: utf-8 -*-
"""
Structured JSON logging configuration.

Every record carries the HTTP request ID and the pipeline document ID so
that interleaved logs from concurrent documents can be told apart.
"""
import logging
import sys

from pythonjsonlogger.json import JsonFormatter as jsonlogger

from .config import settings
from .middleware import get_document_id, get_request_id

# Libraries that log too much at INFO/DEBUG
NOISY_LOGGERS = ["httpx", "httpcore", "MARKDOWN", "uvicorn.access"]


class ContextFilter(logging.Filter):
    """Add request_id and document_id to log records."""

    def filter(self, record):
        record.request_id = get_request_id() or "-"
        record.document_id = get_document_id() or "-"
        return True


class CustomJsonFormatter(jsonlogger):
    """JSON formatter with level, logger and correlation fields."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["request_id"] = getattr(record, "request_id", "-")
        log_record["document_id"] = getattr(record, "document_id", "-")


def setup_logging(level: str | None = None) -> logging.Logger:
    """Configure structured JSON logging on the root logger."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level or settings.LOG_LEVEL))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        CustomJsonFormatter(
            fmt="%(timestamp)s %(level)s %(name)s %(request_id)s %(document_id)s %(message)s",
            rename_fields={"timestamp": "@timestamp", "levelname": "level"},
        )
    )
    handler.addFilter(ContextFilter())
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger
