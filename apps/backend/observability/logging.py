"""
Structured logging bound to the request and search session being served.

Every record carries ``correlation_id``, ``session_id`` and ``destination``
from the current log context, so one search can be followed from the HTTP
request through each source fetch. Explicit ``extra`` fields win over the
context.

Usage:
    import logging

    logger = logging.getLogger(__name__)
    with log_context(session_id=session.session_id, destination="Goa"):
        logger.info("Source settled", extra={"source": "Yatra", "result_count": 4})
"""

import logging
import os
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional

from pythonjsonlogger.json import JsonFormatter

from utils.security import redact_secrets_from_text

CONTEXT_FIELDS = ("correlation_id", "session_id", "destination")
_UNSET = "-"

_log_context: ContextVar[Dict[str, str]] = ContextVar("log_context", default={})


def new_request_id() -> str:
    return f"req-{uuid.uuid4().hex[:16]}"


def current_log_context() -> Dict[str, str]:
    return dict(_log_context.get())


@contextmanager
def log_context(**fields: Optional[str]) -> Iterator[Dict[str, str]]:
    """Layer ``fields`` over the current context; ``None`` values are skipped.

    Tasks started inside the block inherit the fields, so the source
    fetches of one search log under that search's session.
    """
    merged = {**_log_context.get(), **{k: str(v) for k, v in fields.items() if v is not None}}
    token = _log_context.set(merged)
    try:
        yield merged
    finally:
        _log_context.reset(token)


class LogContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        context = _log_context.get()
        for field in CONTEXT_FIELDS:
            if getattr(record, field, None) is None:
                setattr(record, field, context.get(field, _UNSET))
        return True


class SensitiveDataFilter(logging.Filter):
    """Masks credential-looking extras and secrets embedded in messages.

    Source errors often quote the failing URL, which may carry an API key.
    """

    SENSITIVE_KEYS = {"api_key", "amadeus_api_key", "authorization", "bearer", "token", "secret", "password"}

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact_secrets_from_text(record.msg)
        if isinstance(record.args, dict):
            record.args = self._redact(record.args)

        for key, value in list(record.__dict__.items()):
            if key.lower() in self.SENSITIVE_KEYS:
                setattr(record, key, "[REDACTED]")
            elif isinstance(value, (dict, list)):
                setattr(record, key, self._redact(value))
        return True

    def _redact(self, data: Any) -> Any:
        if isinstance(data, dict):
            return {
                k: "[REDACTED]" if str(k).lower() in self.SENSITIVE_KEYS else self._redact(v)
                for k, v in data.items()
            }
        if isinstance(data, list):
            return [self._redact(item) for item in data]
        return data


class SearchJsonFormatter(JsonFormatter):
    """One JSON object per line, tagged with service, environment and context fields."""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["service"] = "tour-compare-backend"
        log_record["environment"] = os.getenv("ENVIRONMENT", "development")
        for field in CONTEXT_FIELDS:
            log_record[field] = getattr(record, field, _UNSET)
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)


def setup_logging() -> None:
    """
    Install the root handler.

    Environment variables:
    - LOG_LEVEL: DEBUG, INFO, WARNING, ERROR or CRITICAL (default INFO)
    - LOG_FORMAT: json or text (default: json in production, text elsewhere)
    - ENVIRONMENT: development, staging, production
    """
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    log_format = os.getenv("LOG_FORMAT", "json" if os.getenv("ENVIRONMENT") == "production" else "text")

    handler = logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(SearchJsonFormatter("%(asctime)s %(message)s", rename_fields={"asctime": "@timestamp"}))
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(correlation_id)s | session=%(session_id)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
    handler.addFilter(LogContextFilter())
    handler.addFilter(SensitiveDataFilter())

    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    # Per-request lines come from ObservabilityMiddleware
    for noisy in ("uvicorn.access", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
