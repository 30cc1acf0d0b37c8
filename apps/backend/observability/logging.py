"""
Structured logging scoped to a discovery.

Every record emitted while a discovery runs carries its correlation id,
epoch, origin and category, including records from the adapter tasks it
spawns (context variables are copied into asyncio tasks).

Usage:
    import logging
    from observability.logging import discovery_log_context

    logger = logging.getLogger(__name__)
    with discovery_log_context(epoch=3, origin_id="paris", category="attraction"):
        logger.info("Phase one finished", extra={"source": "wikipedia"})
"""

import logging
import os
import re
import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

CONTEXT_FIELDS = ("correlation_id", "epoch", "origin_id", "category")


@dataclass(frozen=True)
class DiscoveryLogContext:
    correlation_id: str
    epoch: Optional[int] = None
    origin_id: Optional[str] = None
    category: Optional[str] = None


_discovery_ctx: ContextVar[Optional[DiscoveryLogContext]] = ContextVar("discovery_log_context", default=None)


def current_discovery() -> Optional[DiscoveryLogContext]:
    return _discovery_ctx.get()


def get_correlation_id() -> Optional[str]:
    """Correlation id of the discovery running in this context, if any."""
    context = _discovery_ctx.get()
    return context.correlation_id if context else None


def generate_correlation_id() -> str:
    return f"disc-{uuid.uuid4().hex[:16]}"


class discovery_log_context:
    """Binds one discovery's identity to every log record inside the block."""

    def __init__(
        self,
        epoch: Optional[int] = None,
        origin_id: Optional[str] = None,
        category: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ):
        self.context = DiscoveryLogContext(
            correlation_id=correlation_id or generate_correlation_id(),
            epoch=epoch,
            origin_id=origin_id,
            category=category,
        )
        self.token = None

    def __enter__(self) -> DiscoveryLogContext:
        self.token = _discovery_ctx.set(self.context)
        return self.context

    def __exit__(self, exc_type, exc_val, exc_tb):
        _discovery_ctx.reset(self.token)


class DiscoveryContextFilter(logging.Filter):
    """Stamps the active discovery onto records. Explicit ``extra`` values win."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = _discovery_ctx.get()
        for name in CONTEXT_FIELDS:
            if getattr(record, name, None) is not None:
                continue
            value = getattr(context, name, None) if context else None
            setattr(record, name, "none" if value is None else value)
        return True


# Provider credentials can surface in request URLs quoted by httpx errors
_URL_SECRET = re.compile(r"([?&](?:key|api_key|apikey)=)[^&\s'\"]+", re.IGNORECASE)


class SensitiveDataFilter(logging.Filter):
    """Redacts provider credentials from log records."""

    SENSITIVE_KEYS = {
        "password", "token", "api_key", "secret", "authorization",
        "x-goog-api-key", "google_places_api_key", "key"
    }

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact_url_secrets(record.msg)
        if record.args:
            record.args = self._redact(record.args)

        for key in list(record.__dict__.keys()):
            if key.lower() in self.SENSITIVE_KEYS:
                setattr(record, key, "[REDACTED]")

        return True

    def _redact(self, data: Any) -> Any:
        if isinstance(data, dict):
            return {
                k: "[REDACTED]" if str(k).lower() in self.SENSITIVE_KEYS else self._redact(v)
                for k, v in data.items()
            }
        if isinstance(data, (list, tuple)):
            return type(data)(self._redact(item) for item in data)
        if isinstance(data, str):
            return redact_url_secrets(data)
        return data


def redact_url_secrets(text: str) -> str:
    return _URL_SECRET.sub(r"\1[REDACTED]", text)


class DiscoveryJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        for name in CONTEXT_FIELDS:
            log_record[name] = getattr(record, name, "none")

        log_record["environment"] = os.getenv("ENVIRONMENT", "development")
        log_record["service"] = "poi-discovery-engine"

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)


def build_handler(log_format: str) -> logging.Handler:
    handler = logging.StreamHandler()
    if log_format == "json":
        formatter: logging.Formatter = DiscoveryJsonFormatter(
            "%(timestamp)s %(level)s %(logger)s %(correlation_id)s %(message)s",
            rename_fields={"timestamp": "@timestamp"}
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(correlation_id)s epoch=%(epoch)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
    handler.setFormatter(formatter)
    handler.addFilter(DiscoveryContextFilter())
    handler.addFilter(SensitiveDataFilter())
    return handler


def setup_logging() -> None:
    """
    Configure root logging for the engine and its CLI.

    Environment variables:
    - LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - LOG_FORMAT: json or text (default: json in production, text otherwise)
    - ENVIRONMENT: development, staging, production
    """
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    log_format = os.getenv("LOG_FORMAT", "json" if os.getenv("ENVIRONMENT") == "production" else "text")

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.addHandler(build_handler(log_format))
    root_logger.setLevel(log_level)

    # Per-request chatter from the HTTP stack
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


setup_logging()
