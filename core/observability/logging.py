"""
Structured Logging with Correlation IDs

Provides logging utilities that automatically include:
- request_id: Links logs to one API request
- lot_number: Links logs to the lot being resolved
- collection / field: Links logs to the lookup step being queried

Usage:
    from core.observability.logging import get_logger, with_correlation

    logger = get_logger(__name__)

    with with_correlation(lot_number="LOT-2024-001", request_id="req-123"):
        logger.info("Resolving lot")  # Automatically includes correlation IDs
"""

import json
import logging
import sys
from contextvars import ContextVar
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from contextlib import contextmanager


# =============================================================================
# Correlation Context
# =============================================================================

@dataclass
class CorrelationContext:
    """Context for correlating logs across one lot lookup."""
    request_id: Optional[str] = None
    lot_number: Optional[str] = None
    collection: Optional[str] = None
    field: Optional[str] = None
    route: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict, excluding None values."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def merge(self, **kwargs) -> "CorrelationContext":
        """Create a new context with merged values."""
        data = self.to_dict()
        data.update({k: v for k, v in kwargs.items() if v is not None})
        return CorrelationContext(**data)


# Context variable for async/thread-safe correlation
_correlation_context: ContextVar[CorrelationContext] = ContextVar(
    "correlation_context",
    default=CorrelationContext()
)


def get_correlation_context() -> CorrelationContext:
    """Get the current correlation context."""
    return _correlation_context.get()


@contextmanager
def with_correlation(**kwargs):
    """
    Context manager to set correlation IDs for logging.

    Usage:
        with with_correlation(lot_number="LOT-2024-001"):
            logger.info("Querying")  # Will include lot_number
    """
    old_ctx = get_correlation_context()
    new_ctx = old_ctx.merge(**kwargs)
    token = _correlation_context.set(new_ctx)
    try:
        yield new_ctx
    finally:
        _correlation_context.reset(token)


# =============================================================================
# Formatters
# =============================================================================

class StructuredFormatter(logging.Formatter):
    """
    JSON formatter that includes correlation context.

    Output format:
    {
        "timestamp": "2024-01-09T12:00:00.123456+00:00",
        "level": "INFO",
        "logger": "lot_resolver.resolver",
        "message": "Lot found",
        "lot_number": "LOT-2024-001",
        "collection": "lots",
        "duration_ms": 42
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        ctx = get_correlation_context()
        log_data.update(ctx.to_dict())

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Human-readable formatter that includes key correlation IDs.

    Output format:
    2024-01-09 12:00:00 [INFO ] lot_resolver.resolver [req-1234/LOT-2024-001]: Lot found
    """

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_correlation_context()

        correlation_parts = []
        if ctx.request_id:
            # Truncate request_id for readability
            correlation_parts.append(ctx.request_id[:8])
        if ctx.lot_number:
            correlation_parts.append(ctx.lot_number)
        if ctx.collection:
            step = ctx.collection
            if ctx.field:
                step += f".{ctx.field}"
            correlation_parts.append(step)

        correlation = "/".join(correlation_parts) if correlation_parts else "-"

        timestamp = self.formatTime(record, "%Y-%m-%d %H:%M:%S")
        msg = f"{timestamp} [{record.levelname:5}] {record.name} [{correlation}]: {record.getMessage()}"

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            msg += " " + " ".join(f"{k}={v}" for k, v in extra_fields.items())

        if record.exc_info:
            msg += "\n" + self.formatException(record.exc_info)

        return msg


# =============================================================================
# Logger with Correlation Support
# =============================================================================

class CorrelatedLogger(logging.LoggerAdapter):
    """
    Logger adapter that accepts per-call structured fields.

    Correlation IDs are read by the formatters from the current context, so
    the adapter only carries `extra_fields`:

        logger.info("Lot found", extra_fields={"document_id": "doc-1"})
    """

    def __init__(self, logger: logging.Logger):
        super().__init__(logger, {})

    def process(self, msg, kwargs):
        extra_fields = kwargs.pop("extra_fields", None) or {}
        extra = dict(kwargs.get("extra") or {})
        extra["extra_fields"] = extra_fields
        kwargs["extra"] = extra
        return msg, kwargs


# =============================================================================
# Logger Factory
# =============================================================================

_loggers: Dict[str, CorrelatedLogger] = {}
_configured = False
_handler: Optional[logging.Handler] = None


def configure_logging(
    level: int = logging.INFO,
    json_format: bool = False,
    force: bool = False,
):
    """
    Configure logging for the application.

    Args:
        level: Logging level (int or level name)
        json_format: If True, use JSON format; otherwise human-readable
        force: Replace an earlier configuration (e.g. the default one
            installed by the first get_logger call)
    """
    global _configured, _handler

    if _configured and not force:
        return

    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    if json_format:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(HumanReadableFormatter())

    root.setLevel(level)
    root.addHandler(handler)
    _handler = handler

    for logger_name in ["lot_resolver", "lot_timeline", "api", "core"]:
        logging.getLogger(logger_name).setLevel(level)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("google").setLevel(logging.WARNING)
    logging.getLogger("grpc").setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> CorrelatedLogger:
    """
    Get a correlated logger for the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        CorrelatedLogger instance
    """
    if name not in _loggers:
        if not _configured:
            configure_logging()

        base_logger = logging.getLogger(name)
        _loggers[name] = CorrelatedLogger(base_logger)

    return _loggers[name]
