"""Structured logging utilities with correlation ID support.

Provides:
- Correlation ID context management for request tracing
- Structured logging formatter for consistent log output
- Helper for logging each stage of webhook reconciliation

Usage:
    from relay_shared.utils.logging import get_logger, set_correlation_id

    # In middleware/request handler:
    set_correlation_id(request.headers.get("X-Correlation-ID"))

    # In service code:
    logger = get_logger(__name__)
    logger.info("Order upserted", extra={"order_number": "PED123"})
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Any

# Context variable for correlation ID - thread-safe and async-safe
_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

# Stages that end a notification without touching the ledger
_WARNING_STAGES = {"no-order-number", "intent-missing", "orphan", "unrecognized-status", "not-post"}


def generate_correlation_id() -> str:
    """Generate a new correlation ID.

    Returns:
        UUID-based correlation ID string
    """
    return str(uuid.uuid4())


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Set the correlation ID for the current request context.

    Args:
        correlation_id: Optional existing correlation ID. If None, generates new one.

    Returns:
        The correlation ID that was set
    """
    cid = correlation_id or generate_correlation_id()
    _correlation_id.set(cid)
    return cid


def get_correlation_id() -> str | None:
    """Get the current correlation ID."""
    return _correlation_id.get()


def clear_correlation_id() -> None:
    """Clear the correlation ID context."""
    _correlation_id.set(None)


class CorrelationIdFilter(logging.Filter):
    """Logging filter that adds correlation_id to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "no-correlation-id"
        return True


class StructuredFormatter(logging.Formatter):
    """Formatter for structured log output with correlation ID."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with structured fields.

        Args:
            record: Log record to format

        Returns:
            Formatted log string
        """
        if not hasattr(record, "correlation_id"):
            record.correlation_id = get_correlation_id() or "no-correlation-id"

        base = super().format(record)

        # Prefix for easy grep/filtering
        return f"[{record.correlation_id}] {base}"


def configure_logging(level: int = logging.INFO) -> None:
    """Install the structured formatter on the root logger.

    Safe to call more than once; the handler is only added the first time.
    """
    root = logging.getLogger()
    root.setLevel(level)
    if any(isinstance(h.formatter, StructuredFormatter) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(
        StructuredFormatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with correlation ID support.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not any(isinstance(f, CorrelationIdFilter) for f in logger.filters):
        logger.addFilter(CorrelationIdFilter())

    return logger


def log_notification_stage(
    logger: logging.Logger,
    stage: str,
    order_number: str | None = None,
    *,
    status_code: int | None = None,
    reason: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log one reconciliation stage with structured context.

    Args:
        logger: Logger instance
        stage: Engine stage (received, aprovado, orphan, exception, ...)
        order_number: Order identifier extracted from the notification
        status_code: Numeric gateway payment status, if any
        reason: Classification reason tag
        error: Error message if the stage failed
        **extra: Additional context fields
    """
    context: dict[str, Any] = {"stage": stage}

    if order_number:
        context["order_number"] = order_number
    if status_code is not None:
        context["status_code"] = status_code
    if reason:
        context["reason"] = reason
    if error:
        context["error"] = error

    context.update(extra)

    msg_parts = [f"Webhook stage: {stage}"]
    if order_number:
        msg_parts.append(f"order={order_number}")
    if status_code is not None:
        msg_parts.append(f"status={status_code}")
    if reason:
        msg_parts.append(f"reason={reason}")
    if error:
        msg_parts.append(f"error={error}")

    message = " | ".join(msg_parts)

    if error or stage == "exception":
        logger.error(message, extra=context)
    elif stage in _WARNING_STAGES:
        logger.warning(message, extra=context)
    else:
        logger.info(message, extra=context)
