"""
Structured logging configuration using structlog.

Deck events carry `session_id`/`deck_id`/`position` as structured fields.
Slide images travel through the same call sites as plain bytes, so the
processor chain replaces raw payloads with their size before rendering.
"""
import logging
import sys
from typing import Any, Dict

import structlog
from structlog.contextvars import bind_contextvars
from structlog.typing import EventDict, WrappedLogger

from prodeck.core.config import settings
from prodeck.core.exceptions import ProDeckException


def summarize_payloads(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Replace image/document bytes with their length."""
    for key, value in event_dict.items():
        if isinstance(value, (bytes, bytearray, memoryview)):
            event_dict[key] = f"<{len(value)} bytes>"
    return event_dict


def setup_logging() -> None:
    """
    Configure structured logging for the application.
    """
    level = logging.DEBUG if settings.DEBUG else logging.INFO

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        summarize_payloads,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.is_development:
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=True)]
    else:
        processors = shared_processors + [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (usually __name__ of the module)

    Returns:
        Configured logger instance
    """
    return structlog.get_logger(name)


def bind_deck_context(session_id: str | None = None, deck_id: str | None = None) -> None:
    """Attach the deck being served to every log line of the current request."""
    context = {}
    if session_id:
        context["session_id"] = session_id
    if deck_id:
        context["deck_id"] = deck_id
    if context:
        bind_contextvars(**context)


def log_request_details(
    request_id: str,
    method: str,
    path: str,
    client_ip: str | None = None,
) -> Dict[str, Any]:
    """
    Create a context dict for request logging.

    Args:
        request_id: Unique request identifier
        method: HTTP method
        path: Request path
        client_ip: Client IP address

    Returns:
        Context dictionary for logging
    """
    context = {
        "request_id": request_id,
        "method": method,
        "path": path,
    }

    if client_ip:
        context["client_ip"] = client_ip

    return context


def log_slide_details(deck_id: str, position: int, **kwargs: Any) -> Dict[str, Any]:
    """Context dict for a single slide of a deck."""
    return {"deck_id": deck_id, "position": position, **kwargs}


def log_error_details(
    error: BaseException,
    **kwargs: Any,
) -> Dict[str, Any]:
    """
    Create a context dict for error logging.

    Application exceptions contribute their user-facing message and HTTP
    status; anything else is reported by type and `str()`.

    Args:
        error: Exception instance
        **kwargs: Additional context

    Returns:
        Context dictionary for logging
    """
    context: Dict[str, Any] = {"error_type": type(error).__name__}
    if isinstance(error, ProDeckException):
        context["error_message"] = error.message
        context["status_code"] = error.status_code
    else:
        context["error_message"] = str(error) or repr(error)
    context.update(kwargs)
    return context


def log_performance_metrics(
    operation: str,
    duration_ms: float,
    success: bool = True,
    **kwargs: Any,
) -> Dict[str, Any]:
    """
    Create a context dict for performance logging.

    Args:
        operation: Operation name
        duration_ms: Duration in milliseconds
        success: Whether operation succeeded
        **kwargs: Additional metrics

    Returns:
        Context dictionary for logging
    """
    return {
        "operation": operation,
        "duration_ms": round(duration_ms, 2),
        "success": success,
        **kwargs,
    }
