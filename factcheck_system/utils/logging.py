"""Structured logging utilities using structlog for verification request tracing.

Verification-side components (evidence selection, verdict aggregation, the
fact-check pipeline) emit snake_case events with key-value context, e.g.
``claim_verified verdict=Support trust_score=100 request_id=k3x9a2b``.
Level and output format follow the same settings as the loguru side.
"""

import sys
import uuid
from typing import Any, Optional
import structlog
from structlog.processors import JSONRenderer
from structlog.contextvars import merge_contextvars

from factcheck_system.config.settings import settings

# Length of the hex request IDs attached to every event of one run
REQUEST_ID_LENGTH = 7


def configure_structured_logging() -> None:
    """
    Configure structured logging with appropriate processors and renderers.

    Uses:
    - Console renderer for development (colorized, human-readable)
    - JSON renderer for production (structured, machine-readable)
    - Context binding for component and request_id
    """
    # Shared by both renderers
    processors = [
        merge_contextvars,  # Context bound via structlog.contextvars
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,  # Render exc_info=True as text
    ]

    if sys.stderr.isatty() and settings.log_format.lower() == "console":
        # Development mode: aligned, colorized key=value output
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )
    else:
        # Production mode: one JSON object per event
        processors.append(JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(settings.log_level.upper()),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_structured_logger(
    name: str,
    request_id: Optional[str] = None,
    **additional_context: Any,
) -> structlog.BoundLogger:
    """
    Get a structured logger with bound context.

    Args:
        name: Logger name, also bound as ``component``
        request_id: Optional fact-check request ID to bind
        **additional_context: Additional context to bind

    Returns:
        Configured BoundLogger instance with context

    Example:
        >>> logger = get_structured_logger("VerdictAggregator", request_id="k3x9a2b")
        >>> logger.info("claim_verified", verdict="Support")
    """
    logger = structlog.get_logger(name).bind(component=name)

    # Request ID ties every event of one fact-check run together
    if request_id:
        logger = logger.bind(request_id=request_id)

    if additional_context:
        logger = logger.bind(**additional_context)

    return logger


def get_request_id() -> str:
    """
    Generate a short request ID for tracing one fact-check run.

    Returns:
        Seven-character hex string
    """
    return uuid.uuid4().hex[:REQUEST_ID_LENGTH]


# Configure on module import
configure_structured_logging()


__all__ = [
    "get_structured_logger",
    "get_request_id",
    "configure_structured_logging",
]
