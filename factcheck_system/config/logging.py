"""Logging configuration using loguru with automatic dev/prod detection.

Agents, the oracle clients, the Gemini client and the scheduler log through
loguru with a bound ``component``. The verification side logs key-value
events through structlog instead (see factcheck_system.utils.logging).
"""

import sys
from loguru import logger

from factcheck_system.config.settings import settings

# Human-readable line for interactive runs; {extra[component]} is always bound
CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> | <level>{message}</level>"
)


def configure_logging() -> None:
    """
    Configure loguru based on environment settings.

    Behavior:
    - Development (TTY + console format): Colorized, human-readable output
    - Production (non-TTY or json format): JSON-structured logs to stdout
    - Respects LOG_LEVEL from settings
    """
    # Drop loguru's default stderr handler before adding ours
    logger.remove()

    # Colour only makes sense on an interactive terminal
    is_tty = sys.stderr.isatty()
    use_console_format = settings.log_format.lower() == "console"

    if is_tty and use_console_format:
        # Development mode: colorized, one line per record
        logger.add(
            sys.stderr,
            format=CONSOLE_FORMAT,
            level=settings.log_level,
            colorize=True,
        )
    else:
        # Production mode: one JSON object per record on stdout
        logger.add(
            sys.stdout,
            format="{message}",
            level=settings.log_level,
            serialize=True,  # Bound extras (component, agent_id) land in "record.extra"
            diagnose=False,  # Never dump local variables; prompts may hold article text
        )

    # Default component for records not logged through get_logger()
    logger.configure(extra={"component": "factcheck"})


def get_logger(component: str):
    """
    Get a logger instance bound to a specific component name.

    Args:
        component: Component/module name for log context

    Returns:
        Logger instance with component context

    Example:
        >>> log = get_logger("scheduler")
        >>> log.info("Dispatching verification calls")
    """
    return logger.bind(component=component)


# Configure logging on module import
configure_logging()

__all__ = ["logger", "get_logger", "configure_logging", "CONSOLE_FORMAT"]
