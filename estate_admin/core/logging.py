"""
Structured logging for the estate admin console.

Tables and prompts go to stdout, so every log line goes to stderr: rendered
by rich for an operator at a terminal, or as one JSON object per line when
the console runs in production or under a scheduler.
"""

import logging
import sys
import uuid
from typing import Optional

import structlog
from rich.console import Console
from rich.logging import RichHandler

# Correlation ID attached to every log line of this invocation
_correlation_id: Optional[str] = None

# Per-request INFO lines from the HTTP stack drown out our own events
NOISY_LOGGERS = ("httpx", "httpcore")


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Set the correlation ID, generating a short one when none is given."""
    global _correlation_id
    _correlation_id = correlation_id or str(uuid.uuid4())[:8]
    return _correlation_id


def add_correlation_id(logger, method_name, event_dict):
    if _correlation_id:
        event_dict["correlation_id"] = _correlation_id
    return event_dict


def setup_logging(debug: bool = False, json_logs: bool = False) -> None:
    """
    Configure structlog and stdlib logging for one CLI invocation.

    Args:
        debug: Log at DEBUG, including each API request and store transition
        json_logs: Render JSON lines instead of rich console output
    """
    level = logging.DEBUG if debug else logging.INFO

    processors = [
        structlog.contextvars.merge_contextvars,
        add_correlation_id,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="ISO"),
    ]

    if json_logs:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
        logging.basicConfig(level=level, format="%(message)s", stream=sys.stderr)
    else:
        console = Console(stderr=True)
        processors += [
            structlog.dev.set_exc_info,
            structlog.dev.ConsoleRenderer(
                colors=console.is_terminal,
                exception_formatter=structlog.dev.rich_traceback,
            ),
        ]
        logging.basicConfig(
            level=level,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(console=console, show_path=False)],
        )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug else logging.WARNING)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.WriteLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
