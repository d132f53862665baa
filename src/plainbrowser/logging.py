"""Structured logging configuration using structlog.

Every plainbrowser logger carries a ``logger`` field naming the emitting
module, and events logged inside ``bound_to_test()`` carry the id of the
test being run.
"""

import logging as stdlib_logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog._config import BoundLoggerLazyProxy
from structlog.typing import EventDict, WrappedLogger

ROOT_LOGGER_NAME = "plainbrowser"


def add_log_level(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add the log level to the event dict."""
    if method_name == "warn":
        # Translate "warn" to "warning"
        event_dict["level"] = "warning"
    else:
        event_dict["level"] = method_name
    return event_dict


def configure_logging(
    level: str = "WARNING",
    json_output: bool = False,
) -> None:
    """Configure structlog for plainbrowser.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_output: If True, output JSON format. If False, use console-friendly format.
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(stdlib_logging, level.upper(), stdlib_logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


@contextmanager
def bound_to_test(test_id: str) -> Iterator[None]:
    """Tag every event logged inside the block with *test_id*.

    The previous value is restored on exit, so contexts nest.
    """
    tokens = structlog.contextvars.bind_contextvars(test=test_id)
    try:
        yield
    finally:
        structlog.contextvars.reset_contextvars(**tokens)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a configured logger instance.

    Args:
        name: Logger name, normally the calling module's ``__name__``.
            Defaults to ``plainbrowser``.

    Returns:
        Configured structlog logger whose events carry ``logger=<name>``.
    """
    # structlog.get_logger(logger=...) clashes with wrap_logger's own ``logger``
    # parameter, so build the same lazy proxy it would return directly.
    return BoundLoggerLazyProxy(None, initial_values={"logger": name or ROOT_LOGGER_NAME})
