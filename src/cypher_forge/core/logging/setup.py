"""Centralized logging setup with optional Logfire integration.

Libraries should only call `get_logger`; applications embedding the query
compiler call `setup_logging` once at start-up.
"""

import logging
import sys

import logfire
import structlog
from structlog.processors import CallsiteParameter, CallsiteParameterAdder
from structlog.types import EventDict, Processor, WrappedLogger

from cypher_forge.core.config import Settings
from cypher_forge.core.config import settings as default_settings


def add_error_context(
    _logger: WrappedLogger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add the error class name to events that carry an error.

    Args:
        _logger: The wrapped logger instance
        _method_name: The name of the logging method
        event_dict: The event dictionary

    Returns:
        The event dictionary with added context
    """
    if "error" in event_dict and isinstance(event_dict["error"], BaseException):
        event_dict["error_type"] = type(event_dict["error"]).__name__

    return event_dict


def setup_logging(settings: Settings | None = None) -> None:
    """Set up application-wide logging with structlog.

    When ``settings.logfire_enabled`` is set, events are also forwarded to
    Logfire, which is configured through its own environment variables
    (``LOGFIRE_TOKEN``, ``LOGFIRE_SERVICE_NAME``, ...).

    Args:
        settings: Settings to read the log level and Logfire switch from
    """
    settings = settings or default_settings
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    # Processors shared by structlog and stdlib records
    shared_processors: list[Processor] = [
        # Merge context from contextvars
        structlog.contextvars.merge_contextvars,
        # Add log level to event dict
        structlog.processors.add_log_level,
        # Add timestamp in ISO format
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        # Add callsite parameters (file, line, function)
        CallsiteParameterAdder(
            parameters=[
                CallsiteParameter.FILENAME,
                CallsiteParameter.LINENO,
                CallsiteParameter.FUNC_NAME,
            ]
        ),
        add_error_context,
        # Stack trace formatting
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]

    processors: list[Processor] = list(shared_processors)
    if settings.logfire_enabled:
        # Must come before the final renderer
        processors.append(logfire.StructlogProcessor())
    processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        # Use PrintLogger to avoid double logging with standard library
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Route standard library records through the same processors
    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)
