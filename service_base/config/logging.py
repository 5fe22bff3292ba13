"""
Structured Logging Configuration

structlog on top of the standard logging module.

- console format: readable output for local development
- json format: one JSON object per line for log collectors

configure_logging() returns the LogSink that owns the installed handler.
The sink is passed explicitly to whoever has to flush it at shutdown.
"""

import logging
import os
import socket
import sys
import threading
from typing import IO, Optional

import structlog

from service_base.config.settings import Settings


class LogSink:
    """
    Shared log sink

    Wraps the stdlib handler every logger writes through. Handler methods
    take the handler lock, so concurrent writers from any thread or task
    are safe. close_and_flush() is the final step of shutdown.
    """

    def __init__(self, handler: logging.Handler, logger: Optional[logging.Logger] = None):
        self.handler = handler
        self._logger = logger or logging.getLogger()
        self._lock = threading.Lock()
        self.closed = False

    def flush(self) -> None:
        if not self.closed:
            self.handler.flush()

    def close_and_flush(self) -> None:
        """Flush buffered records, then detach and close the handler (idempotent)"""
        with self._lock:
            if self.closed:
                return
            self.handler.flush()
            self._logger.removeHandler(self.handler)
            self.handler.close()
            self.closed = True


def _add_application_context(settings: Settings):
    """Enrich every record with application and environment names"""

    def processor(logger, method_name, event_dict):
        event_dict.setdefault("application", settings.app_name)
        event_dict.setdefault("environment", settings.app_env)
        return event_dict

    return processor


def _add_host_context(logger, method_name, event_dict):
    event_dict.setdefault("machine_name", socket.gethostname())
    event_dict.setdefault("process_id", os.getpid())
    event_dict.setdefault("thread_id", threading.get_ident())
    return event_dict


def configure_logging(settings: Settings, stream: Optional[IO[str]] = None) -> LogSink:
    """
    Configure structured logging

    Args:
        settings: application settings (log_level, log_format, log_verbose)
        stream: output stream (stdout when omitted)

    Returns:
        LogSink owning the installed handler

    Usage:
        sink = configure_logging(settings)
        logger = get_logger(__name__)
        logger.info("event_name", key="value")
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(level)

    processors = [
        structlog.contextvars.merge_contextvars,  # correlation id
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        _add_application_context(settings),
    ]
    if settings.log_verbose:
        processors.append(_add_host_context)

    processors.extend([
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ])

    if settings.log_format.lower() == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return LogSink(handler, root)


def get_logger(name: str = None):
    """
    Return a structured logger

    Args:
        name: logger name (None uses the calling module)

    Returns:
        structlog BoundLogger proxy
    """
    return structlog.get_logger(name)
