"""Structured logging configuration.

Configures the root logger with a structured format including timestamp,
level, and module name.  Fields passed through ``extra={...}`` are appended
to the line as ``key=value`` pairs so event context is never lost.  The log
level is controlled by ``settings.LOG_LEVEL``.
"""

import logging
import sys

from app.core.config import settings

# Attributes every LogRecord carries; anything else came from ``extra``.
_RESERVED_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}


class ContextFormatter(logging.Formatter):
    """Formatter that renders ``extra`` fields after the message."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if not context:
            return line
        pairs = " ".join(f"{key}={value}" for key, value in sorted(context.items()))
        return f"{line} | {pairs}"


def setup_logging() -> None:
    """Configure structured logging for the application.

    Sets the root logger level from ``settings.LOG_LEVEL`` and installs a
    single ``StreamHandler`` writing to *stdout*.
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    formatter = ContextFormatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(log_level)

    # Avoid adding duplicate handlers on repeated calls
    root.handlers.clear()
    root.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("hpack").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
