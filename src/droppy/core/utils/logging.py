import logging
import os
import sys
from typing import IO, Optional

import structlog

from droppy.core.constants import LOG_FILE_MODE

_handler: Optional[logging.Handler] = None


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def open_log_file(path: str) -> IO[str]:
    """Open a log file for appending, creating it with mode 0644."""
    target = os.path.abspath(os.path.expanduser(path))
    fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_APPEND, LOG_FILE_MODE)
    return os.fdopen(fd, "a", encoding="utf-8", buffering=1)


def _want_colors(stream: IO[str], color: Optional[bool]) -> bool:
    if color is not None:
        return color
    if os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def configure_logging(
    log_file: Optional[IO[str]] = None,
    color: Optional[bool] = None,
    level: str = "INFO",
    json_logs: bool = False,
) -> None:
    """Configure structured logging."""
    stream = log_file or sys.stderr

    global _handler
    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    _handler = logging.StreamHandler(stream)
    _handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(_handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_logs:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        # Log files never get ANSI escapes.
        colors = False if log_file is not None else _want_colors(stream, color)
        processors.append(structlog.dev.ConsoleRenderer(colors=colors))

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
