"""Logging setup for the command line and scheduled runs.

Pipeline modules log through ``logging.getLogger(__name__)`` and attach
structured context via ``extra=``. The formatter defined here renders that
context as ``key=value`` pairs after the message.
"""

import logging
import sys
from typing import TextIO

# Standard LogRecord attributes that should not be treated as extra fields
_STANDARD_LOGRECORD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)

DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class ExtraFieldsFormatter(logging.Formatter):
    """Formatter that appends ``extra`` attributes as ``key=value`` pairs.

    Example:
        ```python
        handler = logging.StreamHandler()
        handler.setFormatter(ExtraFieldsFormatter())
        logger.info("written", extra={"measurement": "cpu.usage.average"})
        # ... INFO perfpipe: written measurement=cpu.usage.average
        ```
    """

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        extras = [
            f"{key}={value}"
            for key, value in sorted(record.__dict__.items())
            if key not in _STANDARD_LOGRECORD_ATTRS
            and isinstance(value, (str, int, float, bool))
        ]
        if not extras:
            return base
        first, sep, rest = base.partition("\n")
        return f"{first} {' '.join(extras)}{sep}{rest}"


def configure_logging(
    level: str | int = "INFO",
    stream: TextIO | None = None,
    fmt: str = DEFAULT_FORMAT,
) -> logging.Handler:
    """Install a stream handler with ExtraFieldsFormatter on the package logger.

    Calling it again replaces the handler installed by the previous call.

    Args:
        level: Log level name or number.
        stream: Output stream (default: stderr).
        fmt: Format string passed to the formatter.

    Returns:
        The installed handler.
    """
    package_logger = logging.getLogger("perfpipe")
    for existing in list(package_logger.handlers):
        if getattr(existing, "_perfpipe_handler", False):
            package_logger.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(ExtraFieldsFormatter(fmt))
    handler._perfpipe_handler = True  # type: ignore[attr-defined]
    package_logger.addHandler(handler)
    package_logger.setLevel(level.upper() if isinstance(level, str) else level)
    return handler
