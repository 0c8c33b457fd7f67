"""Logging helpers for pipeline stages."""

import logging
import time
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass


@dataclass
class StageTiming:
    """Result object for the timed_stage context manager."""

    elapsed_seconds: float = 0.0


@contextmanager
def timed_stage(
    logger: logging.Logger,
    message: str,
    level: int = logging.INFO,
    **attributes: str | int | float | bool,
) -> Generator[StageTiming]:
    """Context manager that logs entry and exit of a stage with elapsed time.

    Args:
        logger: Logger to write to.
        message: The base log message.
        level: Log level (default INFO).
        **attributes: Additional structured fields, passed as ``extra``.

    Yields:
        StageTiming, filled in with the elapsed time on exit.
    """
    result = StageTiming()
    start = time.perf_counter()
    logger.log(level, "%s [entry]", message, extra={"phase": "entry", **attributes})
    try:
        yield result
    finally:
        result.elapsed_seconds = time.perf_counter() - start
        logger.log(
            level,
            "%s [exit]",
            message,
            extra={
                "phase": "exit",
                "elapsed_seconds": round(result.elapsed_seconds, 3),
                **attributes,
            },
        )


def log_exception(
    logger: logging.Logger,
    message: str,
    **attributes: str | int | float | bool,
) -> None:
    """Log an ERROR with the active exception's traceback.

    Must be called from within an ``except`` block.
    """
    logger.error(message, exc_info=True, extra=dict(attributes))
