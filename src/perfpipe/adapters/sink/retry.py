"""Bounded retry with exponential backoff for sink writes."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how patiently a failed write is retried.

    Attributes:
        max_attempts: Total attempts, the first one included. 1 disables retry.
        backoff_seconds: Delay before the second attempt.
        multiplier: Factor applied to the delay after each retry.
    """

    max_attempts: int = 3
    backoff_seconds: float = 1.0
    multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.backoff_seconds < 0 or self.multiplier < 1:
            raise ValueError("backoff_seconds must be >= 0 and multiplier >= 1")

    def delays(self) -> list[float]:
        """Delays slept between consecutive attempts."""
        return [
            self.backoff_seconds * self.multiplier**i
            for i in range(self.max_attempts - 1)
        ]

    def call(
        self,
        func: Callable[[], T],
        retryable: Callable[[Exception], bool],
        sleep: Callable[[float], None] = time.sleep,
    ) -> tuple[T, int]:
        """Call ``func`` until it succeeds or attempts run out.

        Args:
            func: The operation to attempt.
            retryable: Decides whether an exception is worth another attempt.
            sleep: Sleep function, replaced in tests.

        Returns:
            The result of ``func`` and the number of attempts made.

        Raises:
            The last exception raised by ``func``.
        """
        delays = self.delays()
        attempt = 0
        while True:
            attempt += 1
            try:
                return func(), attempt
            except Exception as exc:
                if attempt >= self.max_attempts or not retryable(exc):
                    raise
                delay = delays[attempt - 1]
                logger.info(
                    "Attempt %d/%d failed (%s), retrying in %.1fs",
                    attempt,
                    self.max_attempts,
                    exc,
                    delay,
                )
                sleep(delay)


NO_RETRY = RetryPolicy(max_attempts=1)
