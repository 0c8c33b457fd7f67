"""Admission control: suppression window and startup jitter."""

import logging
import random
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from perfpipe.core.exceptions import SuppressionMarkerMissingError
from perfpipe.core.models import AdmissionDecision
from perfpipe.core.ports import SuppressionMarkerPort

logger = logging.getLogger(__name__)

DEFAULT_MAX_SUPPRESSION_MINUTES = 20


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


class AdmissionController:
    """Decides whether a collection run proceeds.

    A run is declined while a suppression marker younger than
    ``max_suppression_minutes`` exists. An older marker is treated as left
    behind by a crashed ``suppress`` caller: it is removed and the run goes
    ahead.

    Marker access is single-writer. Concurrent ``suppress``/``resume`` calls
    must be serialized by the caller.
    """

    def __init__(
        self,
        marker: SuppressionMarkerPort,
        max_suppression_minutes: float = DEFAULT_MAX_SUPPRESSION_MINUTES,
        jitter_max_seconds: int = 0,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        if max_suppression_minutes < 0:
            raise ValueError("max_suppression_minutes must not be negative")
        if jitter_max_seconds < 0:
            raise ValueError("jitter_max_seconds must not be negative")
        self._marker = marker
        self._window = timedelta(minutes=max_suppression_minutes)
        self._jitter_max_seconds = jitter_max_seconds
        self._rng = rng or random.Random()
        self._clock = clock

    def should_run(self, jitter_max_seconds: int | None = None) -> AdmissionDecision:
        """Check the suppression marker and draw the startup delay.

        Args:
            jitter_max_seconds: Overrides the configured jitter bound.
        """
        modified = self._marker.modified_at()
        if modified is not None:
            age = self._clock() - modified
            if age < self._window:
                logger.info(
                    "Run suppressed by marker set %.0f seconds ago",
                    age.total_seconds(),
                )
                return AdmissionDecision(proceed=False)
            logger.warning(
                "Removing stale suppression marker (age %.0f seconds)",
                age.total_seconds(),
            )
            self._marker.remove()

        jitter = self._jitter_max_seconds
        if jitter_max_seconds is not None:
            jitter = jitter_max_seconds
        delay = 0
        if jitter > 0:
            delay = self._rng.randint(1, jitter)
        return AdmissionDecision(proceed=True, delay_seconds=delay)

    def suppress(self) -> None:
        """Create the suppression marker. Idempotent."""
        self._marker.create()
        logger.info("Suppression marker set")

    def resume(self) -> None:
        """Remove the suppression marker.

        Raises:
            SuppressionMarkerMissingError: If no marker exists.
        """
        if not self._marker.remove():
            raise SuppressionMarkerMissingError("No suppression marker to remove")
        logger.info("Suppression marker removed")

    def is_suppressed(self) -> bool:
        modified = self._marker.modified_at()
        return modified is not None and self._clock() - modified < self._window
