"""Fetches raw samples for each entity group."""

import logging
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import datetime, timedelta

from perfpipe.core.admission import now_utc
from perfpipe.core.models import EntityGroup, MetricSample, StorageClass
from perfpipe.core.ports import MetricsSourcePort

logger = logging.getLogger(__name__)

# The distributed-storage API has no instant mode and reports no interval.
# Both values are assumptions, not measurements.
DEFAULT_DISTRIBUTED_WINDOW = timedelta(minutes=59)
DEFAULT_DISTRIBUTED_INTERVAL_SECONDS = 20


class SampleCollector:
    """Issues one batched fetch per group.

    A failed fetch does not abort the run: it is logged and the group
    contributes no samples.
    """

    def __init__(
        self,
        source: MetricsSourcePort,
        distributed_window: timedelta = DEFAULT_DISTRIBUTED_WINDOW,
        distributed_interval_seconds: int = DEFAULT_DISTRIBUTED_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self._source = source
        self._distributed_window = distributed_window
        self._distributed_interval = distributed_interval_seconds
        self._clock = clock

    def collect(self, group: EntityGroup) -> list[MetricSample]:
        """Fetch the most recent samples for every entity in the group."""
        if not group.entities or not group.metric_set:
            return []
        try:
            if group.storage_class is StorageClass.DISTRIBUTED:
                samples = self._fetch_distributed(group)
            else:
                samples = list(self._source.latest(group.entities, group.metric_set))
        except Exception as exc:
            logger.warning(
                "Sample fetch failed for %d %s entities (%s): %s",
                len(group.entities),
                group.report_type.value,
                group.storage_class.value,
                exc,
            )
            return []

        if group.storage_class is StorageClass.NETWORK_ATTACHED:
            kept = [s for s in samples if s.instance]
            if len(kept) != len(samples):
                logger.debug(
                    "Dropped %d NFS samples without instance", len(samples) - len(kept)
                )
            samples = kept
        return self._ordered(samples, group)

    def _fetch_distributed(self, group: EntityGroup) -> list[MetricSample]:
        end = self._clock()
        start = end - self._distributed_window
        raw = self._source.window(group.entities, group.metric_set, start, end)
        latest: dict[tuple[str, str, str], MetricSample] = {}
        for sample in raw:
            key = (sample.entity_id, sample.metric_id, sample.instance)
            current = latest.get(key)
            if current is None or sample.timestamp > current.timestamp:
                latest[key] = sample
        return [
            replace(sample, interval_seconds=self._distributed_interval)
            for sample in latest.values()
        ]

    @staticmethod
    def _ordered(
        samples: Iterable[MetricSample], group: EntityGroup
    ) -> list[MetricSample]:
        entity_rank = {e.entity_id: i for i, e in enumerate(group.entities)}
        metric_rank = {m: i for i, m in enumerate(group.metric_set)}
        unknown = len(entity_rank)

        def key(sample: MetricSample) -> tuple[int, int, str, datetime]:
            return (
                entity_rank.get(sample.entity_id, unknown),
                metric_rank.get(sample.metric_id, len(metric_rank)),
                sample.instance,
                sample.timestamp,
            )

        return sorted(samples, key=key)
