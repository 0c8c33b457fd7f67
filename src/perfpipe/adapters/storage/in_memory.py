"""In-memory adapters for the inventory, metrics source, marker and sink."""

from collections.abc import Callable, Iterable, Sequence
from datetime import datetime

from perfpipe.core.encoding.line_protocol import encode_line
from perfpipe.core.models import (
    EntityRef,
    LineProtocolRecord,
    MetricSample,
    Volume,
    WriteResult,
)


class InMemoryInventory:
    """In-memory implementation of InventoryPort.

    Suitable for testing and for embedding the pipeline behind another
    enumeration mechanism.
    """

    def __init__(
        self,
        hosts: Iterable[EntityRef] = (),
        virtual_machines: Iterable[EntityRef] = (),
        volumes: Iterable[Volume] = (),
    ) -> None:
        self._hosts = list(hosts)
        self._vms = list(virtual_machines)
        self._volumes = list(volumes)

    def hosts(self) -> Iterable[EntityRef]:
        return list(self._hosts)

    def virtual_machines(self) -> Iterable[EntityRef]:
        return list(self._vms)

    def volumes(self) -> Iterable[Volume]:
        return list(self._volumes)


class InMemoryMetricsSource:
    """In-memory implementation of MetricsSourcePort.

    Holds a list of samples and answers queries by filtering it. Records
    every call in ``calls`` so tests can check batching.
    """

    def __init__(self, samples: Iterable[MetricSample] = ()) -> None:
        self._samples: list[MetricSample] = list(samples)
        self.calls: list[tuple[str, tuple[str, ...], tuple[str, ...]]] = []

    def add(self, sample: MetricSample) -> None:
        self._samples.append(sample)

    def _matching(
        self, entities: Sequence[EntityRef], metric_ids: Sequence[str]
    ) -> list[MetricSample]:
        wanted = {entity.entity_id for entity in entities}
        metrics = set(metric_ids)
        return [
            s for s in self._samples if s.entity_id in wanted and s.metric_id in metrics
        ]

    def latest(
        self, entities: Sequence[EntityRef], metric_ids: Sequence[str]
    ) -> Iterable[MetricSample]:
        self.calls.append(
            ("latest", tuple(e.entity_id for e in entities), tuple(metric_ids))
        )
        latest: dict[tuple[str, str, str], MetricSample] = {}
        for sample in self._matching(entities, metric_ids):
            key = (sample.entity_id, sample.metric_id, sample.instance)
            if key not in latest or sample.timestamp > latest[key].timestamp:
                latest[key] = sample
        return list(latest.values())

    def window(
        self,
        entities: Sequence[EntityRef],
        metric_ids: Sequence[str],
        start: datetime,
        end: datetime,
    ) -> Iterable[MetricSample]:
        self.calls.append(
            ("window", tuple(e.entity_id for e in entities), tuple(metric_ids))
        )
        return [
            s
            for s in self._matching(entities, metric_ids)
            if start <= s.timestamp <= end
        ]


class InMemorySuppressionMarker:
    """In-memory implementation of SuppressionMarkerPort."""

    def __init__(
        self,
        clock: Callable[[], datetime],
        modified: datetime | None = None,
    ) -> None:
        self._clock = clock
        self._modified = modified

    def modified_at(self) -> datetime | None:
        return self._modified

    def create(self) -> None:
        self._modified = self._clock()

    def remove(self) -> bool:
        existed = self._modified is not None
        self._modified = None
        return existed


class InMemoryRecordWriter:
    """In-memory implementation of RecordWriterPort.

    Collects the encoded lines instead of sending them anywhere.
    """

    def __init__(self) -> None:
        self.lines: list[str] = []

    def write(self, records: Sequence[LineProtocolRecord]) -> WriteResult:
        return self.write_lines([encode_line(record) for record in records])

    def write_lines(self, lines: Sequence[str]) -> WriteResult:
        for line in lines:
            self.lines.append(line if line.endswith("\n") else line + "\n")
        return WriteResult(
            records_written=len(lines), requests=len(lines), attempts=len(lines)
        )
