"""JSON snapshot adapter for the inventory and metrics source ports.

A snapshot is exported by external tooling that talks to the management
API. Layout::

    {
      "hosts": [{"id": "host-1", "name": "esx01", "online": true}],
      "vms": [{"id": "vm-42", "name": "myvm002", "online": true,
               "volumes": ["ds-1"]}],
      "volumes": [{"id": "ds-1", "name": "lun01", "type": "VMFS"}],
      "samples": [{"entity": "vm-42", "metric": "cpu.usage.average",
                   "value": 4.25, "unit": "%", "interval": 20,
                   "instance": "", "timestamp": "2026-01-01T00:00:00Z"}]
    }
"""

from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator

from perfpipe.adapters.storage.in_memory import InMemoryInventory, InMemoryMetricsSource
from perfpipe.core.exceptions import ConfigurationError
from perfpipe.core.models import EntityRef, MetricSample, Volume


class _EntityModel(BaseModel):
    id: str
    name: str
    online: bool = True
    volumes: list[str] = Field(default_factory=list)


class _VolumeModel(BaseModel):
    id: str
    name: str
    type: str


class _SampleModel(BaseModel):
    entity: str
    metric: str
    value: float | int | str
    unit: str = ""
    interval: int = 0
    instance: str = ""
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def ensure_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class _SnapshotModel(BaseModel):
    hosts: list[_EntityModel] = Field(default_factory=list)
    vms: list[_EntityModel] = Field(default_factory=list)
    volumes: list[_VolumeModel] = Field(default_factory=list)
    samples: list[_SampleModel] = Field(default_factory=list)


def _entity(model: _EntityModel) -> EntityRef:
    return EntityRef(
        entity_id=model.id,
        name=model.name,
        online=model.online,
        volume_ids=tuple(model.volumes),
    )


class SnapshotSource:
    """Serves inventory and samples from a JSON snapshot file."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        try:
            snapshot = _SnapshotModel.model_validate_json(
                self._path.read_text(encoding="utf-8")
            )
        except (OSError, ValidationError) as exc:
            raise ConfigurationError(
                f"Cannot load snapshot {self._path}: {exc}"
            ) from exc

        self._inventory = InMemoryInventory(
            hosts=[_entity(h) for h in snapshot.hosts],
            virtual_machines=[_entity(v) for v in snapshot.vms],
            volumes=[Volume(v.id, v.name, v.type) for v in snapshot.volumes],
        )
        self._source = InMemoryMetricsSource(
            MetricSample(
                entity_id=s.entity,
                metric_id=s.metric,
                value=s.value,
                unit=s.unit,
                interval_seconds=s.interval,
                timestamp=s.timestamp,
                instance=s.instance,
            )
            for s in snapshot.samples
        )

    def hosts(self) -> Iterable[EntityRef]:
        return self._inventory.hosts()

    def virtual_machines(self) -> Iterable[EntityRef]:
        return self._inventory.virtual_machines()

    def volumes(self) -> Iterable[Volume]:
        return self._inventory.volumes()

    def latest(
        self, entities: Sequence[EntityRef], metric_ids: Sequence[str]
    ) -> Iterable[MetricSample]:
        return self._source.latest(entities, metric_ids)

    def window(
        self,
        entities: Sequence[EntityRef],
        metric_ids: Sequence[str],
        start: datetime,
        end: datetime,
    ) -> Iterable[MetricSample]:
        return self._source.window(entities, metric_ids, start, end)
