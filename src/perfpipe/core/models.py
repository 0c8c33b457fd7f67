"""Core domain models for the collection pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from functools import cached_property
from pathlib import Path

from perfpipe.core.exceptions import ConfigurationError, InvalidCardinalityError


class ReportType(Enum):
    """Kind of entity a group reports on. The value is the ``type`` tag."""

    VM = "VM"
    VMHOST = "VMHost"


class ReportScope(Enum):
    """Compute-oriented or I/O-oriented reporting."""

    COMPUTE = "compute"
    IO = "io"


class StorageClass(Enum):
    """Backing-volume category. The value doubles as the ``disktype`` tag."""

    GENERIC = "Generic"
    BLOCK = "Block"
    NETWORK_ATTACHED = "NFS"
    DISTRIBUTED = "vSAN"


class CardinalityMode(Enum):
    """How much identifying detail is folded into the measurement name."""

    STANDARD = "standard"
    ADVANCED = "advanced"
    OVERKILL = "overkill"

    @classmethod
    def parse(cls, value: str | CardinalityMode) -> CardinalityMode:
        """Parse a cardinality mode, case-insensitively.

        Raises:
            InvalidCardinalityError: If the value names no known mode.
        """
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        for mode in cls:
            if mode.value == normalized:
                return mode
        choices = ", ".join(m.value for m in cls)
        raise InvalidCardinalityError(
            f"Invalid cardinality mode {value!r}, expected one of: {choices}"
        )


class OutputMode(Enum):
    """Where the collection stage puts its output."""

    STREAM = "stream"
    FILE = "file"
    PASSTHROUGH = "passthrough"


@dataclass(frozen=True)
class Volume:
    """A storage volume (datastore) as reported by the inventory.

    Attributes:
        volume_id: Source-side identifier.
        name: Display name.
        volume_type: Raw backing type, e.g. VMFS, NFS, NFS41, vsan.
    """

    volume_id: str
    name: str
    volume_type: str


@dataclass(frozen=True)
class EntityRef:
    """A monitored entity (virtual machine or host).

    Attributes:
        entity_id: Source-side identifier (e.g. vm-42).
        name: Display name.
        online: True if powered on (VMs) or connected (hosts).
        volume_ids: Volumes the entity resides on.
    """

    entity_id: str
    name: str
    online: bool = True
    volume_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class EntityGroup:
    """Entities sharing a report type, storage class and metric set."""

    report_type: ReportType
    storage_class: StorageClass
    entities: tuple[EntityRef, ...]
    metric_set: tuple[str, ...]

    @cached_property
    def catalog(self) -> dict[str, str]:
        """Map of entity id to display name, built on first access."""
        return {entity.entity_id: entity.name for entity in self.entities}

    def display_name(self, entity_id: str) -> str | None:
        return self.catalog.get(entity_id)


@dataclass(frozen=True)
class MetricSample:
    """A single performance sample returned by the metrics source.

    Attributes:
        entity_id: Entity the sample belongs to.
        metric_id: Counter identifier (e.g. cpu.usage.average).
        value: Sampled value. Strings carry status summaries.
        unit: Unit reported by the source (e.g. %, KBps, ms).
        interval_seconds: Sampling interval.
        timestamp: Capture time, timezone-aware.
        instance: Sub-object the sample refers to, empty for aggregates.
    """

    entity_id: str
    metric_id: str
    value: float | int | str
    unit: str
    interval_seconds: int
    timestamp: datetime
    instance: str = ""


@dataclass(frozen=True)
class LineProtocolRecord:
    """One line-protocol data point.

    Tags are kept as a tuple of pairs sorted by key so that records compare
    and hash by value.
    """

    measurement: str
    tags: tuple[tuple[str, str], ...]
    field_value: float | int | str
    timestamp_ns: int

    def tag(self, key: str) -> str | None:
        for name, value in self.tags:
            if name == key:
                return value
        return None


@dataclass(frozen=True)
class AdmissionDecision:
    """Outcome of the admission gate."""

    proceed: bool
    delay_seconds: int = 0


@dataclass(frozen=True)
class Credentials:
    """Sink username and password."""

    user: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class RunContext:
    """Read-only per-invocation settings.

    Use :meth:`create` to build one from user input; it validates the
    cardinality mode and the source server id.
    """

    source_server_id: str
    cardinality_mode: CardinalityMode = CardinalityMode.STANDARD
    jitter_max_seconds: int = 0
    output_mode: OutputMode = OutputMode.STREAM
    credentials: Credentials | None = None
    whitespace_escape: str = "\\ "

    @classmethod
    def create(
        cls,
        source_server_id: str | None,
        cardinality: str | CardinalityMode = CardinalityMode.STANDARD,
        jitter_max_seconds: int = 0,
        output_mode: str | OutputMode = OutputMode.STREAM,
        credentials: Credentials | None = None,
        whitespace_escape: str = "\\ ",
        ambient_server_id: str | None = None,
    ) -> RunContext:
        """Validate user input and build a RunContext.

        Args:
            source_server_id: Explicit source server id.
            cardinality: Cardinality mode name or value.
            jitter_max_seconds: Upper bound of the startup delay.
            output_mode: Output mode name or value.
            credentials: Optional sink credentials.
            whitespace_escape: Replacement for whitespace in names.
            ambient_server_id: Server of an already-open session, used when
                no explicit id is given.

        Raises:
            ConfigurationError: No server id and no ambient session.
            InvalidCardinalityError: Unknown cardinality mode.
        """
        server = source_server_id or ambient_server_id
        if not server:
            raise ConfigurationError(
                "A source server id is required when no session is open"
            )
        if jitter_max_seconds < 0:
            raise ConfigurationError("jitter_max_seconds must not be negative")
        try:
            mode = OutputMode(output_mode)
        except ValueError:
            raise ConfigurationError(f"Invalid output mode {output_mode!r}") from None
        return cls(
            source_server_id=server,
            cardinality_mode=CardinalityMode.parse(cardinality),
            jitter_max_seconds=jitter_max_seconds,
            output_mode=mode,
            credentials=credentials,
            whitespace_escape=whitespace_escape,
        )


@dataclass(frozen=True)
class WriteResult:
    """Outcome of a dispatch call.

    Attributes:
        records_written: Records accepted by the sink.
        requests: HTTP write calls that succeeded.
        attempts: HTTP calls issued, retries included.
    """

    records_written: int = 0
    requests: int = 0
    attempts: int = 0


@dataclass(frozen=True)
class CollectionResult:
    """Output of one collection run.

    Exactly one of ``lines``, ``path`` or ``samples`` is meaningful, depending
    on the run's output mode. ``skipped`` is True when admission control
    declined the run.
    """

    skipped: bool = False
    lines: tuple[str, ...] = ()
    samples: tuple[MetricSample, ...] = ()
    path: Path | None = None
    groups: int = 0
