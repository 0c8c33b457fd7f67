"""Port interfaces for the pipeline's external collaborators.

These protocols define the contracts that adapters must implement.
The core pipeline depends only on these interfaces, not concrete implementations.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Protocol, runtime_checkable

from perfpipe.core.models import (
    Credentials,
    EntityRef,
    LineProtocolRecord,
    MetricSample,
    Volume,
    WriteResult,
)


@runtime_checkable
class InventoryPort(Protocol):
    """Port for enumerating monitored entities and storage volumes.

    Examples: InMemoryInventory, SnapshotSource.
    """

    def hosts(self) -> Iterable[EntityRef]:
        """Return all hypervisor hosts."""
        ...

    def virtual_machines(self) -> Iterable[EntityRef]:
        """Return all virtual machines."""
        ...

    def volumes(self) -> Iterable[Volume]:
        """Return all storage volumes."""
        ...


@runtime_checkable
class MetricsSourcePort(Protocol):
    """Port for fetching performance samples.

    Examples: InMemoryMetricsSource, SnapshotSource.
    """

    def latest(
        self, entities: Sequence[EntityRef], metric_ids: Sequence[str]
    ) -> Iterable[MetricSample]:
        """Return the most recent sample of each metric for each entity."""
        ...

    def window(
        self,
        entities: Sequence[EntityRef],
        metric_ids: Sequence[str],
        start: datetime,
        end: datetime,
    ) -> Iterable[MetricSample]:
        """Return every sample captured in ``[start, end]``.

        Used for distributed storage, which has no real-time mode.
        """
        ...


@runtime_checkable
class CredentialProvider(Protocol):
    """Port for resolving sink credentials.

    Examples: InlineCredentialProvider, FileCredentialProvider,
    AmbientCredentialProvider.
    """

    def resolve(self) -> Credentials:
        """Return the credentials to authenticate with."""
        ...


@runtime_checkable
class RecordWriterPort(Protocol):
    """Port for shipping records to the time-series sink.

    Examples: InfluxWriter, InMemoryRecordWriter.
    """

    def write(self, records: Sequence[LineProtocolRecord]) -> WriteResult:
        """Write records in order, stopping at the first failure."""
        ...

    def write_lines(self, lines: Sequence[str]) -> WriteResult:
        """Write already-encoded line-protocol lines in order."""
        ...


@runtime_checkable
class SuppressionMarkerPort(Protocol):
    """Port for the cross-run suppression marker.

    Examples: FileSuppressionMarker, InMemorySuppressionMarker.
    """

    def modified_at(self) -> datetime | None:
        """Return the marker's last-modified time, None if absent."""
        ...

    def create(self) -> None:
        """Create the marker or refresh its modification time."""
        ...

    def remove(self) -> bool:
        """Remove the marker. Returns False if it did not exist."""
        ...
