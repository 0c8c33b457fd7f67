"""Source adapters implementing InventoryPort and MetricsSourcePort."""

from perfpipe.adapters.source.snapshot import SnapshotSource

__all__ = ["SnapshotSource"]
