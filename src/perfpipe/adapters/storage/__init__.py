"""Storage adapters implementing core ports."""

from perfpipe.adapters.storage.in_memory import (
    InMemoryInventory,
    InMemoryMetricsSource,
    InMemoryRecordWriter,
    InMemorySuppressionMarker,
)
from perfpipe.adapters.storage.suppression import FileSuppressionMarker

__all__ = [
    "FileSuppressionMarker",
    "InMemoryInventory",
    "InMemoryMetricsSource",
    "InMemoryRecordWriter",
    "InMemorySuppressionMarker",
]
