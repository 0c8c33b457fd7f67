"""Sink adapters implementing RecordWriterPort."""

from perfpipe.adapters.sink.http import InfluxWriter, SinkConfig
from perfpipe.adapters.sink.retry import NO_RETRY, RetryPolicy

__all__ = [
    "NO_RETRY",
    "InfluxWriter",
    "RetryPolicy",
    "SinkConfig",
]
