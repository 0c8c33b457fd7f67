"""Collect virtualization performance samples and ship them as line protocol."""

from perfpipe.core.admission import AdmissionController
from perfpipe.core.classifier import StorageClassifier, VolumeFilter
from perfpipe.core.collector import SampleCollector
from perfpipe.core.coordinator import RunCoordinator, ShipResult, write_artifact
from perfpipe.core.encoder import RecordEncoder
from perfpipe.core.models import (
    CardinalityMode,
    CollectionResult,
    EntityGroup,
    EntityRef,
    LineProtocolRecord,
    MetricSample,
    OutputMode,
    ReportScope,
    ReportType,
    RunContext,
    StorageClass,
    Volume,
    WriteResult,
)

__version__ = "0.1.0"

__all__ = [
    "AdmissionController",
    "CardinalityMode",
    "CollectionResult",
    "EntityGroup",
    "EntityRef",
    "LineProtocolRecord",
    "MetricSample",
    "OutputMode",
    "RecordEncoder",
    "ReportScope",
    "ReportType",
    "RunContext",
    "RunCoordinator",
    "SampleCollector",
    "ShipResult",
    "StorageClass",
    "StorageClassifier",
    "Volume",
    "VolumeFilter",
    "WriteResult",
    "write_artifact",
]
