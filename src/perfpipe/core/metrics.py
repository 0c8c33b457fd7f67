"""Metric vocabularies and derived-metric helpers."""

from dataclasses import dataclass

from perfpipe.core.exceptions import DerivedMetricError
from perfpipe.core.models import ReportType, StorageClass

HOST_METRICS: tuple[str, ...] = (
    "cpu.usage.average",
    "cpu.usagemhz.average",
    "cpu.ready.summation",
    "mem.usage.average",
    "mem.active.average",
    "mem.consumed.average",
    "mem.vmmemctl.average",
    "net.usage.average",
    "net.received.average",
    "net.transmitted.average",
    "disk.usage.average",
    "disk.maxTotalLatency.latest",
    "sys.uptime.latest",
)

VM_METRICS: tuple[str, ...] = (
    "cpu.usage.average",
    "cpu.usagemhz.average",
    "cpu.ready.summation",
    "cpu.costop.summation",
    "cpu.latency.average",
    "mem.usage.average",
    "mem.active.average",
    "mem.consumed.average",
    "mem.swapped.average",
    "net.usage.average",
    "disk.usage.average",
    "disk.maxTotalLatency.latest",
)

# Per virtual disk counters of locally or SAN attached volumes.
BLOCK_METRICS: tuple[str, ...] = (
    "virtualDisk.read.average",
    "virtualDisk.write.average",
    "virtualDisk.numberReadAveraged.average",
    "virtualDisk.numberWriteAveraged.average",
    "virtualDisk.totalReadLatency.average",
    "virtualDisk.totalWriteLatency.average",
)

# Only meaningful per datastore instance.
NFS_METRICS: tuple[str, ...] = (
    "datastore.read.average",
    "datastore.write.average",
    "datastore.numberReadAveraged.average",
    "datastore.numberWriteAveraged.average",
    "datastore.totalReadLatency.average",
    "datastore.totalWriteLatency.average",
)

VSAN_METRICS: tuple[str, ...] = (
    "vsan.iopsRead",
    "vsan.iopsWrite",
    "vsan.throughputRead",
    "vsan.throughputWrite",
    "vsan.latencyRead",
    "vsan.latencyWrite",
    "vsan.oio",
    "vsan.congestion",
)

CONTENTION_COUNTERS = frozenset({"cpu.ready.summation", "cpu.costop.summation"})

CONTENTION_UNIT = "%"

# Raw volume type -> storage class, compared case-insensitively.
VOLUME_TYPES: dict[str, StorageClass] = {
    "vmfs": StorageClass.BLOCK,
    "vvol": StorageClass.BLOCK,
    "nfs": StorageClass.NETWORK_ATTACHED,
    "nfs41": StorageClass.NETWORK_ATTACHED,
    "vsan": StorageClass.DISTRIBUTED,
}

# Order in which a VM's volumes decide its storage class.
STORAGE_PRECEDENCE: tuple[StorageClass, ...] = (
    StorageClass.BLOCK,
    StorageClass.NETWORK_ATTACHED,
    StorageClass.DISTRIBUTED,
)


@dataclass(frozen=True)
class MetricCatalog:
    """Metric sets requested per report type and storage class."""

    hosts: tuple[str, ...] = HOST_METRICS
    vms: tuple[str, ...] = VM_METRICS
    block: tuple[str, ...] = BLOCK_METRICS
    nfs: tuple[str, ...] = NFS_METRICS
    vsan: tuple[str, ...] = VSAN_METRICS

    def compute_metrics(self, report_type: ReportType) -> tuple[str, ...]:
        return self.hosts if report_type is ReportType.VMHOST else self.vms

    def storage_metrics(self, storage_class: StorageClass) -> tuple[str, ...]:
        if storage_class is StorageClass.BLOCK:
            return self.block
        if storage_class is StorageClass.NETWORK_ATTACHED:
            return self.nfs
        if storage_class is StorageClass.DISTRIBUTED:
            return self.vsan
        raise ValueError(f"No storage metric set for {storage_class.value}")


DEFAULT_CATALOG = MetricCatalog()


def storage_class_for(volume_type: str) -> StorageClass | None:
    """Map a raw volume type to its storage class, None if unsupported."""
    return VOLUME_TYPES.get(volume_type.strip().lower())


def is_contention_counter(metric_id: str) -> bool:
    return metric_id in CONTENTION_COUNTERS


def contention_percent(raw_value: float, interval_seconds: int) -> float:
    """Convert cumulative milliseconds over an interval to a percentage.

    Args:
        raw_value: Milliseconds spent waiting during the interval.
        interval_seconds: Length of the sampling interval.

    Returns:
        ``round(raw_value / (interval_seconds * 1000) * 100, 2)``.

    Raises:
        DerivedMetricError: If the interval is not positive or the value is
            not numeric.
    """
    if isinstance(raw_value, (str, bool)):
        raise DerivedMetricError(f"Contention value {raw_value!r} is not numeric")
    if interval_seconds <= 0:
        raise DerivedMetricError(
            f"Cannot derive a percentage over interval {interval_seconds}s"
        )
    return round(raw_value / (interval_seconds * 1000) * 100, 2)
