"""Entity enumeration and storage-class partitioning."""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from perfpipe.core.exceptions import EnumerationError
from perfpipe.core.metrics import (
    DEFAULT_CATALOG,
    STORAGE_PRECEDENCE,
    MetricCatalog,
    storage_class_for,
)
from perfpipe.core.models import (
    EntityGroup,
    EntityRef,
    ReportScope,
    ReportType,
    StorageClass,
    Volume,
)
from perfpipe.core.ports import InventoryPort

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VolumeFilter:
    """Volumes to leave out of I/O reporting.

    Attributes:
        names: Exact volume names to exclude.
        pattern: Regular expression; volumes whose name matches are excluded.
    """

    names: frozenset[str] = field(default_factory=frozenset)
    pattern: str | None = None

    def excludes(self, volume: Volume) -> bool:
        if volume.name in self.names:
            return True
        return bool(self.pattern) and re.search(self.pattern, volume.name) is not None


def _online_sorted(entities: Iterable[EntityRef]) -> tuple[EntityRef, ...]:
    return tuple(sorted((e for e in entities if e.online), key=lambda e: e.name))


class StorageClassifier:
    """Builds the entity groups for a run."""

    def __init__(
        self, inventory: InventoryPort, catalog: MetricCatalog = DEFAULT_CATALOG
    ) -> None:
        self._inventory = inventory
        self._catalog = catalog

    def classify(
        self, scope: ReportScope, filters: VolumeFilter | None = None
    ) -> list[EntityGroup]:
        """Enumerate entities and partition them into groups.

        Args:
            scope: COMPUTE yields a host group and a VM group. IO yields one VM
                group per storage class with at least one member.
            filters: Volumes to exclude before VMs are assigned to classes.
                Ignored for COMPUTE.

        Raises:
            EnumerationError: If the inventory cannot be read.
        """
        if scope is ReportScope.COMPUTE:
            return self._compute_groups()
        return self._storage_groups(filters or VolumeFilter())

    def _compute_groups(self) -> list[EntityGroup]:
        try:
            hosts = _online_sorted(self._inventory.hosts())
            vms = _online_sorted(self._inventory.virtual_machines())
        except Exception as exc:
            raise EnumerationError(f"Entity enumeration failed: {exc}") from exc
        return [
            EntityGroup(
                report_type=ReportType.VMHOST,
                storage_class=StorageClass.GENERIC,
                entities=hosts,
                metric_set=self._catalog.compute_metrics(ReportType.VMHOST),
            ),
            EntityGroup(
                report_type=ReportType.VM,
                storage_class=StorageClass.GENERIC,
                entities=vms,
                metric_set=self._catalog.compute_metrics(ReportType.VM),
            ),
        ]

    def _storage_groups(self, filters: VolumeFilter) -> list[EntityGroup]:
        try:
            vms = _online_sorted(self._inventory.virtual_machines())
            volumes = list(self._inventory.volumes())
        except Exception as exc:
            raise EnumerationError(f"Entity enumeration failed: {exc}") from exc

        volume_classes: dict[str, StorageClass] = {}
        for volume in volumes:
            if filters.excludes(volume):
                logger.debug("Excluding volume %s", volume.name)
                continue
            storage_class = storage_class_for(volume.volume_type)
            if storage_class is not None:
                volume_classes[volume.volume_id] = storage_class

        members: dict[StorageClass, list[EntityRef]] = {
            storage_class: [] for storage_class in STORAGE_PRECEDENCE
        }
        for vm in vms:
            storage_class = self._assign(vm, volume_classes)
            if storage_class is None:
                logger.debug("No reportable volume for %s", vm.name)
                continue
            members[storage_class].append(vm)

        return [
            EntityGroup(
                report_type=ReportType.VM,
                storage_class=storage_class,
                entities=tuple(members[storage_class]),
                metric_set=self._catalog.storage_metrics(storage_class),
            )
            for storage_class in STORAGE_PRECEDENCE
            if members[storage_class]
        ]

    @staticmethod
    def _assign(
        vm: EntityRef, volume_classes: dict[str, StorageClass]
    ) -> StorageClass | None:
        classes = {volume_classes[v] for v in vm.volume_ids if v in volume_classes}
        for storage_class in STORAGE_PRECEDENCE:
            if storage_class in classes:
                return storage_class
        return None
