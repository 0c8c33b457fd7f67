"""Shared test fixtures for all test modules."""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import pytest

from perfpipe.core.models import (
    EntityGroup,
    EntityRef,
    MetricSample,
    ReportType,
    RunContext,
    StorageClass,
)

# 2026-01-01T00:00:00Z
T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)
T0_NS = 1767225600000000000


class FakeClock:
    """Settable clock for admission and collector tests."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    """Clock fixed at 2026-01-01T00:00:00Z."""
    return FakeClock()


@pytest.fixture
def make_sample() -> Callable[..., MetricSample]:
    """Factory fixture for MetricSample with sensible defaults.

    Defaults match the vm-42 / cpu.usage.average example used throughout.
    """

    def _sample(**overrides: object) -> MetricSample:
        fields: dict[str, object] = {
            "entity_id": "vm-42",
            "metric_id": "cpu.usage.average",
            "value": 4.25,
            "unit": "%",
            "interval_seconds": 20,
            "timestamp": T0,
            "instance": "",
        }
        fields.update(overrides)
        return MetricSample(**fields)  # type: ignore[arg-type]

    return _sample


@pytest.fixture
def vm_group() -> EntityGroup:
    """Compute group holding a single VM vm-42 named myvm002."""
    return EntityGroup(
        report_type=ReportType.VM,
        storage_class=StorageClass.GENERIC,
        entities=(EntityRef("vm-42", "myvm002"),),
        metric_set=("cpu.usage.average", "cpu.ready.summation"),
    )


@pytest.fixture
def run_context() -> RunContext:
    """Standard-cardinality run against vc01."""
    return RunContext.create("vc01")
