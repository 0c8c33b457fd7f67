"""BDD step definitions for the collection pipeline features."""

from dataclasses import dataclass, field
from datetime import timedelta

import pytest
from pytest_bdd import given, parsers, then, when

from perfpipe.adapters.storage import (
    InMemoryInventory,
    InMemoryMetricsSource,
    InMemorySuppressionMarker,
)
from perfpipe.core.admission import AdmissionController
from perfpipe.core.classifier import StorageClassifier
from perfpipe.core.collector import SampleCollector
from perfpipe.core.coordinator import RunCoordinator
from perfpipe.core.models import (
    CollectionResult,
    EntityRef,
    MetricSample,
    ReportScope,
    RunContext,
    Volume,
)
from tests.conftest import T0, FakeClock


class HostFailingSource(InMemoryMetricsSource):
    """Source whose queries for hosts raise."""

    def latest(self, entities, metric_ids):
        if any(e.entity_id.startswith("host-") for e in entities):
            raise TimeoutError("host query timed out")
        return super().latest(entities, metric_ids)


@dataclass
class PipelineScenarioContext:
    """Mutable state shared between the steps of one scenario."""

    clock: FakeClock = field(default_factory=FakeClock)
    server: str = ""
    vm_id: str = ""
    vm_name: str = ""
    vm_volumes: tuple[str, ...] = ()
    hosts: list[EntityRef] = field(default_factory=list)
    volumes: list[Volume] = field(default_factory=list)
    samples: list[MetricSample] = field(default_factory=list)
    failing_hosts: bool = False
    marker: InMemorySuppressionMarker | None = None
    result: CollectionResult | None = None

    def line(self) -> str:
        assert self.result is not None
        (line,) = self.result.lines
        return line


@pytest.fixture
def ctx() -> PipelineScenarioContext:
    context = PipelineScenarioContext()
    context.marker = InMemorySuppressionMarker(context.clock)
    return context


# === Given ===


@given(parsers.parse('a VM "{vm_id}" named "{name}" on server "{server}"'))
def step_vm(ctx: PipelineScenarioContext, vm_id: str, name: str, server: str) -> None:
    ctx.vm_id = vm_id
    ctx.vm_name = name
    ctx.server = server


@given(parsers.parse('a host "{host_id}" named "{name}"'))
def step_host(ctx: PipelineScenarioContext, host_id: str, name: str) -> None:
    ctx.hosts.append(EntityRef(host_id, name))


@given(parsers.parse('the VM resides on an "{volume_type}" volume "{volume_id}"'))
def step_volume(ctx: PipelineScenarioContext, volume_type: str, volume_id: str) -> None:
    ctx.volumes.append(Volume(volume_id, volume_id, volume_type))
    ctx.vm_volumes = (*ctx.vm_volumes, volume_id)


@given("the metrics source fails for host queries")
def step_failing_hosts(ctx: PipelineScenarioContext) -> None:
    ctx.failing_hosts = True


def _add_sample(
    ctx: PipelineScenarioContext,
    metric: str,
    value: float,
    unit: str,
    interval: int,
    instance: str = "",
) -> None:
    ctx.samples.append(
        MetricSample(
            entity_id=ctx.vm_id,
            metric_id=metric,
            value=value,
            unit=unit,
            interval_seconds=interval,
            timestamp=T0,
            instance=instance,
        )
    )


@given(
    parsers.parse(
        'a sample of "{metric}" with value {value:g} unit "{unit}" '
        "over {interval:d} seconds for instance \"{instance}\""
    )
)
def step_instance_sample(
    ctx: PipelineScenarioContext,
    metric: str,
    value: float,
    unit: str,
    interval: int,
    instance: str,
) -> None:
    _add_sample(ctx, metric, value, unit, interval, instance)


@given(
    parsers.parse(
        'a sample of "{metric}" with value {value:g} unit "{unit}" '
        "over {interval:d} seconds"
    )
)
def step_sample(
    ctx: PipelineScenarioContext, metric: str, value: float, unit: str, interval: int
) -> None:
    _add_sample(ctx, metric, value, unit, interval)


@given(parsers.parse("a suppression marker set {minutes:d} minutes ago"))
def step_marker(ctx: PipelineScenarioContext, minutes: int) -> None:
    assert ctx.marker is not None
    ctx.marker.create()
    ctx.clock.advance(minutes=minutes)


# === When ===


@when(
    parsers.parse('the {scope} scope is collected with "{cardinality}" cardinality')
)
def step_collect(ctx: PipelineScenarioContext, scope: str, cardinality: str) -> None:
    assert ctx.marker is not None
    inventory = InMemoryInventory(
        hosts=ctx.hosts,
        virtual_machines=[EntityRef(ctx.vm_id, ctx.vm_name, volume_ids=ctx.vm_volumes)],
        volumes=ctx.volumes,
    )
    source_type = HostFailingSource if ctx.failing_hosts else InMemoryMetricsSource
    # Samples are stamped at T0; keep them inside the distributed window.
    collector = SampleCollector(
        source_type(ctx.samples), clock=ctx.clock, distributed_window=timedelta(hours=1)
    )
    coordinator = RunCoordinator(
        admission=AdmissionController(ctx.marker, clock=ctx.clock),
        classifier=StorageClassifier(inventory),
        collector=collector,
        sleep=lambda seconds: None,
        clock=ctx.clock,
    )
    ctx.result = coordinator.collect(
        RunContext.create(ctx.server, cardinality=cardinality), ReportScope(scope)
    )


# === Then ===


@then(parsers.parse('the output is the line "{line}"'))
def step_output_line(ctx: PipelineScenarioContext, line: str) -> None:
    assert ctx.line() == line + "\n"


@then(parsers.parse('the measurement is "{measurement}"'))
def step_measurement(ctx: PipelineScenarioContext, measurement: str) -> None:
    assert ctx.line().split(",", 1)[0] == measurement


@then(parsers.parse("the field value is {value:g}"))
def step_field_value(ctx: PipelineScenarioContext, value: float) -> None:
    assert f" value={value!r} " in ctx.line()


@then(parsers.parse('the {key} tag is "{value}"'))
def step_tag(ctx: PipelineScenarioContext, key: str, value: str) -> None:
    tags = ctx.line().split(" ", 1)[0].split(",")[1:]
    assert f"{key}={value}" in tags


@then(parsers.parse("the output has {count:d} line"))
def step_line_count(ctx: PipelineScenarioContext, count: int) -> None:
    assert ctx.result is not None
    assert len(ctx.result.lines) == count


@then("the run is skipped")
def step_skipped(ctx: PipelineScenarioContext) -> None:
    assert ctx.result is not None
    assert ctx.result.skipped is True


@then("the run is not skipped")
def step_not_skipped(ctx: PipelineScenarioContext) -> None:
    assert ctx.result is not None
    assert ctx.result.skipped is False


@then("the suppression marker still exists")
def step_marker_exists(ctx: PipelineScenarioContext) -> None:
    assert ctx.marker is not None
    assert ctx.marker.modified_at() is not None


@then("the suppression marker is gone")
def step_marker_gone(ctx: PipelineScenarioContext) -> None:
    assert ctx.marker is not None
    assert ctx.marker.modified_at() is None
