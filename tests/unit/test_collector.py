"""Tests for the sample collector."""

import logging
from datetime import timedelta

import pytest

from perfpipe.adapters.storage import InMemoryMetricsSource
from perfpipe.core.collector import SampleCollector
from perfpipe.core.models import EntityGroup, EntityRef, ReportType, StorageClass
from tests.conftest import T0, FakeClock


def _group(storage_class=StorageClass.GENERIC, metric_set=None, entities=None):
    return EntityGroup(
        report_type=ReportType.VM,
        storage_class=storage_class,
        entities=entities or (EntityRef("vm-1", "db01"), EntityRef("vm-2", "web01")),
        metric_set=metric_set or ("cpu.usage.average", "mem.usage.average"),
    )


class FailingSource(InMemoryMetricsSource):
    def latest(self, entities, metric_ids):
        raise TimeoutError("query timed out")


class TestCollect:
    """Tests for SampleCollector.collect()."""

    @pytest.mark.core
    def test_one_batched_fetch_per_group(self, make_sample) -> None:
        source = InMemoryMetricsSource(
            [make_sample(entity_id="vm-1"), make_sample(entity_id="vm-2")]
        )

        samples = SampleCollector(source).collect(_group())

        assert len(samples) == 2
        assert source.calls == [
            (
                "latest",
                ("vm-1", "vm-2"),
                ("cpu.usage.average", "mem.usage.average"),
            )
        ]

    @pytest.mark.core
    def test_empty_group_skips_fetch(self) -> None:
        source = InMemoryMetricsSource()
        group = EntityGroup(ReportType.VM, StorageClass.GENERIC, (), ("cpu",))

        assert SampleCollector(source).collect(group) == []
        assert source.calls == []

    @pytest.mark.tra("Collector.FailureTolerance")
    def test_fetch_failure_yields_no_samples(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A failed query is logged and the group contributes nothing."""
        with caplog.at_level(logging.WARNING, logger="perfpipe.core.collector"):
            samples = SampleCollector(FailingSource()).collect(_group())

        assert samples == []
        assert "query timed out" in caplog.text

    @pytest.mark.core
    def test_failure_does_not_affect_next_group(self, make_sample) -> None:
        class FlakySource(InMemoryMetricsSource):
            failed = False

            def latest(self, entities, metric_ids):
                if not self.failed:
                    self.failed = True
                    raise ConnectionError("reset")
                return super().latest(entities, metric_ids)

        collector = SampleCollector(FlakySource([make_sample(entity_id="vm-1")]))

        assert collector.collect(_group()) == []
        assert len(collector.collect(_group())) == 1

    @pytest.mark.core
    def test_samples_ordered_by_entity_then_metric(self, make_sample) -> None:
        source = InMemoryMetricsSource(
            [
                make_sample(entity_id="vm-2", metric_id="mem.usage.average"),
                make_sample(entity_id="vm-1", metric_id="mem.usage.average"),
                make_sample(entity_id="vm-2", metric_id="cpu.usage.average"),
                make_sample(entity_id="vm-1", metric_id="cpu.usage.average"),
            ]
        )

        samples = SampleCollector(source).collect(_group())

        assert [(s.entity_id, s.metric_id) for s in samples] == [
            ("vm-1", "cpu.usage.average"),
            ("vm-1", "mem.usage.average"),
            ("vm-2", "cpu.usage.average"),
            ("vm-2", "mem.usage.average"),
        ]

    @pytest.mark.core
    def test_nfs_samples_without_instance_dropped(self, make_sample) -> None:
        metric = "datastore.read.average"
        source = InMemoryMetricsSource(
            [
                make_sample(entity_id="vm-1", metric_id=metric, instance=""),
                make_sample(entity_id="vm-1", metric_id=metric, instance="ds-2"),
            ]
        )
        group = _group(StorageClass.NETWORK_ATTACHED, metric_set=(metric,))

        samples = SampleCollector(source).collect(group)

        assert [s.instance for s in samples] == ["ds-2"]


class TestDistributedCollection:
    """Tests for distributed-storage sample collection."""

    @pytest.mark.core
    def test_window_fetch_keeps_newest_sample(self, make_sample) -> None:
        """The window query is reduced to the newest sample per key."""
        clock = FakeClock(T0 + timedelta(minutes=30))
        source = InMemoryMetricsSource(
            [
                make_sample(metric_id="vsan.iopsRead", value=1, timestamp=T0),
                make_sample(
                    metric_id="vsan.iopsRead",
                    value=2,
                    timestamp=T0 + timedelta(minutes=5),
                ),
            ]
        )
        group = _group(
            StorageClass.DISTRIBUTED,
            metric_set=("vsan.iopsRead",),
            entities=(EntityRef("vm-42", "myvm002"),),
        )

        (sample,) = SampleCollector(source, clock=clock).collect(group)

        assert sample.value == 2
        assert source.calls[0][0] == "window"

    @pytest.mark.core
    def test_interval_is_replaced(self, make_sample) -> None:
        source = InMemoryMetricsSource(
            [make_sample(metric_id="vsan.oio", interval_seconds=300)]
        )
        group = _group(
            StorageClass.DISTRIBUTED,
            metric_set=("vsan.oio",),
            entities=(EntityRef("vm-42", "myvm002"),),
        )

        (sample,) = SampleCollector(
            source, distributed_interval_seconds=20, clock=FakeClock()
        ).collect(group)

        assert sample.interval_seconds == 20

    @pytest.mark.core
    def test_samples_outside_window_ignored(self, make_sample) -> None:
        clock = FakeClock(T0 + timedelta(hours=2))
        source = InMemoryMetricsSource([make_sample(metric_id="vsan.oio")])
        group = _group(
            StorageClass.DISTRIBUTED,
            metric_set=("vsan.oio",),
            entities=(EntityRef("vm-42", "myvm002"),),
        )

        collector = SampleCollector(
            source, distributed_window=timedelta(minutes=59), clock=clock
        )

        assert collector.collect(group) == []
