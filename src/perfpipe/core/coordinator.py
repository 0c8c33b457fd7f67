"""Wires admission, classification, collection and encoding for one run."""

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from perfpipe.core.admission import AdmissionController, now_utc
from perfpipe.core.classifier import StorageClassifier, VolumeFilter
from perfpipe.core.collector import SampleCollector
from perfpipe.core.encoder import RecordEncoder
from perfpipe.core.encoding.line_protocol import encode_line
from perfpipe.core.exceptions import SinkAuthenticationError, SinkWriteError
from perfpipe.core.logs import log_exception, timed_stage
from perfpipe.core.models import (
    CollectionResult,
    EntityGroup,
    LineProtocolRecord,
    MetricSample,
    OutputMode,
    ReportScope,
    RunContext,
    WriteResult,
)
from perfpipe.core.ports import RecordWriterPort

logger = logging.getLogger(__name__)


@dataclass
class _Gathered:
    groups: list[EntityGroup] = field(default_factory=list)
    records: list[LineProtocolRecord] = field(default_factory=list)
    samples: list[MetricSample] = field(default_factory=list)


@dataclass(frozen=True)
class ShipResult:
    """Per-scope outcome of :meth:`RunCoordinator.ship`.

    Attributes:
        skipped: True when admission control declined the run.
        results: Write results of the scopes that were shipped.
        failures: Scopes whose dispatch failed, with the error.
    """

    skipped: bool = False
    results: dict[ReportScope, WriteResult] = field(default_factory=dict)
    failures: dict[ReportScope, SinkWriteError] = field(default_factory=dict)


class RunCoordinator:
    """Runs the collection pipeline for one invocation.

    Each stage returns its output; the coordinator owns the aggregate.
    """

    def __init__(
        self,
        admission: AdmissionController,
        classifier: StorageClassifier,
        collector: SampleCollector,
        encoder: RecordEncoder | None = None,
        output_dir: Path | str = ".",
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self._admission = admission
        self._classifier = classifier
        self._collector = collector
        self._encoder = encoder or RecordEncoder()
        self._output_dir = Path(output_dir)
        self._sleep = sleep
        self._clock = clock

    def collect(
        self,
        ctx: RunContext,
        scope: ReportScope = ReportScope.COMPUTE,
        filters: VolumeFilter | None = None,
    ) -> CollectionResult:
        """Run the collection half of the pipeline.

        Returns:
            A skipped result if admission control declines the run. Otherwise
            the encoded lines (STREAM), the artifact path (FILE) or the raw
            samples (PASSTHROUGH).
        """
        if not self._admit(ctx):
            return CollectionResult(skipped=True)

        passthrough = ctx.output_mode is OutputMode.PASSTHROUGH
        gathered = self._gather(ctx, scope, filters, encode=not passthrough)
        if passthrough:
            return CollectionResult(
                samples=tuple(gathered.samples), groups=len(gathered.groups)
            )

        lines = tuple(encode_line(record) for record in gathered.records)
        if ctx.output_mode is OutputMode.FILE:
            path = self._write_artifact(lines, ctx, scope)
            return CollectionResult(path=path, groups=len(gathered.groups))
        return CollectionResult(lines=lines, groups=len(gathered.groups))

    def ship(
        self,
        ctx: RunContext,
        writer: RecordWriterPort,
        scopes: Iterable[ReportScope] = (ReportScope.COMPUTE,),
        filters: VolumeFilter | None = None,
    ) -> ShipResult:
        """Collect and write each scope, dispatching scopes independently.

        A write the sink rejected with an HTTP status is logged and recorded;
        the next scope is still shipped. Authentication failures and
        transport failures, which carry no status, abort the run.
        """
        if not self._admit(ctx):
            return ShipResult(skipped=True)

        result = ShipResult()
        for scope in scopes:
            gathered = self._gather(ctx, scope, filters, encode=True)
            try:
                with timed_stage(logger, "write", scope=scope.value):
                    result.results[scope] = writer.write(gathered.records)
            except SinkAuthenticationError:
                raise
            except SinkWriteError as exc:
                if exc.status_code is None:
                    raise
                log_exception(
                    logger, f"Dispatch for {scope.value} failed", scope=scope.value
                )
                result.failures[scope] = exc
        return result

    def _admit(self, ctx: RunContext) -> bool:
        decision = self._admission.should_run(ctx.jitter_max_seconds)
        if not decision.proceed:
            logger.info("Run for %s skipped by suppression", ctx.source_server_id)
            return False
        if decision.delay_seconds:
            logger.info("Delaying start by %d seconds", decision.delay_seconds)
            self._sleep(decision.delay_seconds)
        return True

    def _gather(
        self,
        ctx: RunContext,
        scope: ReportScope,
        filters: VolumeFilter | None,
        encode: bool,
    ) -> _Gathered:
        gathered = _Gathered()
        stage = timed_stage(
            logger, "collect", scope=scope.value, vc=ctx.source_server_id
        )
        with stage:
            gathered.groups = self._classifier.classify(scope, filters)
            for group in gathered.groups:
                samples = self._collector.collect(group)
                if encode:
                    records = self._encoder.encode_all(samples, group, ctx)
                    gathered.records.extend(records)
                else:
                    gathered.samples.extend(samples)
        logger.info(
            "Collected %d groups, %d records, %d raw samples",
            len(gathered.groups),
            len(gathered.records),
            len(gathered.samples),
        )
        return gathered

    def _write_artifact(
        self, lines: Iterable[str], ctx: RunContext, scope: ReportScope
    ) -> Path:
        stamp = self._clock().strftime("%Y%m%dT%H%M%SZ")
        self._output_dir.mkdir(parents=True, exist_ok=True)
        name = f"{ctx.source_server_id}-{scope.value}-{stamp}.txt"
        path = self._output_dir / name
        with path.open("w", encoding="utf-8") as artifact:
            artifact.writelines(lines)
        logger.info("Wrote collection artifact %s", path)
        return path


def write_artifact(path: Path | str, writer: RecordWriterPort) -> WriteResult:
    """Write a file artifact produced by a FILE-mode collection."""
    with Path(path).open(encoding="utf-8") as artifact:
        lines = [line for line in artifact if line.strip()]
    logger.info("Writing %d lines from %s", len(lines), path)
    return writer.write_lines(lines)
