"""Turns raw metric samples into line-protocol records."""

import logging
import math
import re
from collections.abc import Iterable

from perfpipe.core.cardinality import measurement_name
from perfpipe.core.encoding.line_protocol import to_nanoseconds
from perfpipe.core.exceptions import EncodingError, NameResolutionError
from perfpipe.core.metrics import (
    CONTENTION_UNIT,
    contention_percent,
    is_contention_counter,
)
from perfpipe.core.models import (
    EntityGroup,
    LineProtocolRecord,
    MetricSample,
    RunContext,
    StorageClass,
)

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s")


def escape_whitespace(value: str, escape: str = "\\ ") -> str:
    """Replace every whitespace character with ``escape``.

    Runs of whitespace are not collapsed, so ``"my  vm"`` keeps both spaces.
    """
    return _WHITESPACE.sub(lambda _match: escape, value)


class RecordEncoder:
    """Encodes samples for one run.

    The encoder holds no state between calls: ``encode`` is a pure function of
    the sample, the group and the run context.
    """

    def encode(
        self, sample: MetricSample, group: EntityGroup, ctx: RunContext
    ) -> LineProtocolRecord:
        """Encode a single sample.

        Raises:
            NameResolutionError: The entity is not part of the group.
            DerivedMetricError: A contention counter cannot be converted.
            EncodingError: The value is NaN or infinite.
        """
        display_name = group.display_name(sample.entity_id)
        if display_name is None:
            raise NameResolutionError(
                f"Entity {sample.entity_id} is not in the "
                f"{group.report_type.value} catalog"
            )
        host = escape_whitespace(display_name, ctx.whitespace_escape)
        instance = escape_whitespace(sample.instance, ctx.whitespace_escape)

        value = sample.value
        unit = sample.unit
        if is_contention_counter(sample.metric_id):
            value = contention_percent(sample.value, sample.interval_seconds)
            unit = CONTENTION_UNIT
        if isinstance(value, float) and not math.isfinite(value):
            raise EncodingError(
                f"Value {value!r} of {sample.metric_id} for {sample.entity_id} "
                "is not finite"
            )

        tags: dict[str, str] = {
            "host": host,
            "interval": str(sample.interval_seconds),
            "type": group.report_type.value,
            "unit": unit,
            "vc": ctx.source_server_id,
        }
        if instance:
            tags["instance"] = instance
        if group.storage_class is not StorageClass.GENERIC:
            tags["disktype"] = group.storage_class.value

        return LineProtocolRecord(
            measurement=measurement_name(
                ctx.cardinality_mode, sample.metric_id, host, instance
            ),
            tags=tuple(sorted(tags.items())),
            field_value=value,
            timestamp_ns=to_nanoseconds(sample.timestamp),
        )

    def encode_all(
        self,
        samples: Iterable[MetricSample],
        group: EntityGroup,
        ctx: RunContext,
    ) -> list[LineProtocolRecord]:
        """Encode samples in order, skipping those that cannot be encoded.

        Each skipped sample is logged as a warning; the run continues with a
        smaller output.
        """
        records: list[LineProtocolRecord] = []
        for sample in samples:
            try:
                records.append(self.encode(sample, group, ctx))
            except EncodingError as exc:
                logger.warning(
                    "Skipping sample %s for %s: %s",
                    sample.metric_id,
                    sample.entity_id,
                    exc,
                    extra={"vc": ctx.source_server_id},
                )
        return records
