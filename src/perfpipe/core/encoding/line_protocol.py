"""Line-protocol encoder for records."""

import math
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

from perfpipe.core.exceptions import EncodingError
from perfpipe.core.models import LineProtocolRecord

FIELD_KEY = "value"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_nanoseconds(timestamp: datetime) -> int:
    """Convert a datetime to integer nanoseconds since the Unix epoch.

    Naive datetimes are taken to be UTC. The conversion is exact to the
    microsecond, unlike ``timestamp() * 1e9``.
    """
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return ((timestamp - _EPOCH) // timedelta(microseconds=1)) * 1000


def format_field_value(value: float | int | str) -> str:
    """Render a field value: strings double-quoted, numbers bare.

    Raises:
        EncodingError: For NaN or infinite floats.
    """
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    if isinstance(value, float) and not math.isfinite(value):
        raise EncodingError(f"Field value {value!r} is not finite")
    return repr(value) if isinstance(value, float) else str(value)


def encode_line(record: LineProtocolRecord) -> str:
    """Encode one record as a newline-terminated line-protocol string.

    Tag values are written verbatim, escaped whitespace included.
    """
    parts = [record.measurement]
    parts.extend(f"{key}={value}" for key, value in record.tags)
    series = ",".join(parts)
    field = f"{FIELD_KEY}={format_field_value(record.field_value)}"
    return f"{series} {field} {record.timestamp_ns}\n"


def encode_records(records: Iterable[LineProtocolRecord]) -> str:
    """Encode records to line protocol.

    Args:
        records: An iterable of LineProtocolRecord objects.

    Returns:
        Line-protocol string with one record per line.
        Empty string if no records.
    """
    return "".join(encode_line(record) for record in records)
