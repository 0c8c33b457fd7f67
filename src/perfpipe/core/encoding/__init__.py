"""Wire-format encoders."""

from perfpipe.core.encoding.line_protocol import (
    encode_line,
    encode_records,
    to_nanoseconds,
)

__all__ = [
    "encode_line",
    "encode_records",
    "to_nanoseconds",
]
