"""HTTP write adapter for the time-series sink.

Posts line protocol to ``{scheme}://{host}:{port}/write?db={database}``
with a Basic-Auth header, one record per request.
"""

import base64
import logging
import re
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import httpx

from perfpipe.adapters.sink.retry import RetryPolicy
from perfpipe.core.encoding.line_protocol import encode_line
from perfpipe.core.exceptions import SinkAuthenticationError, SinkWriteError
from perfpipe.core.models import Credentials, LineProtocolRecord, WriteResult
from perfpipe.core.ports import CredentialProvider

logger = logging.getLogger(__name__)

# Space or comma not preceded by a backslash.
_SERIES_END = re.compile(r"(?<!\\)[ ,]")

DEFAULT_SINK_PORT = 8086

# Connection cap for the sink endpoint when throttling is enabled.
THROTTLED_MAX_CONNECTIONS = 2


@dataclass(frozen=True)
class SinkConfig:
    """Where and how to reach the sink."""

    host: str
    database: str
    port: int = DEFAULT_SINK_PORT
    scheme: str = "http"
    timeout_seconds: float = 10.0
    verify: bool = True

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"

    @property
    def write_url(self) -> str:
        return f"{self.base_url}/write?db={self.database}"


def basic_auth_header(credentials: Credentials) -> str:
    """Build the ``Authorization`` header value for Basic auth."""
    token = f"{credentials.user}:{credentials.password}".encode()
    return "Basic " + base64.b64encode(token).decode("ascii")


def _line_context(line: str) -> str:
    """Measurement of an encoded line, for log messages."""
    return _SERIES_END.split(line, maxsplit=1)[0]


def _retryable(exc: Exception) -> bool:
    if isinstance(exc, SinkAuthenticationError):
        return False
    if isinstance(exc, SinkWriteError):
        return exc.status_code is None or exc.status_code >= 500
    return False


class InfluxWriter:
    """Ships records to the sink over HTTP.

    The Basic-Auth header is built once per writer. Without throttling, a new
    connection group is opened and closed for every record. With throttling,
    one client limited to two connections serves a whole ``write`` call and
    is closed when it returns.

    A failed record aborts the rest of the call: the error is logged with the
    record's measurement and host, then raised.
    """

    def __init__(
        self,
        sink: SinkConfig,
        credentials: CredentialProvider,
        retry: RetryPolicy | None = None,
        throttle: bool = False,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._sink = sink
        self._retry = retry or RetryPolicy()
        self._throttle = throttle
        self._transport = transport
        self._sleep = sleep
        self._headers = {
            "Authorization": basic_auth_header(credentials.resolve()),
            "Content-Type": "text/plain; charset=utf-8",
        }

    @property
    def sink(self) -> SinkConfig:
        return self._sink

    def write(self, records: Sequence[LineProtocolRecord]) -> WriteResult:
        """Write records one request at a time.

        Raises:
            SinkAuthenticationError: The sink rejected the credentials.
            SinkWriteError: A record could not be written after retries.
        """
        items = [
            (encode_line(r), r.measurement, r.tag("host") or "") for r in records
        ]
        return self._write_items(items)

    def write_lines(self, lines: Sequence[str]) -> WriteResult:
        """Write pre-encoded lines one request at a time."""
        items = [
            (line if line.endswith("\n") else line + "\n", _line_context(line), "")
            for line in lines
        ]
        return self._write_items(items)

    def _write_items(self, items: list[tuple[str, str, str]]) -> WriteResult:
        written = 0
        attempts = 0
        shared = self._open_client() if self._throttle else None
        try:
            for body, measurement, host in items:
                attempts += self._send(body, measurement, host, shared)
                written += 1
        finally:
            if shared is not None:
                shared.close()
        logger.debug("Wrote %d records in %d attempts", written, attempts)
        return WriteResult(records_written=written, requests=written, attempts=attempts)

    def _send(
        self, body: str, measurement: str, host: str, shared: httpx.Client | None
    ) -> int:
        def attempt() -> None:
            if shared is not None:
                self._post(shared, body, measurement)
                return
            with self._open_client() as client:
                self._post(client, body, measurement)

        try:
            _, attempts = self._retry.call(attempt, _retryable, self._sleep)
        except SinkWriteError as exc:
            logger.warning(
                "Write of %s failed: %s",
                measurement,
                exc,
                extra={"measurement": measurement, "host": host},
            )
            raise
        return attempts

    def _post(self, client: httpx.Client, body: str, measurement: str) -> None:
        try:
            response = client.post(
                "/write",
                params={"db": self._sink.database},
                content=body.encode("utf-8"),
            )
        except httpx.HTTPError as exc:
            raise SinkWriteError(
                f"Transport error writing to {self._sink.base_url}: {exc}",
                measurement=measurement,
            ) from exc
        if response.status_code in (401, 403):
            raise SinkAuthenticationError(
                f"Sink rejected credentials (HTTP {response.status_code})",
                measurement=measurement,
                status_code=response.status_code,
            )
        if not response.is_success:
            raise SinkWriteError(
                f"Sink returned HTTP {response.status_code}: {response.text.strip()}",
                measurement=measurement,
                status_code=response.status_code,
            )

    def _open_client(self) -> httpx.Client:
        limits = (
            httpx.Limits(max_connections=THROTTLED_MAX_CONNECTIONS)
            if self._throttle
            else httpx.Limits(max_connections=1, max_keepalive_connections=0)
        )
        return httpx.Client(
            base_url=self._sink.base_url,
            headers=self._headers,
            timeout=self._sink.timeout_seconds,
            limits=limits,
            transport=self._transport,
            verify=self._sink.verify,
        )
