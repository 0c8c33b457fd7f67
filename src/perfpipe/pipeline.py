"""Builds pipeline components from Settings."""

from datetime import timedelta

import httpx

from perfpipe.adapters.credentials import resolve_credential_provider
from perfpipe.adapters.sink.http import InfluxWriter, SinkConfig
from perfpipe.adapters.sink.retry import RetryPolicy
from perfpipe.adapters.storage.suppression import FileSuppressionMarker
from perfpipe.config import Settings
from perfpipe.core.admission import AdmissionController
from perfpipe.core.classifier import StorageClassifier, VolumeFilter
from perfpipe.core.collector import SampleCollector
from perfpipe.core.coordinator import RunCoordinator
from perfpipe.core.encoder import RecordEncoder
from perfpipe.core.models import Credentials, RunContext
from perfpipe.core.ports import InventoryPort, MetricsSourcePort


def build_admission(settings: Settings) -> AdmissionController:
    return AdmissionController(
        FileSuppressionMarker(settings.suppression_marker_path),
        max_suppression_minutes=settings.max_suppression_minutes,
        jitter_max_seconds=settings.jitter_max_seconds,
    )


def build_run_context(
    settings: Settings, ambient_server_id: str | None = None
) -> RunContext:
    return RunContext.create(
        source_server_id=settings.vc_server,
        cardinality=settings.cardinality,
        jitter_max_seconds=settings.jitter_max_seconds,
        output_mode=settings.output_mode,
        whitespace_escape=settings.whitespace_escape,
        ambient_server_id=ambient_server_id,
    )


def build_volume_filter(settings: Settings) -> VolumeFilter:
    return VolumeFilter(
        names=frozenset(settings.exclude_volumes),
        pattern=settings.exclude_volume_pattern,
    )


def build_coordinator(
    settings: Settings,
    inventory: InventoryPort,
    source: MetricsSourcePort,
) -> RunCoordinator:
    collector = SampleCollector(
        source,
        distributed_window=timedelta(minutes=settings.distributed_window_minutes),
        distributed_interval_seconds=settings.distributed_interval_seconds,
    )
    return RunCoordinator(
        admission=build_admission(settings),
        classifier=StorageClassifier(inventory),
        collector=collector,
        encoder=RecordEncoder(),
        output_dir=settings.output_dir,
    )


def build_writer(
    settings: Settings,
    user: str | None = None,
    password: str | None = None,
    transport: httpx.BaseTransport | None = None,
) -> InfluxWriter:
    """Build the sink writer, resolving credentials by precedence."""
    plaintext = None
    if settings.sink_user:
        plaintext = Credentials(settings.sink_user, settings.sink_password or "")
    credentials = resolve_credential_provider(
        credential_file=settings.credential_file,
        default_credential_file=settings.default_credential_file,
        user=user,
        password=password,
        plaintext=plaintext,
        allow_plaintext=settings.allow_plaintext_credentials,
    )
    sink = SinkConfig(
        host=settings.sink_host,
        database=settings.sink_database,
        port=settings.sink_port,
        scheme=settings.sink_scheme,
        timeout_seconds=settings.request_timeout_seconds,
        verify=settings.sink_verify_tls,
    )
    retry = RetryPolicy(
        max_attempts=settings.retry_max_attempts,
        backoff_seconds=settings.retry_backoff_seconds,
    )
    return InfluxWriter(
        sink, credentials, retry=retry, throttle=settings.throttle, transport=transport
    )
