"""Run configuration loaded from the environment and CLI overrides."""

import re
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from perfpipe.core.exceptions import InvalidCardinalityError
from perfpipe.core.models import CardinalityMode, OutputMode

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class Settings(BaseSettings):
    """Run configuration from ``PERFPIPE_*`` environment variables and ``.env``."""

    model_config = SettingsConfigDict(env_prefix="PERFPIPE_", env_file=".env")

    vc_server: str | None = Field(
        None, description="Source server id, used as the vc tag."
    )
    cardinality: str = Field(
        "standard", description="Cardinality mode: standard, advanced or overkill."
    )
    output_mode: str = Field("stream", description="stream, file or passthrough.")
    output_dir: Path = Field(
        Path("./output"), description="Directory for file-mode collection artifacts."
    )
    whitespace_escape: str = Field(
        "\\ ", description="Replacement for whitespace in names and tag values."
    )

    jitter_max_seconds: int = Field(
        0, ge=0, description="Upper bound of the random startup delay."
    )
    suppression_marker_path: Path = Field(
        Path("~/.perfpipe/suppress").expanduser(),
        description="File whose presence suppresses new runs.",
    )
    max_suppression_minutes: float = Field(
        20, ge=0, description="Age after which a suppression marker is ignored."
    )

    sink_scheme: str = Field("http", description="http or https.")
    sink_host: str = Field("localhost", description="Time-series database host.")
    sink_port: int = Field(8086, description="Time-series database port.")
    sink_database: str = Field("vsphere", description="Target database.")
    sink_verify_tls: bool = Field(True, description="Verify the sink TLS certificate.")
    sink_user: str | None = Field(None, description="Plaintext fallback user.")
    sink_password: str | None = Field(None, description="Plaintext fallback password.")
    allow_plaintext_credentials: bool = Field(
        False, description="Permit the plaintext fallback credentials."
    )
    credential_file: Path | None = Field(
        None, description="JSON credential file with user and password."
    )
    default_credential_file: Path = Field(
        Path("~/.perfpipe/credentials.json").expanduser(),
        description="Credential file used when none is given explicitly.",
    )

    throttle: bool = Field(
        False, description="Share two connections per write call, not one per record."
    )
    request_timeout_seconds: float = Field(10.0, gt=0, description="HTTP timeout.")
    retry_max_attempts: int = Field(3, ge=1, description="Attempts per record write.")
    retry_backoff_seconds: float = Field(
        1.0, ge=0, description="Delay before the first retry, doubled after each."
    )

    exclude_volumes: list[str] = Field(
        default_factory=list, description="Volume names excluded from I/O reporting."
    )
    exclude_volume_pattern: str | None = Field(
        None, description="Regex of volume names excluded from I/O reporting."
    )
    distributed_window_minutes: int = Field(
        59, gt=0, description="History window queried for distributed storage."
    )
    distributed_interval_seconds: int = Field(
        20, gt=0, description="Interval assumed for distributed storage samples."
    )

    log_level: str = Field("INFO", description="Logging level.")

    @field_validator("cardinality")
    def ensure_cardinality(cls, value: str) -> str:
        try:
            return CardinalityMode.parse(value).value
        except InvalidCardinalityError as exc:
            raise ValueError(str(exc)) from exc

    @field_validator("output_mode")
    def ensure_output_mode(cls, value: str) -> str:
        return OutputMode(value.strip().lower()).value

    @field_validator("sink_port")
    def ensure_port(cls, value: int) -> int:
        if not 1 <= value <= 65535:
            raise ValueError("sink_port must be between 1 and 65535")
        return value

    @field_validator("sink_scheme")
    def ensure_scheme(cls, value: str) -> str:
        value = value.lower()
        if value not in ("http", "https"):
            raise ValueError("sink_scheme must be http or https")
        return value

    @field_validator("log_level")
    def ensure_log_level(cls, value: str) -> str:
        value = value.strip().upper()
        if value not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return value

    @field_validator("exclude_volume_pattern")
    def ensure_pattern(cls, value: str | None) -> str | None:
        if value:
            try:
                re.compile(value)
            except re.error as exc:
                raise ValueError(f"Invalid exclusion pattern: {exc}") from exc
        return value
