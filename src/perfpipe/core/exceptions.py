"""Exception hierarchy for the collection pipeline."""


class PerfPipeError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(PerfPipeError):
    """Invalid or missing run configuration."""


class InvalidCardinalityError(ConfigurationError):
    """Unknown cardinality mode."""


class EnumerationError(PerfPipeError):
    """The base entity catalog could not be enumerated."""


class EncodingError(PerfPipeError):
    """A sample could not be turned into a line-protocol record."""


class NameResolutionError(EncodingError):
    """A sample refers to an entity missing from its group."""


class DerivedMetricError(EncodingError):
    """A derived metric could not be computed from the raw sample."""


class SuppressionError(PerfPipeError):
    """The suppression marker could not be written or removed."""


class SuppressionMarkerMissingError(SuppressionError):
    """resume() was called while no suppression marker exists."""


class CredentialError(PerfPipeError):
    """Sink credentials could not be resolved."""


class SinkWriteError(PerfPipeError):
    """A record could not be written to the sink."""

    def __init__(
        self, message: str, measurement: str = "", status_code: int | None = None
    ) -> None:
        super().__init__(message)
        self.measurement = measurement
        self.status_code = status_code


class SinkAuthenticationError(SinkWriteError):
    """The sink rejected the credentials."""
