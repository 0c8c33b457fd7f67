"""Measurement naming for the three cardinality modes."""

from perfpipe.core.models import CardinalityMode


def measurement_name(
    mode: CardinalityMode,
    metric_id: str,
    display_name: str,
    instance: str = "",
) -> str:
    """Build the measurement name for a sample.

    Args:
        mode: Run-level cardinality mode.
        metric_id: Counter identifier (e.g. cpu.usage.average).
        display_name: Escaped entity display name.
        instance: Escaped instance, empty for aggregate samples.

    Returns:
        ``metric_id`` for STANDARD, ``metric_id.display_name`` for ADVANCED,
        and ``metric_id.display_name.instance`` for OVERKILL. OVERKILL without
        an instance falls back to the ADVANCED name.
    """
    if mode is CardinalityMode.STANDARD:
        return metric_id
    advanced = f"{metric_id}.{display_name}"
    if mode is CardinalityMode.OVERKILL and instance:
        return f"{advanced}.{instance}"
    return advanced
