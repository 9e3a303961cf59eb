"""Project exception types."""


class PulseError(Exception):
    """Base class for pipeline errors."""


class UpstreamDataError(PulseError):
    """The exchange returned no usable candles (network, status, payload)."""


class IndicatorComputationError(PulseError):
    """An indicator produced a non-finite value."""
