"""Timeframe enumeration with an explicit exchange-interval table.

Timeframe strings arrive from config, the HTTP API and subscriber messages.
They are parsed once at the boundary; unknown values raise ``ValueError``
instead of silently falling back to a default.
"""

from enum import Enum


class Timeframe(str, Enum):
    """Candle bucket sizes supported by the pipeline."""

    M1 = "1m"
    M3 = "3m"
    M5 = "5m"
    M15 = "15m"
    M30 = "30m"
    H1 = "1h"
    H2 = "2h"
    H4 = "4h"
    H6 = "6h"
    H8 = "8h"
    H12 = "12h"
    D1 = "1d"
    D3 = "3d"
    W1 = "1w"

    @classmethod
    def parse(cls, value: "str | Timeframe") -> "Timeframe":
        """Return the ``Timeframe`` for *value*.

        Raises ``ValueError`` naming the accepted values when *value* is
        not a known timeframe.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip())
        except ValueError:
            accepted = ", ".join(tf.value for tf in cls)
            raise ValueError(
                f"Unknown timeframe '{value}'. Accepted: {accepted}"
            ) from None

    @property
    def seconds(self) -> int:
        """Bucket length in seconds."""
        return _DURATION_SECONDS[self]

    @property
    def binance_interval(self) -> str:
        """Interval code understood by the exchange klines endpoint."""
        return _BINANCE_INTERVALS[self]


_MINUTE = 60
_HOUR = 60 * _MINUTE
_DAY = 24 * _HOUR

_DURATION_SECONDS: dict[Timeframe, int] = {
    Timeframe.M1: _MINUTE,
    Timeframe.M3: 3 * _MINUTE,
    Timeframe.M5: 5 * _MINUTE,
    Timeframe.M15: 15 * _MINUTE,
    Timeframe.M30: 30 * _MINUTE,
    Timeframe.H1: _HOUR,
    Timeframe.H2: 2 * _HOUR,
    Timeframe.H4: 4 * _HOUR,
    Timeframe.H6: 6 * _HOUR,
    Timeframe.H8: 8 * _HOUR,
    Timeframe.H12: 12 * _HOUR,
    Timeframe.D1: _DAY,
    Timeframe.D3: 3 * _DAY,
    Timeframe.W1: 7 * _DAY,
}

# Binance happens to use the same codes; the table keeps the mapping explicit
# so another exchange vocabulary only touches this dict.
_BINANCE_INTERVALS: dict[Timeframe, str] = {
    Timeframe.M1: "1m",
    Timeframe.M3: "3m",
    Timeframe.M5: "5m",
    Timeframe.M15: "15m",
    Timeframe.M30: "30m",
    Timeframe.H1: "1h",
    Timeframe.H2: "2h",
    Timeframe.H4: "4h",
    Timeframe.H6: "6h",
    Timeframe.H8: "8h",
    Timeframe.H12: "12h",
    Timeframe.D1: "1d",
    Timeframe.D3: "3d",
    Timeframe.W1: "1w",
}

DEFAULT_TIMEFRAMES: tuple[Timeframe, ...] = (
    Timeframe.M5,
    Timeframe.M15,
    Timeframe.M30,
    Timeframe.H1,
)
