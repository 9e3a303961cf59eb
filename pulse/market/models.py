"""Market data models — typed representations of exchange candles."""

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class Candle:
    """A single OHLCV bar. ``timestamp`` is the bucket open time in epoch ms."""

    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Candle":
        return cls(
            timestamp=int(data["timestamp"]),
            open=float(data["open"]),
            high=float(data["high"]),
            low=float(data["low"]),
            close=float(data["close"]),
            volume=float(data["volume"]),
        )


def is_strictly_increasing(candles: list[Candle]) -> bool:
    """``True`` when candle timestamps are strictly ascending."""
    return all(
        candles[i].timestamp > candles[i - 1].timestamp
        for i in range(1, len(candles))
    )
