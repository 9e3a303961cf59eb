"""Strategy data models — typed representations of indicator and scoring outputs."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Literal, Optional


class Direction(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class Confidence(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


@dataclass(frozen=True)
class MACDValue:
    macd: float
    signal: float
    histogram: float


@dataclass(frozen=True)
class BollingerValue:
    upper: float
    middle: float
    lower: float


@dataclass(frozen=True)
class StochasticValue:
    k: float
    d: float


@dataclass(frozen=True)
class ADXValue:
    adx: float
    plus_di: float
    minus_di: float


@dataclass(frozen=True)
class PriceAction:
    """Pattern of the last three candles."""

    pattern: Literal["uptrend", "downtrend", "consolidation", "neutral", "insufficient_data"]
    strength: float


@dataclass(frozen=True)
class VolumeTrend:
    """Latest volume relative to the recent mean."""

    trend: Literal["increasing", "decreasing", "stable"]
    strength: float
    ratio: float


@dataclass(frozen=True)
class IndicatorSnapshot:
    """All indicator readings for one candle window.

    ``fallbacks`` names every field whose value is a default because the
    window was too short for that indicator's lookback.
    """

    rsi: float
    macd: MACDValue
    ema9: float
    ema12: float
    ema20: float
    ema26: float
    ema50: float
    ema200: float
    sma20: float
    sma50: float
    bollinger: BollingerValue
    stochastic: StochasticValue
    atr: float
    adx: ADXValue
    price_action: PriceAction
    volume_trend: VolumeTrend
    volume: float
    current_price: float
    previous_price: float
    fallbacks: frozenset[str] = field(default_factory=frozenset)

    def is_fallback(self, name: str) -> bool:
        return name in self.fallbacks

    def to_dict(self) -> dict:
        data = asdict(self)
        data["fallbacks"] = sorted(self.fallbacks)
        return data


@dataclass(frozen=True)
class SubScore:
    """Raw points and reasoning fragments from one analysis phase."""

    score: float
    reasons: tuple[str, ...] = ()
    strength: float = 0.0


@dataclass(frozen=True)
class Evaluation:
    """Composite scoring result for one snapshot."""

    direction: Direction
    confidence: Optional[Confidence]
    score: float
    trend_strength: float
    reasoning: tuple[str, ...]
