"""Signal and alert records emitted by the pipeline."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pulse.models.timeframe import Timeframe
from pulse.strategy.models import Confidence, Direction, IndicatorSnapshot


@dataclass(frozen=True)
class Signal:
    """One pipeline result for an (instrument, timeframe) pair.

    ``confidence``, ``target_price`` and ``stop_loss`` are ``None`` for HOLD.
    """

    instrument: str
    instrument_type: str
    timeframe: Timeframe
    direction: Direction
    confidence: Optional[Confidence]
    price: float
    target_price: Optional[float]
    stop_loss: Optional[float]
    reasoning: tuple[str, ...]
    score: float
    trend_strength: float
    timestamp: datetime
    snapshot: IndicatorSnapshot

    @property
    def key(self) -> tuple[str, Timeframe]:
        return (self.instrument, self.timeframe)

    @property
    def is_actionable(self) -> bool:
        return self.direction is not Direction.HOLD

    def to_dict(self) -> dict:
        """Wire representation sent to subscribers and stored as history."""
        return {
            "pair": self.instrument,
            "pair_type": self.instrument_type,
            "timeframe": self.timeframe.value,
            "signal": self.direction.value,
            "confidence": self.confidence.value if self.confidence else None,
            "price": self.price,
            "target_price": self.target_price,
            "stop_loss": self.stop_loss,
            "reasoning": list(self.reasoning),
            "score": round(self.score, 4),
            "trend_strength": round(self.trend_strength, 4),
            "timestamp": self.timestamp.isoformat(),
            "indicators": self.snapshot.to_dict(),
        }


@dataclass(frozen=True)
class Alert:
    """High-confidence notification delivered to every subscriber."""

    signal: Signal
    message: str

    @classmethod
    def from_signal(cls, signal: Signal) -> "Alert":
        """Build an alert from a High confidence signal.

        Raises ``ValueError`` for any other confidence tier.
        """
        if signal.confidence is not Confidence.HIGH:
            raise ValueError(
                f"Alerts require High confidence, got {signal.confidence}"
            )
        return cls(
            signal=signal,
            message=(
                f"High confidence {signal.direction.value} signal for "
                f"{signal.instrument} at {signal.price}"
            ),
        )

    def to_dict(self) -> dict:
        return {
            "pair": self.signal.instrument,
            "signal": self.signal.direction.value,
            "price": self.signal.price,
            "confidence": self.signal.confidence.value,
            "timeframe": self.signal.timeframe.value,
            "message": self.message,
            "timestamp": self.signal.timestamp.isoformat(),
        }
