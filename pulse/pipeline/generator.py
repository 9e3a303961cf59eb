"""Signal generator — the fetch → indicators → score → risk → dedup chain.

``generate_signal`` is the on-demand entry point used by the scheduler and
the HTTP API. It returns ``None`` for every "no signal" outcome; the cause
is only visible in the logs.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from pulse.errors import IndicatorComputationError
from pulse.market.instruments import instrument_type
from pulse.market.models import Candle
from pulse.market.provider import MarketDataProvider
from pulse.models.signal import Signal
from pulse.models.timeframe import Timeframe
from pulse.pipeline.dedup import DeduplicationGate
from pulse.risk.targets import calculate_risk_levels
from pulse.strategy.scoring import evaluate_snapshot
from pulse.strategy.snapshot import MIN_CANDLES, compute_snapshot

logger = logging.getLogger("pulse.pipeline")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_signal(
    instrument: str,
    timeframe: Timeframe,
    candles: list[Candle],
    timestamp: datetime,
) -> Optional[Signal]:
    """Run indicators, scoring and risk on one window.

    Pure with respect to its inputs. Returns ``None`` when the window is
    shorter than the signal minimum.

    Raises:
        IndicatorComputationError: if an indicator is not finite.
    """
    snapshot = compute_snapshot(candles)
    if snapshot is None:
        return None

    evaluation = evaluate_snapshot(snapshot)
    levels = calculate_risk_levels(evaluation.direction, snapshot.current_price, snapshot.atr)

    return Signal(
        instrument=instrument,
        instrument_type=instrument_type(instrument),
        timeframe=timeframe,
        direction=evaluation.direction,
        confidence=evaluation.confidence,
        price=snapshot.current_price,
        target_price=levels.target_price if levels else None,
        stop_loss=levels.stop_loss if levels else None,
        reasoning=evaluation.reasoning,
        score=evaluation.score,
        trend_strength=evaluation.trend_strength,
        timestamp=timestamp,
        snapshot=snapshot,
    )


class SignalGenerator:
    """Owns one provider and one dedup gate; drives the pipeline per key.

    Args:
        provider: Market data source.
        gate: Deduplication state for emitted signals.
        candle_limit: Window length requested from the provider.
        clock: Returns the current aware UTC datetime.
    """

    def __init__(
        self,
        provider: MarketDataProvider,
        gate: Optional[DeduplicationGate] = None,
        candle_limit: int = 250,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._provider = provider
        self._gate = gate or DeduplicationGate()
        self._candle_limit = max(candle_limit, MIN_CANDLES)
        self._clock = clock
        self._latest: dict[tuple[str, Timeframe], Signal] = {}
        self._latest_lock = threading.Lock()

    @property
    def gate(self) -> DeduplicationGate:
        return self._gate

    async def evaluate(
        self,
        instrument: str,
        timeframe: "Timeframe | str",
    ) -> Optional[Signal]:
        """Fetch data and evaluate one key without touching dedup state.

        HOLD results are returned too. Raises ``ValueError`` for an unknown
        timeframe string; every other failure is logged and yields ``None``.
        """
        tf = Timeframe.parse(timeframe)
        instrument = instrument.upper()

        candles = await self._provider.fetch(instrument, tf, self._candle_limit)
        if len(candles) < MIN_CANDLES:
            logger.warning(
                "Insufficient data for %s %s: %d candles (need %d)",
                instrument, tf.value, len(candles), MIN_CANDLES,
            )
            return None

        try:
            signal = build_signal(instrument, tf, candles, self._clock())
        except (IndicatorComputationError, ArithmeticError) as exc:
            logger.error("Indicator computation failed for %s %s: %s", instrument, tf.value, exc)
            return None

        if signal is not None:
            with self._latest_lock:
                self._latest[signal.key] = signal
            logger.debug(
                "Evaluated %s %s → %s (score=%.2f, strength=%.2f)",
                instrument, tf.value, signal.direction.value,
                signal.score, signal.trend_strength,
            )
        return signal

    async def generate_signal(
        self,
        instrument: str,
        timeframe: "Timeframe | str",
    ) -> Optional[Signal]:
        """Evaluate one key and pass the result through the dedup gate.

        Returns the admitted signal, or ``None`` for HOLD, duplicates,
        insufficient history and indicator faults.
        """
        signal = await self.evaluate(instrument, timeframe)
        if signal is None or not signal.is_actionable:
            return None
        if not self._gate.admit(signal):
            return None
        logger.info(
            "Signal %s %s %s (%s) at %s, target %s, stop %s",
            signal.direction.value, signal.instrument, signal.timeframe.value,
            signal.confidence.value, signal.price, signal.target_price, signal.stop_loss,
        )
        return signal

    def latest_evaluations(self) -> list[Signal]:
        """Most recent evaluation per key, HOLD included."""
        with self._latest_lock:
            return list(self._latest.values())
