"""Indicator snapshot — one candle window in, every indicator reading out.

Indicators whose lookback exceeds the window fall back to a neutral value
and are listed in ``IndicatorSnapshot.fallbacks``. The 50-candle minimum
for a signal is enforced here: shorter windows return ``None``.
"""

import math
from typing import Callable, Optional, TypeVar

from pulse.errors import IndicatorComputationError
from pulse.market.models import Candle
from pulse.strategy.indicators import (
    calculate_adx,
    calculate_atr,
    calculate_bollinger,
    calculate_ema,
    calculate_macd,
    calculate_rsi,
    calculate_sma,
    calculate_stochastic,
)
from pulse.strategy.models import (
    ADXValue,
    BollingerValue,
    IndicatorSnapshot,
    MACDValue,
    PriceAction,
    StochasticValue,
    VolumeTrend,
)

MIN_CANDLES = 50
EMA_PERIODS = (9, 12, 20, 26, 50, 200)
SMA_PERIODS = (20, 50)

T = TypeVar("T")


def analyze_price_action(candles: list[Candle]) -> PriceAction:
    """Classify the last three candles.

    Uptrend: strictly higher highs and higher lows. Downtrend: strictly
    lower highs and lower lows. Consolidation: higher lows with lower highs.
    """
    if len(candles) < 3:
        return PriceAction("insufficient_data", 0.0)

    a, b, c = candles[-3:]
    higher_highs = c.high > b.high > a.high
    lower_lows = c.low < b.low < a.low
    higher_lows = c.low > b.low > a.low
    lower_highs = c.high < b.high < a.high

    if higher_highs and higher_lows:
        return PriceAction("uptrend", 0.8)
    if lower_lows and lower_highs:
        return PriceAction("downtrend", 0.8)
    if higher_lows and lower_highs:
        return PriceAction("consolidation", 0.6)
    return PriceAction("neutral", 0.4)


def analyze_volume(candles: list[Candle], lookback: int = 20) -> VolumeTrend:
    """Compare the latest volume with the mean of the last *lookback* candles."""
    volumes = [c.volume for c in candles[-lookback:]]
    if not volumes:
        return VolumeTrend("stable", 0.5, 1.0)
    average = sum(volumes) / len(volumes)
    if average == 0:
        return VolumeTrend("stable", 0.5, 1.0)

    ratio = volumes[-1] / average
    if ratio > 1.5:
        return VolumeTrend("increasing", 0.8, ratio)
    if ratio < 0.7:
        return VolumeTrend("decreasing", 0.6, ratio)
    return VolumeTrend("stable", 0.5, ratio)


class _Collector:
    """Runs indicator calls and remembers which ones fell back."""

    def __init__(self) -> None:
        self.fallbacks: set[str] = set()

    def latest(self, name: str, compute: Callable[[], T], default: T) -> T:
        try:
            value = compute()
        except ValueError:
            self.fallbacks.add(name)
            return default
        return value


def compute_snapshot(candles: list[Candle]) -> Optional[IndicatorSnapshot]:
    """Compute every indicator for *candles* (oldest first).

    Returns ``None`` when the window holds fewer than 50 candles.

    Raises:
        IndicatorComputationError: if any reading is not finite.
    """
    if len(candles) < MIN_CANDLES:
        return None

    last_close = candles[-1].close
    previous_close = candles[-2].close
    col = _Collector()

    rsi = col.latest("rsi", lambda: calculate_rsi(candles, 14)[-1], 50.0)

    def _macd() -> MACDValue:
        line, signal, hist = calculate_macd(candles, 12, 26, 9)
        return MACDValue(line[-1], signal[-1], hist[-1])

    macd = col.latest("macd", _macd, MACDValue(0.0, 0.0, 0.0))

    emas = {
        p: col.latest(f"ema{p}", lambda p=p: calculate_ema(candles, p)[-1], last_close)
        for p in EMA_PERIODS
    }
    smas = {
        p: col.latest(f"sma{p}", lambda p=p: calculate_sma(candles, p)[-1], last_close)
        for p in SMA_PERIODS
    }

    def _bollinger() -> BollingerValue:
        upper, middle, lower = calculate_bollinger(candles, 20, 2.0)
        return BollingerValue(upper[-1], middle[-1], lower[-1])

    bollinger = col.latest(
        "bollinger", _bollinger, BollingerValue(last_close, last_close, last_close)
    )

    def _stochastic() -> StochasticValue:
        k, d = calculate_stochastic(candles, 14, 3)
        return StochasticValue(k[-1], d[-1])

    stochastic = col.latest("stochastic", _stochastic, StochasticValue(50.0, 50.0))

    atr = col.latest("atr", lambda: calculate_atr(candles, 14), last_close * 0.02)

    def _adx() -> ADXValue:
        adx, plus_di, minus_di = calculate_adx(candles, 14)
        return ADXValue(adx[-1], plus_di[-1], minus_di[-1])

    adx = col.latest("adx", _adx, ADXValue(25.0, 25.0, 25.0))

    snapshot = IndicatorSnapshot(
        rsi=rsi,
        macd=macd,
        ema9=emas[9],
        ema12=emas[12],
        ema20=emas[20],
        ema26=emas[26],
        ema50=emas[50],
        ema200=emas[200],
        sma20=smas[20],
        sma50=smas[50],
        bollinger=bollinger,
        stochastic=stochastic,
        atr=atr,
        adx=adx,
        price_action=analyze_price_action(candles[-10:]),
        volume_trend=analyze_volume(candles[-20:]),
        volume=candles[-1].volume,
        current_price=last_close,
        previous_price=previous_close,
        fallbacks=frozenset(col.fallbacks),
    )
    _check_finite(snapshot)
    return snapshot


def _check_finite(snapshot: IndicatorSnapshot) -> None:
    values = {
        "rsi": snapshot.rsi,
        "macd": snapshot.macd.macd,
        "macd_signal": snapshot.macd.signal,
        "macd_histogram": snapshot.macd.histogram,
        "ema9": snapshot.ema9,
        "ema12": snapshot.ema12,
        "ema20": snapshot.ema20,
        "ema26": snapshot.ema26,
        "ema50": snapshot.ema50,
        "ema200": snapshot.ema200,
        "sma20": snapshot.sma20,
        "sma50": snapshot.sma50,
        "bollinger_upper": snapshot.bollinger.upper,
        "bollinger_lower": snapshot.bollinger.lower,
        "stochastic_k": snapshot.stochastic.k,
        "stochastic_d": snapshot.stochastic.d,
        "atr": snapshot.atr,
        "adx": snapshot.adx.adx,
        "current_price": snapshot.current_price,
        "previous_price": snapshot.previous_price,
    }
    bad = [name for name, value in values.items() if not math.isfinite(value)]
    if bad:
        raise IndicatorComputationError(
            f"Non-finite indicator values: {', '.join(bad)}"
        )
