"""Tests for pulse.strategy.snapshot — window → indicator readings."""

import math

import pytest

from pulse.errors import IndicatorComputationError
from pulse.market.models import Candle
from pulse.strategy.snapshot import (
    MIN_CANDLES,
    analyze_price_action,
    analyze_volume,
    compute_snapshot,
)

from conftest import make_candles, zigzag_uptrend


def _bars(highs, lows) -> list[Candle]:
    return [
        Candle(timestamp=i, open=(h + l) / 2, high=h, low=l, close=(h + l) / 2, volume=1.0)
        for i, (h, l) in enumerate(zip(highs, lows))
    ]


class TestPriceAction:
    def test_uptrend(self):
        pa = analyze_price_action(_bars([10, 11, 12], [8, 9, 10]))
        assert pa.pattern == "uptrend"
        assert pa.strength == pytest.approx(0.8)

    def test_downtrend(self):
        assert analyze_price_action(_bars([12, 11, 10], [10, 9, 8])).pattern == "downtrend"

    def test_consolidation(self):
        pa = analyze_price_action(_bars([12, 11, 10], [8, 9, 9.5]))
        assert pa.pattern == "consolidation"
        assert pa.strength == pytest.approx(0.6)

    def test_neutral(self):
        assert analyze_price_action(_bars([10, 10, 10], [8, 8, 8])).pattern == "neutral"

    def test_insufficient(self):
        pa = analyze_price_action(_bars([10, 11], [8, 9]))
        assert pa.pattern == "insufficient_data"
        assert pa.strength == 0.0


class TestVolume:
    def test_increasing(self):
        candles = make_candles([1.0] * 19) + [
            Candle(timestamp=99, open=1, high=1, low=1, close=1, volume=3000.0)
        ]
        trend = analyze_volume(candles)
        assert trend.trend == "increasing"
        assert trend.ratio > 1.5

    def test_decreasing(self):
        candles = make_candles([1.0] * 19) + [
            Candle(timestamp=99, open=1, high=1, low=1, close=1, volume=100.0)
        ]
        assert analyze_volume(candles).trend == "decreasing"

    def test_zero_volume_is_stable(self):
        assert analyze_volume(make_candles([1.0] * 20, volume=0.0)).trend == "stable"


class TestComputeSnapshot:
    def test_below_minimum_returns_none(self):
        assert compute_snapshot(zigzag_uptrend(MIN_CANDLES - 1)) is None

    def test_short_window_falls_back_for_long_lookbacks(self, rising_window):
        snap = compute_snapshot(rising_window)
        assert snap is not None
        assert snap.is_fallback("ema200")
        assert snap.ema200 == rising_window[-1].close
        assert not snap.is_fallback("ema50")
        assert not snap.is_fallback("adx")

    def test_long_window_has_no_fallbacks(self):
        snap = compute_snapshot(zigzag_uptrend(250))
        assert snap.fallbacks == frozenset()

    def test_readings_for_rising_window(self, rising_window):
        snap = compute_snapshot(rising_window)
        assert snap.current_price == pytest.approx(116.0)
        assert snap.previous_price == pytest.approx(114.5)
        assert snap.atr == pytest.approx(3.0)
        assert snap.adx.plus_di > snap.adx.minus_di
        assert snap.ema9 > snap.ema20 > snap.ema50
        assert snap.price_action.pattern == "uptrend"
        assert snap.volume_trend.trend == "increasing"
        assert snap.volume == 2000.0

    def test_to_dict_lists_fallbacks(self, rising_window):
        data = compute_snapshot(rising_window).to_dict()
        assert data["fallbacks"] == ["ema200"]
        assert data["macd"]["histogram"] == pytest.approx(
            data["macd"]["macd"] - data["macd"]["signal"]
        )

    def test_non_finite_input_raises(self, rising_window):
        last = rising_window[-1]
        broken = rising_window[:-1] + [
            Candle(last.timestamp, last.open, last.high, last.low, math.nan, last.volume)
        ]
        with pytest.raises(IndicatorComputationError, match="current_price"):
            compute_snapshot(broken)
