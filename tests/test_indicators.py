"""Tests for pulse.strategy.indicators — known-value checks on small windows."""

import math

import pytest

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
    ema_of,
)

from conftest import make_candles


def _stepping(n: int, step: float = 1.0) -> list[Candle]:
    """Each candle one *step* above the last: highs, lows and closes."""
    return [
        Candle(timestamp=i, open=100 + i * step, high=101 + i * step,
               low=99 + i * step, close=100 + i * step, volume=1.0)
        for i in range(n)
    ]


class TestMovingAverages:
    def test_sma_known_value(self):
        sma = calculate_sma(make_candles([float(i) for i in range(1, 11)]), 3)
        assert math.isnan(sma[1])
        assert sma[2] == pytest.approx(2.0)
        assert sma[-1] == pytest.approx(9.0)

    def test_ema_of_constant_series(self):
        ema = calculate_ema(make_candles([5.0] * 30), 9)
        assert ema[-1] == pytest.approx(5.0)

    def test_ema_seeded_with_sma(self):
        ema = ema_of([1.0, 2.0, 3.0, 4.0], 3)
        assert ema[2] == pytest.approx(2.0)
        # k = 0.5 → 4 × 0.5 + 2 × 0.5
        assert ema[3] == pytest.approx(3.0)

    def test_insufficient_data(self):
        with pytest.raises(ValueError, match="EMA"):
            calculate_ema(make_candles([1.0] * 5), 9)


class TestRSI:
    def test_all_gains(self):
        rsi = calculate_rsi(make_candles([float(i) for i in range(20)]), 14)
        assert rsi[-1] == pytest.approx(100.0)

    def test_all_losses(self):
        rsi = calculate_rsi(make_candles([float(100 - i) for i in range(20)]), 14)
        assert rsi[-1] == pytest.approx(0.0)

    def test_range_and_warmup(self, rising_window):
        rsi = calculate_rsi(rising_window, 14)
        assert math.isnan(rsi[13])
        assert 50 < rsi[-1] < 70

    def test_needs_period_plus_one(self):
        with pytest.raises(ValueError, match="RSI"):
            calculate_rsi(make_candles([1.0] * 14), 14)


class TestMACD:
    def test_flat_market_is_zero(self):
        line, signal, hist = calculate_macd(make_candles([50.0] * 40))
        assert line[-1] == pytest.approx(0.0)
        assert signal[-1] == pytest.approx(0.0)
        assert hist[-1] == pytest.approx(0.0)

    def test_warmup_lengths(self):
        line, signal, hist = calculate_macd(make_candles([float(i) for i in range(34)]))
        assert math.isnan(line[24])
        assert not math.isnan(line[25])
        assert math.isnan(hist[32])
        assert not math.isnan(hist[33])

    def test_rising_market_positive_line(self):
        line, _, _ = calculate_macd(_stepping(60))
        assert line[-1] > 0

    def test_needs_slow_plus_signal(self):
        with pytest.raises(ValueError, match="MACD"):
            calculate_macd(make_candles([1.0] * 33))


class TestBollinger:
    def test_flat_market_collapses_bands(self):
        upper, middle, lower = calculate_bollinger(make_candles([10.0] * 25))
        assert upper[-1] == middle[-1] == lower[-1] == pytest.approx(10.0)

    def test_bands_symmetric(self, rising_window):
        upper, middle, lower = calculate_bollinger(rising_window)
        assert upper[-1] - middle[-1] == pytest.approx(middle[-1] - lower[-1])
        assert upper[-1] > middle[-1]


class TestStochastic:
    def test_flat_range_reports_midpoint(self):
        candles = [
            Candle(timestamp=i, open=1.0, high=1.0, low=1.0, close=1.0, volume=1.0)
            for i in range(20)
        ]
        k, d = calculate_stochastic(candles)
        assert k[-1] == pytest.approx(50.0)
        assert d[-1] == pytest.approx(50.0)

    def test_close_at_high(self):
        candles = [
            Candle(timestamp=i, open=10.0, high=11.0, low=9.0, close=11.0, volume=1.0)
            for i in range(20)
        ]
        k, _ = calculate_stochastic(candles)
        assert k[-1] == pytest.approx(100.0)

    def test_needs_period_plus_signal(self):
        with pytest.raises(ValueError, match="Stochastic"):
            calculate_stochastic(make_candles([1.0] * 15))


class TestATR:
    def test_constant_range(self):
        candles = make_candles([100.0] * 20, spread=1.0)
        assert calculate_atr(candles) == pytest.approx(2.0)

    def test_gap_counts_previous_close(self, rising_window):
        # Every bar of the zig-zag window has a true range of 3.0
        assert calculate_atr(rising_window) == pytest.approx(3.0)

    def test_needs_period_plus_one(self):
        with pytest.raises(ValueError, match="ATR"):
            calculate_atr(make_candles([1.0] * 14))


class TestADX:
    def test_steady_uptrend(self):
        adx, plus_di, minus_di = calculate_adx(_stepping(40))
        assert adx[-1] == pytest.approx(100.0)
        assert plus_di[-1] > 0
        assert minus_di[-1] == pytest.approx(0.0)

    def test_warmup(self):
        adx, plus_di, _ = calculate_adx(_stepping(29))
        assert math.isnan(plus_di[13])
        assert not math.isnan(plus_di[14])
        assert math.isnan(adx[26])
        assert adx[27] == pytest.approx(100.0)

    def test_needs_two_periods_plus_one(self):
        with pytest.raises(ValueError, match="ADX"):
            calculate_adx(_stepping(28))
