"""Tests for pulse.risk — volatility multiplier and target/stop placement."""

import pytest

from pulse.risk.targets import calculate_risk_levels, volatility_multiplier
from pulse.strategy.models import Direction


class TestVolatilityMultiplier:
    @pytest.mark.parametrize(
        "atr,expected",
        [
            (6.0, 2.0),   # 6 %
            (5.0, 1.5),   # exactly 5 % is not above 5
            (4.0, 1.5),
            (3.0, 1.0),
            (2.0, 1.0),
            (1.0, 0.7),
            (0.5, 0.7),
        ],
    )
    def test_bands(self, atr, expected):
        assert volatility_multiplier(atr, 100.0) == expected

    def test_monotonic_in_atr(self):
        multipliers = [volatility_multiplier(atr / 10, 100.0) for atr in range(0, 100)]
        assert multipliers == sorted(multipliers)

    def test_non_positive_price(self):
        with pytest.raises(ValueError):
            volatility_multiplier(1.0, 0.0)


class TestRiskLevels:
    def test_buy_levels(self):
        levels = calculate_risk_levels(Direction.BUY, 116.0, 3.0)
        assert levels.multiplier == 1.0
        assert levels.target_price == pytest.approx(118.32)
        assert levels.stop_loss == pytest.approx(114.26)

    def test_sell_levels(self):
        levels = calculate_risk_levels(Direction.SELL, 100.0, 0.5)
        assert levels.multiplier == 0.7
        assert levels.target_price == pytest.approx(98.6)
        assert levels.stop_loss == pytest.approx(101.05)

    def test_sides_relative_to_price(self):
        buy = calculate_risk_levels(Direction.BUY, 50.0, 4.0)
        sell = calculate_risk_levels(Direction.SELL, 50.0, 4.0)
        assert buy.stop_loss < 50.0 < buy.target_price
        assert sell.target_price < 50.0 < sell.stop_loss

    def test_wider_when_volatile(self):
        calm = calculate_risk_levels(Direction.BUY, 100.0, 0.5)
        wild = calculate_risk_levels(Direction.BUY, 100.0, 8.0)
        assert wild.target_price - 100.0 > calm.target_price - 100.0
        assert 100.0 - wild.stop_loss > 100.0 - calm.stop_loss

    def test_hold_has_no_levels(self):
        assert calculate_risk_levels(Direction.HOLD, 100.0, 1.0) is None
