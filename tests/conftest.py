"""Shared fixtures — candle windows and a ready-made configuration."""

from datetime import datetime, timezone

import pytest

from pulse.config import Config
from pulse.market.models import Candle
from pulse.models.timeframe import DEFAULT_TIMEFRAMES

T0_MS = 1_700_000_000_000
STEP_MS = 5 * 60 * 1000


def make_candles(closes, spread=1.0, volume=1000.0) -> list[Candle]:
    """Candles around *closes* with a fixed high/low spread, 5m apart."""
    candles = []
    for i, close in enumerate(closes):
        open_ = closes[i - 1] if i else close
        candles.append(
            Candle(
                timestamp=T0_MS + i * STEP_MS,
                open=open_,
                high=max(open_, close) + spread,
                low=min(open_, close) - spread,
                close=close,
                volume=volume,
            )
        )
    return candles


def zigzag_uptrend(n: int = 60) -> list[Candle]:
    """Rising window: +1.5 then -1.0 per step, highs and lows climbing 0.25.

    The last candle carries double volume and closes at 116.0 for n=60.
    """
    closes = [100.0]
    for i in range(1, n):
        closes.append(closes[-1] + (1.5 if i % 2 else -1.0))

    candles = []
    for i, close in enumerate(closes):
        base = 100.0 + 0.25 * i
        candles.append(
            Candle(
                timestamp=T0_MS + i * STEP_MS,
                open=closes[i - 1] if i else close,
                high=base + 2.0,
                low=base - 1.0,
                close=close,
                volume=2000.0 if i == n - 1 else 1000.0,
            )
        )
    return candles


@pytest.fixture
def rising_window() -> list[Candle]:
    return zigzag_uptrend()


@pytest.fixture
def flat_window() -> list[Candle]:
    return make_candles([100.0] * 60)


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def config(tmp_path) -> Config:
    return Config(
        binance_base_url="https://api.binance.test",
        instruments=("BTCUSDT", "ETHUSDT"),
        timeframes=DEFAULT_TIMEFRAMES,
        poll_interval_seconds=30,
        candle_limit=250,
        cache_ttl_seconds=60.0,
        request_timeout_seconds=10.0,
        dedup_cooldown_minutes=15.0,
        max_concurrency=4,
        subscriber_timeout_seconds=0.5,
        db_path=str(tmp_path / "pulse.db"),
        log_level="INFO",
        api_port=8080,
    )
