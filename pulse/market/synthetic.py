"""Synthetic candle windows used when no exchange data is available.

The shape is deterministic (length, spacing, OHLC ordering) while the values
come from an injectable ``random.Random`` so tests can seed it.
"""

import random
import time
from typing import Optional

from pulse.market.instruments import price_decimals, reference_price
from pulse.market.models import Candle
from pulse.models.timeframe import Timeframe

_PRICE_JITTER = 0.015       # ±0.75 % around the reference price
_MAX_TREND_STRENGTH = 0.001  # at most 0.1 % drift per candle
_NOISE = 0.008               # ±0.4 % noise per candle


def synthetic_start_price(symbol: str, rng: random.Random) -> float:
    """Reference price for *symbol* with a small random offset."""
    variation = (rng.random() - 0.5) * _PRICE_JITTER
    return round(reference_price(symbol) * (1 + variation), price_decimals(symbol))


def generate_synthetic_candles(
    symbol: str,
    timeframe: Timeframe,
    limit: int,
    rng: Optional[random.Random] = None,
    now_ms: Optional[int] = None,
) -> list[Candle]:
    """Build *limit* candles ending at *now_ms*.

    A trend direction and strength are drawn once for the whole window;
    each candle adds bounded noise on top. Volume grows with the size of
    the candle's move.
    """
    if limit <= 0:
        return []
    rng = rng or random.Random()
    if now_ms is None:
        now_ms = int(time.time() * 1000)

    decimals = price_decimals(symbol)
    step_ms = timeframe.seconds * 1000
    volume_base = 100_000 if "USD" in symbol.upper() else 1_000_000

    trend_direction = 1 if rng.random() > 0.5 else -1
    trend_strength = rng.random() * _MAX_TREND_STRENGTH

    current = synthetic_start_price(symbol, rng)
    candles: list[Candle] = []

    for i in range(limit - 1, -1, -1):
        trend_change = trend_direction * trend_strength * current
        noise = (rng.random() - 0.5) * _NOISE * current
        change = trend_change + noise

        open_ = current
        close = open_ + change
        volatility = abs(change) * (1 + rng.random())
        high = max(open_, close) + volatility * rng.random()
        low = min(open_, close) - volatility * rng.random()

        volume_multiplier = 1 + abs(change / current) * 10
        volume = volume_base * volume_multiplier * (0.5 + rng.random())

        candles.append(
            Candle(
                timestamp=now_ms - i * step_ms,
                open=round(open_, decimals),
                high=round(high, decimals),
                low=round(low, decimals),
                close=round(close, decimals),
                volume=round(volume, 2),
            )
        )
        current = round(close, decimals)

    return candles
