"""Target price and stop-loss calculation — pure math, no I/O.

Distances are fixed percentages of price scaled by a volatility multiplier
derived from ATR as a percentage of price:

    ATR% > 5 → 2.0,  > 3 → 1.5,  > 1 → 1.0,  otherwise 0.7

    BUY:  target = price × (1 + 0.02 × m),  stop = price × (1 − 0.015 × m)
    SELL: target = price × (1 − 0.02 × m),  stop = price × (1 + 0.015 × m)
"""

from dataclasses import dataclass
from typing import Optional

from pulse.strategy.models import Direction

TARGET_PCT = 0.02
STOP_PCT = 0.015
_PRICE_DECIMALS = 8

# (ATR % strictly above, multiplier), checked top-down
_VOLATILITY_BANDS: tuple[tuple[float, float], ...] = (
    (5.0, 2.0),
    (3.0, 1.5),
    (1.0, 1.0),
)
_CALM_MULTIPLIER = 0.7


@dataclass(frozen=True)
class RiskLevels:
    """Computed target and stop for a directional signal."""

    target_price: float
    stop_loss: float
    multiplier: float


def volatility_multiplier(atr: float, price: float) -> float:
    """Return the distance multiplier for ATR expressed as % of *price*."""
    if price <= 0:
        raise ValueError(f"price must be positive, got {price}")
    atr_pct = atr / price * 100
    for floor, multiplier in _VOLATILITY_BANDS:
        if atr_pct > floor:
            return multiplier
    return _CALM_MULTIPLIER


def calculate_risk_levels(
    direction: Direction,
    price: float,
    atr: float,
) -> Optional[RiskLevels]:
    """Calculate target and stop for *direction* at *price*.

    Returns ``None`` for HOLD.

    Raises ``ValueError`` if *price* is not positive.
    """
    if direction is Direction.HOLD:
        return None

    mult = volatility_multiplier(atr, price)
    if direction is Direction.BUY:
        target = price * (1 + TARGET_PCT * mult)
        stop = price * (1 - STOP_PCT * mult)
    else:
        target = price * (1 - TARGET_PCT * mult)
        stop = price * (1 + STOP_PCT * mult)

    return RiskLevels(
        target_price=round(target, _PRICE_DECIMALS),
        stop_loss=round(stop, _PRICE_DECIMALS),
        multiplier=mult,
    )
