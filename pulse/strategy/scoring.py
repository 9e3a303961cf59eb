"""Composite scoring — indicator snapshot → direction and confidence.

Five analysis phases each award raw points with a reasoning fragment per
triggered rule. Raw points are normalised onto [-10, +10] by the phase's
largest attainable magnitude, weighted, summed, and clamped. The result is
mapped through ``CONFIDENCE_TIERS`` top-down; the first matching row wins.
"""

from pulse.strategy.models import (
    Confidence,
    Direction,
    Evaluation,
    IndicatorSnapshot,
    SubScore,
)

SCORE_LIMIT = 10.0

# (weight, largest |raw score| the phase can produce)
PHASE_WEIGHTS: dict[str, tuple[float, float]] = {
    "trend": (0.30, 5.0),
    "momentum": (0.25, 4.0),
    "mean_reversion": (0.20, 2.5),
    "volume": (0.15, 1.0),
    "price_action": (0.10, 1.0),
}

# Evaluated in order; rows overlap, first match wins.
CONFIDENCE_TIERS: tuple[tuple[Direction, Confidence, float, float | None], ...] = (
    # direction, confidence, score threshold, trend strength must exceed
    (Direction.BUY, Confidence.HIGH, 6.0, 0.6),
    (Direction.BUY, Confidence.MEDIUM, 3.0, 0.4),
    (Direction.BUY, Confidence.LOW, 1.5, None),
    (Direction.SELL, Confidence.HIGH, -6.0, 0.6),
    (Direction.SELL, Confidence.MEDIUM, -3.0, 0.4),
    (Direction.SELL, Confidence.LOW, -1.5, None),
)


# ── Phases ───────────────────────────────────────────────────────────────


def score_trend(snap: IndicatorSnapshot) -> SubScore:
    """EMA stacking, ADX strength and the price-action pattern.

    Also produces the trend strength gate in [0, 1].
    """
    score = 0.0
    strength = 0.0
    reasons: list[str] = []

    e9, e20, e50, e200 = snap.ema9, snap.ema20, snap.ema50, snap.ema200
    if e9 > e20 > e50 > e200:
        score += 3
        strength += 0.8
        reasons.append("Strong bullish EMA alignment")
    elif e9 < e20 < e50 < e200:
        score -= 3
        strength += 0.8
        reasons.append("Strong bearish EMA alignment")
    elif e9 > e20 > e50:
        score += 2
        strength += 0.6
        reasons.append("Bullish short-term trend")
    elif e9 < e20 < e50:
        score -= 2
        strength += 0.6
        reasons.append("Bearish short-term trend")

    if snap.adx.adx > 25:
        strength += 0.3
        if snap.adx.plus_di > snap.adx.minus_di:
            score += 1
            reasons.append("Strong uptrend (ADX > 25)")
        else:
            score -= 1
            reasons.append("Strong downtrend (ADX > 25)")

    pattern = snap.price_action
    if pattern.pattern == "uptrend":
        score += 1
        strength += pattern.strength * 0.2
        reasons.append("Bullish price action pattern")
    elif pattern.pattern == "downtrend":
        score -= 1
        strength += pattern.strength * 0.2
        reasons.append("Bearish price action pattern")

    return SubScore(score, tuple(reasons), min(1.0, strength))


def score_momentum(snap: IndicatorSnapshot) -> SubScore:
    """RSI zone, MACD crossover/histogram and stochastic crossover."""
    score = 0.0
    reasons: list[str] = []

    rsi = snap.rsi
    if 50 < rsi < 70:
        score += 1
        reasons.append("RSI showing bullish momentum")
    elif 30 < rsi < 50:
        score -= 1
        reasons.append("RSI showing bearish momentum")
    elif rsi >= 70:
        score -= 0.5
        reasons.append("RSI overbought warning")
    elif rsi <= 30:
        score += 0.5
        reasons.append("RSI oversold opportunity")

    macd = snap.macd
    if macd.macd > macd.signal and macd.histogram > 0:
        score += 2
        reasons.append("MACD bullish crossover")
    elif macd.macd < macd.signal and macd.histogram < 0:
        score -= 2
        reasons.append("MACD bearish crossover")
    elif macd.histogram > 0:
        score += 1
        reasons.append("MACD histogram positive")
    elif macd.histogram < 0:
        score -= 1
        reasons.append("MACD histogram negative")

    stoch = snap.stochastic
    if stoch.k > stoch.d and stoch.k < 80:
        score += 1
        reasons.append("Stochastic bullish crossover")
    elif stoch.k < stoch.d and stoch.k > 20:
        score -= 1
        reasons.append("Stochastic bearish crossover")

    return SubScore(score, tuple(reasons))


def band_position(snap: IndicatorSnapshot) -> float:
    """Where the price sits inside the Bollinger channel (0 = lower, 1 = upper).

    A zero-width channel reports the midpoint.
    """
    width = snap.bollinger.upper - snap.bollinger.lower
    if width == 0:
        return 0.5
    return (snap.current_price - snap.bollinger.lower) / width


def score_mean_reversion(snap: IndicatorSnapshot) -> SubScore:
    """Band position and distance from the 20-period SMA."""
    score = 0.0
    reasons: list[str] = []

    position = band_position(snap)
    if position <= 0.1 and snap.rsi < 35:
        score += 2
        reasons.append("Strong oversold mean reversion setup")
    elif position >= 0.9 and snap.rsi > 65:
        score -= 2
        reasons.append("Strong overbought mean reversion setup")
    elif position <= 0.2:
        score += 1
        reasons.append("Oversold near lower BB")
    elif position >= 0.8:
        score -= 1
        reasons.append("Overbought near upper BB")

    distance = 0.0
    if snap.sma20 != 0:
        distance = (snap.current_price - snap.sma20) / snap.sma20
    if abs(distance) > 0.03:
        if distance < 0:
            score += 0.5
            reasons.append("Price significantly below SMA20")
        else:
            score -= 0.5
            reasons.append("Price significantly above SMA20")

    return SubScore(score, tuple(reasons))


def score_volume(snap: IndicatorSnapshot) -> SubScore:
    volume = snap.volume_trend
    if volume.trend == "increasing" and volume.strength > 0.7:
        return SubScore(1.0, ("Strong volume confirmation",))
    if volume.trend == "decreasing":
        return SubScore(-0.5, ("Weak volume confirmation",))
    return SubScore(0.0)


def score_price_action(snap: IndicatorSnapshot) -> SubScore:
    """Pattern agreement with the latest candle-to-candle change."""
    change = 0.0
    if snap.previous_price != 0:
        change = (snap.current_price - snap.previous_price) / snap.previous_price

    pattern = snap.price_action.pattern
    if pattern == "uptrend" and change > 0:
        return SubScore(1.0, ("Price action confirms upward momentum",))
    if pattern == "downtrend" and change < 0:
        return SubScore(-1.0, ("Price action confirms downward momentum",))
    return SubScore(0.0)


# ── Composite ────────────────────────────────────────────────────────────


def _clamp(value: float) -> float:
    return max(-SCORE_LIMIT, min(SCORE_LIMIT, value))


def normalise(raw: float, max_raw: float) -> float:
    """Scale a phase's raw points onto [-10, +10]."""
    return _clamp(raw / max_raw * SCORE_LIMIT)


def classify(score: float, trend_strength: float) -> tuple[Direction, Confidence | None]:
    """Map a composite score and trend strength to direction and confidence."""
    for direction, confidence, threshold, min_strength in CONFIDENCE_TIERS:
        if direction is Direction.BUY:
            hit = score >= threshold
        else:
            hit = score <= threshold
        if hit and (min_strength is None or trend_strength > min_strength):
            return direction, confidence
    return Direction.HOLD, None


def evaluate_snapshot(snap: IndicatorSnapshot) -> Evaluation:
    """Run every phase in order and produce the composite evaluation."""
    phases = (
        ("trend", score_trend(snap)),
        ("momentum", score_momentum(snap)),
        ("mean_reversion", score_mean_reversion(snap)),
        ("volume", score_volume(snap)),
        ("price_action", score_price_action(snap)),
    )

    composite = 0.0
    reasoning: list[str] = []
    for name, sub in phases:
        weight, max_raw = PHASE_WEIGHTS[name]
        composite += normalise(sub.score, max_raw) * weight
        reasoning.extend(sub.reasons)

    composite = _clamp(composite)
    trend_strength = phases[0][1].strength
    direction, confidence = classify(composite, trend_strength)

    return Evaluation(
        direction=direction,
        confidence=confidence,
        score=composite,
        trend_strength=trend_strength,
        reasoning=tuple(reasoning),
    )
