"""Technical indicators — SMA, EMA, RSI, MACD, Bollinger, Stochastic, ATR, ADX.

Pure functions, no I/O. Series functions return a list the same length as
the input with ``float('nan')`` before the indicator is ready, and raise
``ValueError`` when the window is shorter than the indicator's lookback.
"""

import math

from pulse.market.models import Candle


def _nan_series(n: int) -> list[float]:
    return [float("nan")] * n


# ── Moving averages ──────────────────────────────────────────────────────


def calculate_sma(candles: list[Candle], period: int) -> list[float]:
    """Simple moving average of closes over *period* candles."""
    if len(candles) < period:
        raise ValueError(
            f"Need at least {period} candles for SMA({period}), "
            f"got {len(candles)}"
        )
    closes = [c.close for c in candles]
    sma = _nan_series(len(closes))
    running = sum(closes[:period])
    sma[period - 1] = running / period
    for i in range(period, len(closes)):
        running += closes[i] - closes[i - period]
        sma[i] = running / period
    return sma


def ema_of(values: list[float], period: int) -> list[float]:
    """EMA over an arbitrary value series, seeded with the SMA of the first
    *period* values. ``k = 2 / (period + 1)``.
    """
    if len(values) < period:
        raise ValueError(
            f"Need at least {period} values for EMA({period}), got {len(values)}"
        )
    k = 2.0 / (period + 1)
    ema = _nan_series(len(values))
    ema[period - 1] = sum(values[:period]) / period
    for i in range(period, len(values)):
        ema[i] = values[i] * k + ema[i - 1] * (1 - k)
    return ema


def calculate_ema(candles: list[Candle], period: int) -> list[float]:
    """Calculate an Exponential Moving Average series of closes.

    Uses the standard EMA formula:
        ``EMA_today = close × k + EMA_yesterday × (1 - k)``
    where ``k = 2 / (period + 1)``.

    Raises ``ValueError`` if fewer than *period* candles are provided.
    """
    if len(candles) < period:
        raise ValueError(
            f"Need at least {period} candles for EMA({period}), "
            f"got {len(candles)}"
        )
    return ema_of([c.close for c in candles], period)


# ── RSI ──────────────────────────────────────────────────────────────────


def calculate_rsi(candles: list[Candle], period: int = 14) -> list[float]:
    """Calculate Wilder's Relative Strength Index.

    Algorithm (Wilder-smoothed):
        1. delta = close[i] - close[i-1]
        2. Separate gains (positive) and losses (|negative|).
        3. Seed average gain/loss = SMA of first *period* deltas.
        4. Subsequent: avg = (prev_avg × (period-1) + current) / period
        5. RS = avg_gain / avg_loss
        6. RSI = 100 - 100 / (1 + RS)

    Requires at least ``period + 1`` candles.
    """
    if len(candles) < period + 1:
        raise ValueError(
            f"Need at least {period + 1} candles for RSI({period}), "
            f"got {len(candles)}"
        )

    closes = [c.close for c in candles]
    deltas = [closes[i] - closes[i - 1] for i in range(1, len(closes))]

    gains = [max(d, 0.0) for d in deltas]
    losses = [abs(min(d, 0.0)) for d in deltas]

    rsi = _nan_series(len(candles))

    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period

    def _rsi_from_avgs(ag: float, al: float) -> float:
        if al == 0:
            return 100.0
        rs = ag / al
        return 100.0 - 100.0 / (1.0 + rs)

    rsi[period] = _rsi_from_avgs(avg_gain, avg_loss)

    for i in range(period, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        # deltas are offset by one candle
        rsi[i + 1] = _rsi_from_avgs(avg_gain, avg_loss)

    return rsi


# ── MACD ─────────────────────────────────────────────────────────────────


def calculate_macd(
    candles: list[Candle],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> tuple[list[float], list[float], list[float]]:
    """Calculate MACD line, signal line and histogram.

    MACD line = EMA(fast) − EMA(slow); signal = EMA(signal) of the MACD line
    starting where the slow EMA is ready; histogram = line − signal.

    Requires at least ``slow + signal - 1`` candles.

    Returns ``(macd, signal, histogram)``; each list has the same length
    as *candles*.
    """
    min_candles = slow + signal - 1
    if len(candles) < min_candles:
        raise ValueError(
            f"Need at least {min_candles} candles for MACD({fast},{slow},{signal}), "
            f"got {len(candles)}"
        )

    n = len(candles)
    fast_ema = calculate_ema(candles, fast)
    slow_ema = calculate_ema(candles, slow)

    macd_line = _nan_series(n)
    for i in range(slow - 1, n):
        macd_line[i] = fast_ema[i] - slow_ema[i]

    signal_tail = ema_of(macd_line[slow - 1:], signal)
    signal_line = _nan_series(slow - 1) + signal_tail

    histogram = _nan_series(n)
    for i in range(slow + signal - 2, n):
        histogram[i] = macd_line[i] - signal_line[i]

    return macd_line, signal_line, histogram


# ── Bollinger Bands ──────────────────────────────────────────────────────


def calculate_bollinger(
    candles: list[Candle],
    period: int = 20,
    std_dev: float = 2.0,
) -> tuple[list[float], list[float], list[float]]:
    """Calculate Bollinger Bands.

    Middle = SMA(close, *period*)
    Upper  = middle + *std_dev* × σ
    Lower  = middle − *std_dev* × σ

    Requires at least *period* candles.

    Returns ``(upper, middle, lower)``; each list has the same length
    as *candles*.
    """
    if len(candles) < period:
        raise ValueError(
            f"Need at least {period} candles for Bollinger({period}), "
            f"got {len(candles)}"
        )

    closes = [c.close for c in candles]
    n = len(closes)

    upper = _nan_series(n)
    middle = _nan_series(n)
    lower = _nan_series(n)

    for i in range(period - 1, n):
        window = closes[i - period + 1 : i + 1]
        sma = sum(window) / period
        variance = sum((x - sma) ** 2 for x in window) / period
        sigma = math.sqrt(variance)

        middle[i] = sma
        upper[i] = sma + std_dev * sigma
        lower[i] = sma - std_dev * sigma

    return upper, middle, lower


# ── Stochastic ───────────────────────────────────────────────────────────


def calculate_stochastic(
    candles: list[Candle],
    period: int = 14,
    signal_period: int = 3,
) -> tuple[list[float], list[float]]:
    """Calculate the stochastic oscillator.

    %K = 100 × (close − lowest low) / (highest high − lowest low) over
    *period* candles; %D = SMA(%K, *signal_period*). A flat range gives
    %K = 50.

    Requires at least ``period + signal_period - 1`` candles.

    Returns ``(k, d)`` lists the same length as *candles*.
    """
    min_candles = period + signal_period - 1
    if len(candles) < min_candles:
        raise ValueError(
            f"Need at least {min_candles} candles for Stochastic({period},{signal_period}), "
            f"got {len(candles)}"
        )

    n = len(candles)
    k_values = _nan_series(n)
    d_values = _nan_series(n)

    for i in range(period - 1, n):
        window = candles[i - period + 1 : i + 1]
        highest = max(c.high for c in window)
        lowest = min(c.low for c in window)
        span = highest - lowest
        if span == 0:
            k_values[i] = 50.0
        else:
            k_values[i] = 100.0 * (candles[i].close - lowest) / span

    for i in range(period + signal_period - 2, n):
        d_values[i] = sum(k_values[i - signal_period + 1 : i + 1]) / signal_period

    return k_values, d_values


# ── ATR ──────────────────────────────────────────────────────────────────


def _true_ranges(candles: list[Candle]) -> list[float]:
    """TR per bar from index 1: max(high - low, |high - prev_close|, |low - prev_close|)."""
    ranges: list[float] = []
    for i in range(1, len(candles)):
        high = candles[i].high
        low = candles[i].low
        prev_close = candles[i - 1].close
        ranges.append(max(high - low, abs(high - prev_close), abs(low - prev_close)))
    return ranges


def calculate_atr(candles: list[Candle], period: int = 14) -> float:
    """Calculate the Average True Range of the latest candle.

    Seeds with the simple average of the first *period* true ranges, then
    applies Wilder smoothing: ``ATR = (prev × (period-1) + TR) / period``.

    Requires at least ``period + 1`` candles (need a previous close for TR).

    Raises ``ValueError`` if insufficient data.
    """
    if len(candles) < period + 1:
        raise ValueError(
            f"Need at least {period + 1} candles for ATR({period}), "
            f"got {len(candles)}"
        )

    true_ranges = _true_ranges(candles)
    atr = sum(true_ranges[:period]) / period
    for tr in true_ranges[period:]:
        atr = (atr * (period - 1) + tr) / period
    return atr


# ── ADX ──────────────────────────────────────────────────────────────────


def calculate_adx(
    candles: list[Candle],
    period: int = 14,
) -> tuple[list[float], list[float], list[float]]:
    """Calculate the Average Directional Index with its directional lines.

    Algorithm:
        1. +DM / -DM directional movement per bar.
        2. Wilder-smooth +DM, -DM, and TR over *period*.
        3. +DI = 100 × smoothed_+DM / smoothed_TR
        4. -DI = 100 × smoothed_-DM / smoothed_TR
        5. DX = 100 × |+DI − −DI| / (+DI + −DI)
        6. ADX = Wilder-smoothed DX over *period*.

    Requires at least ``2 × period + 1`` candles.

    Returns ``(adx, plus_di, minus_di)``, lists the same length as
    *candles*.
    """
    min_candles = 2 * period + 1
    if len(candles) < min_candles:
        raise ValueError(
            f"Need at least {min_candles} candles for ADX({period}), "
            f"got {len(candles)}"
        )

    n = len(candles)

    # Raw +DM, -DM, TR per bar (index 0 unused)
    plus_dm_raw: list[float] = [0.0]
    minus_dm_raw: list[float] = [0.0]
    tr_raw: list[float] = [0.0] + _true_ranges(candles)

    for i in range(1, n):
        up_move = candles[i].high - candles[i - 1].high
        down_move = candles[i - 1].low - candles[i].low
        plus_dm_raw.append(up_move if (up_move > down_move and up_move > 0) else 0.0)
        minus_dm_raw.append(down_move if (down_move > up_move and down_move > 0) else 0.0)

    plus_di = _nan_series(n)
    minus_di = _nan_series(n)
    dx_values: list[float] = []

    def _record(i: int, s_pdm: float, s_mdm: float, s_tr: float) -> None:
        if s_tr == 0:
            pdi = mdi = 0.0
        else:
            pdi = 100.0 * s_pdm / s_tr
            mdi = 100.0 * s_mdm / s_tr
        plus_di[i] = pdi
        minus_di[i] = mdi
        di_sum = pdi + mdi
        dx_values.append(0.0 if di_sum == 0 else 100.0 * abs(pdi - mdi) / di_sum)

    # Seed with the sum of the first *period* bars
    smoothed_plus_dm = sum(plus_dm_raw[1 : period + 1])
    smoothed_minus_dm = sum(minus_dm_raw[1 : period + 1])
    smoothed_tr = sum(tr_raw[1 : period + 1])
    _record(period, smoothed_plus_dm, smoothed_minus_dm, smoothed_tr)

    for i in range(period + 1, n):
        smoothed_plus_dm = smoothed_plus_dm - smoothed_plus_dm / period + plus_dm_raw[i]
        smoothed_minus_dm = smoothed_minus_dm - smoothed_minus_dm / period + minus_dm_raw[i]
        smoothed_tr = smoothed_tr - smoothed_tr / period + tr_raw[i]
        _record(i, smoothed_plus_dm, smoothed_minus_dm, smoothed_tr)

    # dx_values[0] belongs to candle index *period*; the ADX seed averages
    # the first *period* DX values and lands on candle 2*period - 1.
    adx = _nan_series(n)
    adx_prev = sum(dx_values[:period]) / period
    adx[2 * period - 1] = adx_prev
    for j in range(period, len(dx_values)):
        adx_prev = (adx_prev * (period - 1) + dx_values[j]) / period
        adx[period + j] = adx_prev

    return adx, plus_di, minus_di
