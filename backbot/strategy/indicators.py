"""Technical indicators — EMA, RSI, MACD, Bollinger, ATR, Stochastic, ADX, MFI,
WaveTrend, money flow, linear trends and VWAP bands. Pure functions, no I/O.

Series-returning functions keep the length of their input and pad the
warm-up region with ``float('nan')``.  Every function raises ``ValueError``
when given fewer samples than it needs.
"""

import math
from typing import Optional, Sequence

import numpy as np

from backbot.strategy.models import Candle, TrendLine

NAN = float("nan")


def _first_valid(values: Sequence[float]) -> int:
    for i, v in enumerate(values):
        if not math.isnan(v):
            return i
    return len(values)


# ── Moving averages ──────────────────────────────────────────────────────


def sma_series(values: Sequence[float], period: int) -> list[float]:
    """Simple moving average over *values* (leading NaNs are skipped)."""
    start = _first_valid(values)
    if len(values) - start < period:
        raise ValueError(
            f"Need at least {period} values for SMA({period}), "
            f"got {len(values) - start}"
        )

    out: list[float] = [NAN] * len(values)
    window_sum = sum(values[start : start + period])
    out[start + period - 1] = window_sum / period
    for i in range(start + period, len(values)):
        window_sum += values[i] - values[i - period]
        out[i] = window_sum / period
    return out


def ema_series(values: Sequence[float], period: int) -> list[float]:
    """Exponential moving average over *values*.

    ``EMA_today = value × k + EMA_yesterday × (1 - k)`` with
    ``k = 2 / (period + 1)``, seeded with the SMA of the first *period*
    valid values.  Leading NaNs (e.g. a chained indicator's warm-up) are
    skipped.
    """
    start = _first_valid(values)
    if len(values) - start < period:
        raise ValueError(
            f"Need at least {period} values for EMA({period}), "
            f"got {len(values) - start}"
        )

    k = 2.0 / (period + 1)
    out: list[float] = [NAN] * len(values)
    seed_idx = start + period - 1
    out[seed_idx] = sum(values[start : start + period]) / period
    for i in range(seed_idx + 1, len(values)):
        out[i] = values[i] * k + out[i - 1] * (1 - k)
    return out


def calculate_ema(candles: list[Candle], period: int) -> list[float]:
    """EMA of closing prices, same length as *candles*."""
    return ema_series([c.close for c in candles], period)


# ── RSI ──────────────────────────────────────────────────────────────────


def calculate_rsi(candles: list[Candle], period: int = 14) -> list[float]:
    """Calculate Wilder's Relative Strength Index.

    Algorithm (Wilder-smoothed):
        1. delta = close[i] - close[i-1]
        2. Separate gains (positive) and losses (|negative|).
        3. Seed average gain/loss = SMA of first *period* deltas.
        4. Subsequent: avg = (prev_avg × (period-1) + current) / period
        5. RSI = 100 - 100 / (1 + avg_gain / avg_loss)

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

    rsi: list[float] = [NAN] * len(candles)
    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period

    def _rsi_from_avgs(ag: float, al: float) -> float:
        if al == 0:
            return 100.0
        return 100.0 - 100.0 / (1.0 + ag / al)

    rsi[period] = _rsi_from_avgs(avg_gain, avg_loss)
    for i in range(period, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        rsi[i + 1] = _rsi_from_avgs(avg_gain, avg_loss)

    return rsi


# ── MACD ─────────────────────────────────────────────────────────────────


def calculate_macd(
    candles: list[Candle],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> tuple[list[float], list[float], list[float]]:
    """Calculate MACD with EMA oscillator and EMA signal line.

    MACD      = EMA(close, fast) − EMA(close, slow)
    Signal    = EMA(MACD, signal)
    Histogram = MACD − Signal

    Returns ``(macd, signal, histogram)``.  The signal and histogram
    series are all-NaN when there is not yet enough MACD history for the
    signal EMA.
    """
    if len(candles) < slow_period:
        raise ValueError(
            f"Need at least {slow_period} candles for MACD({fast_period},"
            f"{slow_period},{signal_period}), got {len(candles)}"
        )

    fast = calculate_ema(candles, fast_period)
    slow = calculate_ema(candles, slow_period)
    macd = [
        NAN if math.isnan(f) or math.isnan(s) else f - s
        for f, s in zip(fast, slow)
    ]

    try:
        signal = ema_series(macd, signal_period)
    except ValueError:
        signal = [NAN] * len(macd)

    histogram = [
        NAN if math.isnan(m) or math.isnan(s) else m - s
        for m, s in zip(macd, signal)
    ]
    return macd, signal, histogram


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

    Returns ``(upper, middle, lower)``.
    """
    if len(candles) < period:
        raise ValueError(
            f"Need at least {period} candles for Bollinger({period}), "
            f"got {len(candles)}"
        )

    closes = [c.close for c in candles]
    n = len(closes)
    upper: list[float] = [NAN] * n
    middle: list[float] = [NAN] * n
    lower: list[float] = [NAN] * n

    for i in range(period - 1, n):
        window = closes[i - period + 1 : i + 1]
        sma = sum(window) / period
        sigma = math.sqrt(sum((x - sma) ** 2 for x in window) / period)
        middle[i] = sma
        upper[i] = sma + std_dev * sigma
        lower[i] = sma - std_dev * sigma

    return upper, middle, lower


# ── ATR ──────────────────────────────────────────────────────────────────


def _true_ranges(candles: list[Candle]) -> list[float]:
    """TR per bar; index 0 has no previous close and is left at 0."""
    trs = [0.0]
    for i in range(1, len(candles)):
        high = candles[i].high
        low = candles[i].low
        prev_close = candles[i - 1].close
        trs.append(max(high - low, abs(high - prev_close), abs(low - prev_close)))
    return trs


def calculate_atr(candles: list[Candle], period: int = 14) -> list[float]:
    """Calculate the Wilder-smoothed Average True Range series.

    TR = max(high - low, |high - prev_close|, |low - prev_close|)

    The first ATR is the SMA of the first *period* true ranges and is
    placed at candle index *period*.  Requires ``period + 1`` candles.
    """
    if len(candles) < period + 1:
        raise ValueError(
            f"Need at least {period + 1} candles for ATR({period}), "
            f"got {len(candles)}"
        )

    trs = _true_ranges(candles)
    atr: list[float] = [NAN] * len(candles)
    atr[period] = sum(trs[1 : period + 1]) / period
    for i in range(period + 1, len(candles)):
        atr[i] = (atr[i - 1] * (period - 1) + trs[i]) / period
    return atr


# ── Stochastic ───────────────────────────────────────────────────────────


def calculate_stochastic(
    candles: list[Candle],
    k_length: int = 14,
    d_length: int = 3,
    smooth: int = 3,
) -> tuple[list[float], list[float]]:
    """Calculate the slow Stochastic oscillator.

    raw %K = 100 × (close − lowest_low) / (highest_high − lowest_low)
    %K     = SMA(raw %K, *smooth*)
    %D     = SMA(%K, *d_length*)

    A flat window (highest == lowest) yields a raw %K of 50.
    Returns ``(k, d)``.
    """
    needed = k_length + smooth + d_length - 2
    if len(candles) < needed:
        raise ValueError(
            f"Need at least {needed} candles for Stochastic({k_length},"
            f"{d_length},{smooth}), got {len(candles)}"
        )

    raw_k: list[float] = [NAN] * len(candles)
    for i in range(k_length - 1, len(candles)):
        window = candles[i - k_length + 1 : i + 1]
        highest = max(c.high for c in window)
        lowest = min(c.low for c in window)
        if highest == lowest:
            raw_k[i] = 50.0
        else:
            raw_k[i] = 100.0 * (candles[i].close - lowest) / (highest - lowest)

    k = sma_series(raw_k, smooth) if smooth > 1 else raw_k
    d = sma_series(k, d_length)
    return k, d


# ── ADX ──────────────────────────────────────────────────────────────────


def calculate_adx(
    candles: list[Candle], period: int = 14
) -> tuple[list[float], list[float], list[float]]:
    """Calculate the Average Directional Index with its DI lines.

    Algorithm:
        1. +DM / -DM directional movement per bar.
        2. Wilder-smooth +DM, -DM, and TR over *period*.
        3. +DI = 100 × smoothed_+DM / smoothed_TR
        4. -DI = 100 × smoothed_-DM / smoothed_TR
        5. DX = 100 × |+DI − −DI| / (+DI + −DI)
        6. ADX = Wilder-smoothed DX over *period*.

    Requires at least ``2 × period`` candles.

    Returns ``(adx, plus_di, minus_di)``, each the same length as
    *candles*.
    """
    min_candles = 2 * period
    if len(candles) < min_candles:
        raise ValueError(
            f"Need at least {min_candles} candles for ADX({period}), "
            f"got {len(candles)}"
        )

    n = len(candles)
    plus_dm_raw: list[float] = [0.0]
    minus_dm_raw: list[float] = [0.0]
    tr_raw = _true_ranges(candles)

    for i in range(1, n):
        up_move = candles[i].high - candles[i - 1].high
        down_move = candles[i - 1].low - candles[i].low
        plus_dm_raw.append(up_move if (up_move > down_move and up_move > 0) else 0.0)
        minus_dm_raw.append(down_move if (down_move > up_move and down_move > 0) else 0.0)

    plus_di: list[float] = [NAN] * n
    minus_di: list[float] = [NAN] * n
    dx: list[float] = [NAN] * n

    def _record(i: int, s_pdm: float, s_mdm: float, s_tr: float) -> None:
        if s_tr == 0:
            pdi = mdi = 0.0
        else:
            pdi = 100.0 * s_pdm / s_tr
            mdi = 100.0 * s_mdm / s_tr
        plus_di[i] = pdi
        minus_di[i] = mdi
        di_sum = pdi + mdi
        dx[i] = 0.0 if di_sum == 0 else 100.0 * abs(pdi - mdi) / di_sum

    smoothed_plus_dm = sum(plus_dm_raw[1 : period + 1])
    smoothed_minus_dm = sum(minus_dm_raw[1 : period + 1])
    smoothed_tr = sum(tr_raw[1 : period + 1])
    _record(period, smoothed_plus_dm, smoothed_minus_dm, smoothed_tr)

    for i in range(period + 1, n):
        smoothed_plus_dm = smoothed_plus_dm - smoothed_plus_dm / period + plus_dm_raw[i]
        smoothed_minus_dm = smoothed_minus_dm - smoothed_minus_dm / period + minus_dm_raw[i]
        smoothed_tr = smoothed_tr - smoothed_tr / period + tr_raw[i]
        _record(i, smoothed_plus_dm, smoothed_minus_dm, smoothed_tr)

    # ADX seed = SMA of the first *period* DX values (candle index 2*period-1)
    adx: list[float] = [NAN] * n
    seed_idx = 2 * period - 1
    adx[seed_idx] = sum(dx[period : seed_idx + 1]) / period
    for i in range(seed_idx + 1, n):
        adx[i] = (adx[i - 1] * (period - 1) + dx[i]) / period

    return adx, plus_di, minus_di


# ── Money flow ───────────────────────────────────────────────────────────


def calculate_mfi(candles: list[Candle], period: int = 14) -> list[float]:
    """Calculate the classic Money Flow Index (0–100).

    Raw money flow = typical price × volume, counted as positive when the
    typical price rose versus the previous bar and negative when it fell.
    MFI = 100 − 100 / (1 + positive_sum / negative_sum) over *period* bars.
    """
    if len(candles) < period + 1:
        raise ValueError(
            f"Need at least {period + 1} candles for MFI({period}), "
            f"got {len(candles)}"
        )

    typical = [(c.high + c.low + c.close) / 3 for c in candles]
    positive = [0.0]
    negative = [0.0]
    for i in range(1, len(candles)):
        flow = typical[i] * candles[i].volume
        positive.append(flow if typical[i] > typical[i - 1] else 0.0)
        negative.append(flow if typical[i] < typical[i - 1] else 0.0)

    mfi: list[float] = [NAN] * len(candles)
    for i in range(period, len(candles)):
        pos = sum(positive[i - period + 1 : i + 1])
        neg = sum(negative[i - period + 1 : i + 1])
        if neg == 0:
            mfi[i] = 100.0 if pos > 0 else 50.0
        else:
            mfi[i] = 100.0 - 100.0 / (1.0 + pos / neg)
    return mfi


def calculate_custom_money_flow(
    candles: list[Candle],
    period: int = 60,
    multiplier: float = 225.0,
) -> list[float]:
    """Candle-body money flow oscillator centred on zero.

    Each bar contributes ``(close − open) / (high − low) × multiplier``
    (zero for a bar with no range); the oscillator is the SMA of those
    contributions over *period* bars, or over the whole history when it
    is shorter than *period*.
    """
    if not candles:
        raise ValueError("Need at least 1 candle for money flow, got 0")

    raw = [
        0.0 if c.high == c.low else (c.close - c.open) / (c.high - c.low) * multiplier
        for c in candles
    ]
    return sma_series(raw, min(period, len(raw)))


# ── WaveTrend momentum ───────────────────────────────────────────────────


def calculate_wave_trend(
    candles: list[Candle],
    channel_length: int = 9,
    average_length: int = 12,
    ma_length: int = 3,
) -> tuple[list[float], list[float]]:
    """Calculate the WaveTrend oscillator pair.

    ap  = hlc3
    esa = EMA(ap, channel_length)
    d   = EMA(|ap − esa|, channel_length)
    ci  = (ap − esa) / (0.015 × d)
    wt1 = EMA(ci, average_length)
    wt2 = SMA(wt1, ma_length)

    Returns ``(wt1, wt2)``.
    """
    needed = 2 * channel_length + average_length + ma_length - 3
    if len(candles) < needed:
        raise ValueError(
            f"Need at least {needed} candles for WaveTrend({channel_length},"
            f"{average_length},{ma_length}), got {len(candles)}"
        )

    ap = [(c.high + c.low + c.close) / 3 for c in candles]
    esa = ema_series(ap, channel_length)
    deviation = [NAN if math.isnan(e) else abs(a - e) for a, e in zip(ap, esa)]
    d = ema_series(deviation, channel_length)

    ci: list[float] = []
    for a, e, dv in zip(ap, esa, d):
        if math.isnan(dv):
            ci.append(NAN)
        elif dv == 0:
            ci.append(0.0)
        else:
            ci.append((a - e) / (0.015 * dv))

    wt1 = ema_series(ci, average_length)
    wt2 = sma_series(wt1, ma_length)
    return wt1, wt2


# ── Linear trend regression ──────────────────────────────────────────────


def linear_trend(values: Sequence[float]) -> TrendLine:
    """Fit an ordinary-least-squares line over index 0..n−1.

    slope     = (n·Σxy − Σx·Σy) / (n·Σx² − (Σx)²)
    intercept = mean(y) − slope · mean(x)
    forecast  = slope · n + intercept

    ``Σx`` and ``Σx²`` use their closed forms.  Requires two samples.
    """
    n = len(values)
    if n < 2:
        raise ValueError(f"Need at least 2 values for a linear trend, got {n}")

    y = np.asarray(values, dtype=float)
    x = np.arange(n, dtype=float)
    sum_x = (n - 1) * n / 2
    sum_xx = (n - 1) * n * (2 * n - 1) / 6
    sum_y = float(y.sum())
    sum_xy = float(np.dot(x, y))

    slope = (n * sum_xy - sum_x * sum_y) / (n * sum_xx - sum_x * sum_x)
    intercept = sum_y / n - slope * (sum_x / n)
    forecast = slope * n + intercept

    if slope > 0:
        trend = "increasing"
    elif slope < 0:
        trend = "decreasing"
    else:
        trend = "flat"

    return TrendLine(trend=trend, slope=slope, intercept=intercept, forecast=forecast)


# ── VWAP ─────────────────────────────────────────────────────────────────


def calculate_vwap_bands(
    candles: list[Candle],
) -> tuple[float, float, tuple[float, ...], tuple[float, ...]]:
    """Classical VWAP with volume-weighted standard-deviation bands.

    Pass 1: ``vwap = Σ(tp·vol) / Σvol`` with ``tp = (high + low + close) / 3``.
    Pass 2: ``variance = Σ(vol·(tp − vwap)²) / Σvol``.

    Returns ``(vwap, std_dev, upper_bands, lower_bands)`` where the bands
    are ``vwap ± {1, 2, 3}·std_dev``.

    Raises ``ValueError`` on empty input or zero total volume.
    """
    if not candles:
        raise ValueError("Need at least 1 candle for VWAP, got 0")

    high = np.array([c.high for c in candles], dtype=float)
    low = np.array([c.low for c in candles], dtype=float)
    close = np.array([c.close for c in candles], dtype=float)
    vol = np.array([c.volume for c in candles], dtype=float)

    sum_vol = float(vol.sum())
    if sum_vol == 0:
        raise ValueError("Total volume is zero, VWAP is undefined")

    tp = (high + low + close) / 3
    vwap = float((tp * vol).sum()) / sum_vol
    variance = float((vol * (tp - vwap) ** 2).sum()) / sum_vol
    std_dev = math.sqrt(variance)

    upper = tuple(vwap + m * std_dev for m in (1, 2, 3))
    lower = tuple(vwap - m * std_dev for m in (1, 2, 3))
    return vwap, std_dev, upper, lower


# ── EMA cross detection ──────────────────────────────────────────────────


def find_ema_cross(
    fast: Sequence[float], slow: Sequence[float]
) -> Optional[tuple[int, str]]:
    """Find the most recent crossing of *fast* over/under *slow*.

    Scans backward from the latest pair.  A transition from
    ``fast <= slow`` to ``fast > slow`` between index ``i`` and ``i + 1``
    is a ``"goldenCross"``; ``fast >= slow`` to ``fast < slow`` is a
    ``"deathCross"``.

    Returns ``(i, type)`` or ``None`` when no crossing exists.
    """
    length = min(len(fast), len(slow))
    for i in range(length - 2, -1, -1):
        prev_f, curr_f = fast[i], fast[i + 1]
        prev_s, curr_s = slow[i], slow[i + 1]
        if any(math.isnan(v) for v in (prev_f, curr_f, prev_s, curr_s)):
            continue
        if prev_f <= prev_s and curr_f > curr_s:
            return i, "goldenCross"
        if prev_f >= prev_s and curr_f < curr_s:
            return i, "deathCross"
    return None
