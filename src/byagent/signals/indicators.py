"""Technical indicator math over ordered price series.

Pure functions: no I/O, no shared state, identical input gives identical
output. Series are ordered oldest-first. When the input is shorter than an
indicator's warm-up window the result is ``Decimal("NaN")`` rather than an
approximation; callers check with ``Decimal.is_nan()``.

Intermediate results are quantized to 12 decimal places, the same guard the
EMA trend code uses to stop Decimal division from growing unbounded digits.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from byagent.models import Candle

_QUANTIZE = Decimal("0.000000000001")

NAN = Decimal("NaN")

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class MACDResult:
    """MACD line, its signal line and the histogram between them."""

    line: Decimal
    signal: Decimal
    histogram: Decimal


def _q(value: Decimal) -> Decimal:
    return value.quantize(_QUANTIZE)


def _wilder(previous: Decimal, value: Decimal, period: int) -> Decimal:
    """One step of Wilder's smoothing: ``(prev * (period - 1) + value) / period``."""
    return _q((previous * (period - 1) + value) / period)


def rsi(closes: Sequence[Decimal], period: int = 14) -> Decimal:
    """Relative Strength Index at the last close, using Wilder smoothing.

    The first average gain/loss is the simple mean over the first ``period``
    price changes; every later change is folded in with Wilder's recurrence,
    which is what charting packages display.

    Args:
        closes: Close prices, oldest first. Needs at least ``period + 1``.
        period: Lookback length.

    Returns:
        RSI in [0, 100], or NaN with insufficient data. A flat series (no
        gains, no losses) is 50; only gains is 100; only losses is 0.
    """
    if period < 1 or len(closes) < period + 1:
        return NAN

    gains = _ZERO
    losses = _ZERO
    for i in range(1, period + 1):
        change = closes[i] - closes[i - 1]
        if change > 0:
            gains += change
        else:
            losses -= change

    avg_gain = _q(gains / period)
    avg_loss = _q(losses / period)

    for i in range(period + 1, len(closes)):
        change = closes[i] - closes[i - 1]
        avg_gain = _wilder(avg_gain, max(change, _ZERO), period)
        avg_loss = _wilder(avg_loss, max(-change, _ZERO), period)

    if avg_loss == 0:
        return Decimal("50") if avg_gain == 0 else _HUNDRED
    if avg_gain == 0:
        return _ZERO

    rs = avg_gain / avg_loss
    return _q(_HUNDRED - _HUNDRED / (1 + rs))


def ema_series(values: Sequence[Decimal], period: int) -> list[Decimal]:
    """Exponential Moving Average for every input from index ``period - 1`` on.

    Seeded with the simple average of the first ``period`` values, then:
        k = 2 / (period + 1)
        EMA_t = value_t * k + EMA_{t-1} * (1 - k)

    Returns:
        ``len(values) - period + 1`` EMA values, or an empty list when the
        input is shorter than ``period``.
    """
    if period < 1 or len(values) < period:
        return []

    k = Decimal("2") / (Decimal(period) + Decimal("1"))
    one_minus_k = Decimal("1") - k

    result = [_q(sum(values[:period], _ZERO) / period)]
    for value in values[period:]:
        result.append(_q(value * k + result[-1] * one_minus_k))
    return result


def ema(values: Sequence[Decimal], period: int) -> Decimal:
    """EMA at the last input value, NaN when ``len(values) < period``."""
    series = ema_series(values, period)
    return series[-1] if series else NAN


def macd(
    closes: Sequence[Decimal],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> MACDResult:
    """Moving Average Convergence Divergence at the last close.

    The MACD line series is EMA(fast) - EMA(slow) for every close where both
    exist; the signal line is EMA(signal) over that line series.

    Returns:
        MACDResult. ``line`` is NaN with fewer than ``slow`` closes;
        ``signal`` and ``histogram`` are NaN with fewer than
        ``slow + signal`` closes.
    """
    fast_series = ema_series(closes, fast)
    slow_series = ema_series(closes, slow)
    if not fast_series or not slow_series:
        return MACDResult(line=NAN, signal=NAN, histogram=NAN)

    # Both series end on the last close; drop the fast series' extra head.
    offset = len(fast_series) - len(slow_series)
    line_series = [f - s for f, s in zip(fast_series[offset:], slow_series)]
    line = line_series[-1]

    if len(closes) < slow + signal:
        return MACDResult(line=line, signal=NAN, histogram=NAN)

    signal_value = ema(line_series, signal)
    return MACDResult(line=line, signal=signal_value, histogram=line - signal_value)


def true_range(high: Decimal, low: Decimal, prev_close: Decimal) -> Decimal:
    """Largest of the bar range and the gaps from the previous close."""
    return max(high - low, abs(high - prev_close), abs(low - prev_close))


def atr(rows: Sequence[Candle], period: int = 14) -> Decimal:
    """Average True Range at the last row, using Wilder smoothing.

    The first ATR is the mean of the first ``period`` true ranges; later
    ranges are folded in with Wilder's recurrence. Needs ``period + 1`` rows
    because each true range uses the previous close.
    """
    if period < 1 or len(rows) < period + 1:
        return NAN

    ranges = [
        true_range(row.high, row.low, prev.close)
        for prev, row in zip(rows, rows[1:])
    ]

    value = _q(sum(ranges[:period], _ZERO) / period)
    for tr in ranges[period:]:
        value = _wilder(value, tr, period)
    return value
