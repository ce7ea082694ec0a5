"""Tests for the series math library (RSI, EMA, MACD, ATR).

All test values use Decimal (project convention). Known values are worked
out by hand in each docstring.
"""

from decimal import Decimal

from byagent.models import Candle
from byagent.signals.indicators import atr, ema, ema_series, macd, rsi, true_range


def _d(values: list) -> list[Decimal]:
    return [Decimal(str(v)) for v in values]


def _rows(ranges: list[int], close: Decimal = Decimal("10")) -> list[Candle]:
    """Rows with a constant close whose true range equals the given high - close."""
    rows = [Candle(open_time=0, open=close, high=close, low=close, close=close)]
    for i, r in enumerate(ranges, start=1):
        rows.append(
            Candle(open_time=i, open=close, high=close + r, low=close, close=close)
        )
    return rows


class TestRsi:
    """Tests for Wilder RSI."""

    def test_known_values_period_2(self) -> None:
        """closes 1,2,3,2 with period 2.

        seed: gains (1+1)/2 = 1, losses 0
        change -1: avg_gain = (1*1 + 0)/2 = 0.5, avg_loss = (0*1 + 1)/2 = 0.5
        RS = 1 -> RSI = 50
        """
        assert rsi(_d([1, 2, 3, 2]), period=2) == Decimal("50")

    def test_wilder_smoothing_continues(self) -> None:
        """One more +1 change: avg_gain 0.75, avg_loss 0.25, RS 3 -> RSI 75."""
        assert rsi(_d([1, 2, 3, 2, 3]), period=2) == Decimal("75")

    def test_constant_series_is_50(self) -> None:
        assert rsi([Decimal("100")] * 74) == Decimal("50")

    def test_only_gains_is_100(self) -> None:
        closes = [Decimal(100 + i) for i in range(30)]
        assert rsi(closes) == Decimal("100")

    def test_only_losses_is_0(self) -> None:
        closes = [Decimal(100 - i) for i in range(30)]
        assert rsi(closes) == Decimal("0")

    def test_insufficient_data_is_nan(self) -> None:
        """Needs period + 1 closes."""
        assert rsi([Decimal("1")] * 14, period=14).is_nan()

    def test_exactly_period_plus_one(self) -> None:
        closes = [Decimal(100 + i) for i in range(15)]
        assert not rsi(closes, period=14).is_nan()

    def test_result_within_bounds(self) -> None:
        closes = _d([100, 102, 101, 105, 103, 104, 108, 107, 103, 101, 99, 104, 106, 110, 108, 109])
        value = rsi(closes)
        assert Decimal("0") <= value <= Decimal("100")


class TestEma:
    """Tests for SMA-seeded EMA."""

    def test_known_values_period_3(self) -> None:
        """k = 2/(3+1) = 0.5, seed = SMA(1,2,3) = 2.

        EMA[3] = 4*0.5 + 2*0.5 = 3
        EMA[4] = 5*0.5 + 3*0.5 = 4
        """
        assert ema_series(_d([1, 2, 3, 4, 5]), 3) == _d([2, 3, 4])
        assert ema(_d([1, 2, 3, 4, 5]), 3) == Decimal("4")

    def test_constant_series_returns_value(self) -> None:
        assert ema([Decimal("100")] * 200, 50) == Decimal("100")

    def test_constant_small_values(self) -> None:
        assert ema([Decimal("0.0003")] * 20, 6) == Decimal("0.0003")

    def test_exactly_period_values_is_sma(self) -> None:
        assert ema(_d([2, 4, 6]), 3) == Decimal("4")

    def test_insufficient_data_is_nan(self) -> None:
        assert ema(_d([1, 2]), 3).is_nan()
        assert ema_series(_d([1, 2]), 3) == []

    def test_values_are_quantized(self) -> None:
        for value in ema_series(_d([1, 2, 3, 4, 5, 6, 7]), 3):
            assert value.as_tuple().exponent == -12


class TestMacd:
    """Tests for MACD line / signal / histogram."""

    def test_known_values_small_periods(self) -> None:
        """fast=3 (k=0.5), slow=4 (k=0.4), signal=3 keep every step exact.

        EMA3 from index 2: 4, 6, 6, 7, 5.5
        EMA4 from index 3: 5, 5.4, 6.44, 5.464
        line series:       1, 0.6, 0.56, 0.036
        signal: seed (1 + 0.6 + 0.56) / 3 = 0.72, then 0.036 * 0.5 + 0.72 * 0.5
        """
        result = macd(_d([2, 4, 6, 8, 6, 8, 4]), fast=3, slow=4, signal=3)
        assert result.line == Decimal("0.036")
        assert result.signal == Decimal("0.378")
        assert result.histogram == Decimal("-0.342")

    def test_line_tracks_last_close_without_signal(self) -> None:
        """One close short of slow + signal: line at index 5, no signal yet."""
        result = macd(_d([2, 4, 6, 8, 6, 8]), fast=3, slow=4, signal=3)
        assert result.line == Decimal("0.56")
        assert result.signal.is_nan()

    def test_constant_series_is_zero(self) -> None:
        result = macd([Decimal("100")] * 200)
        assert result.line == Decimal("0")
        assert result.signal == Decimal("0")
        assert result.histogram == Decimal("0")

    def test_rising_series_has_positive_line(self) -> None:
        closes = [Decimal(100 + i) for i in range(200)]
        result = macd(closes)
        assert result.line > 0
        assert result.histogram == result.line - result.signal

    def test_falling_series_has_negative_line(self) -> None:
        closes = [Decimal(500 - i) for i in range(200)]
        assert macd(closes).line < 0

    def test_line_without_signal_when_short(self) -> None:
        """30 closes: enough for the slow EMA (26) but not slow + signal (35)."""
        result = macd([Decimal(100 + i) for i in range(30)])
        assert not result.line.is_nan()
        assert result.signal.is_nan()
        assert result.histogram.is_nan()

    def test_all_nan_below_slow_period(self) -> None:
        result = macd([Decimal("1")] * 25)
        assert result.line.is_nan()
        assert result.signal.is_nan()


class TestAtr:
    """Tests for true range and Wilder ATR."""

    def test_true_range_uses_previous_close_gap(self) -> None:
        """max(10-8, |10-12|, |8-12|) = 4."""
        assert true_range(Decimal("10"), Decimal("8"), Decimal("12")) == Decimal("4")

    def test_true_range_plain_bar(self) -> None:
        assert true_range(Decimal("11"), Decimal("9"), Decimal("10")) == Decimal("2")

    def test_known_values_period_2(self) -> None:
        """True ranges 2, 4, 6: seed (2+4)/2 = 3, then (3*1 + 6)/2 = 4.5."""
        assert atr(_rows([2, 4, 6]), period=2) == Decimal("4.5")

    def test_constant_range(self) -> None:
        assert atr(_rows([2] * 30)) == Decimal("2")

    def test_insufficient_rows_is_nan(self) -> None:
        """14 rows give only 13 true ranges."""
        assert atr(_rows([2] * 13)).is_nan()
