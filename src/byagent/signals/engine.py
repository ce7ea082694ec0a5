"""Indicator aggregator: candle window -> IndicatorSnapshot.

The IndicatorEngine fetches a bounded candle window for one symbol, keeps
only the contiguous, time-ordered suffix, hands each indicator exactly the
history it needs and assembles the snapshot with its signal classification.

If any indicator lacks its warm-up window the whole snapshot is withheld:
``build_snapshot`` raises InsufficientHistoryError and ``compute`` returns
None, which the agent pipeline reports as offline.

CRITICAL: All computations use Decimal. Never use float for indicator values.
"""

from __future__ import annotations

from collections.abc import Sequence

from byagent.config import AgentSettings
from byagent.exceptions import DataSourceError, InsufficientHistoryError
from byagent.exchange.client import MarketDataSource
from byagent.logging import get_logger
from byagent.models import Candle
from byagent.signals.evaluator import classify_signal
from byagent.signals.indicators import atr, ema, macd, rsi
from byagent.signals.models import IndicatorSnapshot

logger = get_logger(__name__)

RSI_PERIOD = 14
ATR_PERIOD = 14

#: Closes handed to each indicator. RSI gets 60 extra closes of Wilder warm-up.
RSI_WINDOW = RSI_PERIOD + 60
EMA50_WINDOW = 200
EMA200_WINDOW = 300
MACD_WINDOW = 200


def contiguous_suffix(candles: Sequence[Candle], interval_ms: int) -> list[Candle]:
    """Return the trailing run of candles with no missing interval.

    Raises:
        DataSourceError: If candles are not strictly ascending by open time.
    """
    if not candles:
        return []

    start = 0
    for i in range(1, len(candles)):
        step = candles[i].open_time - candles[i - 1].open_time
        if step <= 0:
            raise DataSourceError(
                f"candles out of order at index {i}: "
                f"{candles[i - 1].open_time} -> {candles[i].open_time}"
            )
        if step > interval_ms:
            start = i
    return list(candles[start:])


def build_snapshot(
    symbol: str,
    candles: Sequence[Candle],
    min_candles: int = 200,
    interval_minutes: int = 15,
) -> IndicatorSnapshot:
    """Compute every indicator over a candle window.

    Args:
        symbol: Symbol the candles belong to.
        candles: Candles ordered oldest-first.
        min_candles: Minimum contiguous candles required (EMA200 warm-up).
        interval_minutes: Candle interval, used to detect gaps.

    Raises:
        InsufficientHistoryError: Too few contiguous candles, or any indicator
            could not be computed from its window.
        DataSourceError: Candles are out of order.
    """
    window = contiguous_suffix(candles, interval_minutes * 60_000)
    if len(window) < min_candles:
        raise InsufficientHistoryError(symbol, len(window), min_candles)

    closes = [c.close for c in window]

    rsi14 = rsi(closes[-RSI_WINDOW:], RSI_PERIOD)
    ema50 = ema(closes[-EMA50_WINDOW:], 50)
    ema200 = ema(closes[-EMA200_WINDOW:], 200)
    macd_line = macd(closes[-MACD_WINDOW:]).line
    atr14 = atr(window, ATR_PERIOD)

    if any(v.is_nan() for v in (rsi14, ema50, ema200, macd_line, atr14)):
        raise InsufficientHistoryError(symbol, len(window), EMA200_WINDOW)

    last_price = closes[-1]
    return IndicatorSnapshot(
        symbol=symbol,
        last_price=last_price,
        rsi14=rsi14,
        ema50=ema50,
        ema200=ema200,
        macd_line=macd_line,
        atr14=atr14,
        signal=classify_signal(last_price, ema50, rsi14),
    )


class IndicatorEngine:
    """Fetches candles for a symbol and turns them into an IndicatorSnapshot.

    Args:
        source: Market data source providing candles.
        settings: Candle interval, window size and minimum history.
    """

    def __init__(self, source: MarketDataSource, settings: AgentSettings) -> None:
        self._source = source
        self._settings = settings

    async def compute(self, symbol: str) -> IndicatorSnapshot | None:
        """Fetch candles and compute the snapshot.

        Returns:
            The snapshot, or None when history is insufficient. Transport
            failures propagate as DataSourceError.
        """
        candles = await self._source.fetch_candles(
            symbol,
            self._settings.candle_interval_minutes,
            self._settings.candle_limit,
        )

        try:
            snapshot = build_snapshot(
                symbol,
                candles,
                min_candles=self._settings.min_candles,
                interval_minutes=self._settings.candle_interval_minutes,
            )
        except InsufficientHistoryError as e:
            logger.info(
                "insufficient_history",
                symbol=symbol,
                available=e.available,
                required=e.required,
            )
            return None

        logger.debug(
            "indicators_computed",
            symbol=symbol,
            last_price=str(snapshot.last_price),
            rsi14=str(snapshot.rsi14),
            ema50=str(snapshot.ema50),
            signal=snapshot.signal.value,
        )
        return snapshot
