"""Open-interest / taker volume / funding rate refresh pipeline.

Structurally the same as the agent pipeline but with its own scheduler,
cadence and trend state. Open interest is the primary fetch: if it fails the
tick fails. Recent trades and the funding rate are secondary; a
DataSourceError from either leaves that metric as None without failing the
tick. Anything else raised there is a bug and fails the tick.

CRITICAL: All values use Decimal. Never use float for volumes or rates.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType

from byagent.config import OI_INTERVALS, OpenInterestSettings
from byagent.exceptions import DataSourceError, EngineError
from byagent.exchange.client import MarketDataSource
from byagent.logging import get_logger
from byagent.models import OpenInterestPoint, TickStatus, Trade, TradeSide, TrendDirection
from byagent.scheduler import RefreshScheduler
from byagent.trend_tracker import TrendTracker

logger = get_logger(__name__)


@dataclass(frozen=True)
class OIState:
    """Open interest change plus taker flow and funding for one symbol."""

    open_interest_now: Decimal
    open_interest_delta: Decimal
    delta_percent: Decimal
    delta_direction: TrendDirection
    taker_buy_volume: Decimal | None = None
    taker_sell_volume: Decimal | None = None
    funding_rate: Decimal | None = None


@dataclass(frozen=True)
class OIUpdate:
    """What the renderer receives after every open-interest tick."""

    symbol: str
    status: TickStatus
    interval: str
    state: OIState | None = None
    trends: Mapping[str, TrendDirection] = field(default_factory=dict)
    error: str | None = None
    updated_at: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        object.__setattr__(self, "trends", MappingProxyType(dict(self.trends)))


OIPublisher = Callable[[OIUpdate], Awaitable[None]]


def compute_oi_delta(
    points: Sequence[OpenInterestPoint],
) -> tuple[Decimal, Decimal, Decimal, TrendDirection]:
    """Change between the two latest open interest samples.

    A single sample compares against itself (delta 0). The percentage is
    0 when the previous open interest is 0.

    Returns:
        (open_interest_now, delta, delta_percent, direction of delta)

    Raises:
        DataSourceError: If there are no samples.
    """
    if not points:
        raise DataSourceError("no open interest samples returned")

    now = points[-1].open_interest
    prev = points[-2].open_interest if len(points) > 1 else now
    delta = now - prev
    delta_percent = delta / prev * 100 if prev != 0 else Decimal("0")

    if delta > 0:
        direction = TrendDirection.UP
    elif delta < 0:
        direction = TrendDirection.DOWN
    else:
        direction = TrendDirection.FLAT
    return now, delta, delta_percent, direction


def compute_taker_volume(trades: Sequence[Trade]) -> tuple[Decimal, Decimal] | None:
    """Sum taker buy and sell notional (size * price). None for no trades."""
    if not trades:
        return None
    buy = sum((t.notional for t in trades if t.side is TradeSide.BUY), Decimal("0"))
    sell = sum((t.notional for t in trades if t.side is TradeSide.SELL), Decimal("0"))
    return buy, sell


class OpenInterestPipeline:
    """Periodically refreshes open interest, taker flow and funding rate.

    Args:
        source: Market data source.
        publish: Async callback receiving every OIUpdate.
        symbol: Initial symbol.
        settings: Poll interval, lookback label and trade sample size.
    """

    def __init__(
        self,
        source: MarketDataSource,
        publish: OIPublisher,
        symbol: str,
        settings: OpenInterestSettings,
    ) -> None:
        self._source = source
        self._publish = publish
        self._trades_limit = settings.trades_limit
        self.symbol = symbol
        self.interval: str = settings.interval
        self.trend_tracker = TrendTracker()
        self.last_update: OIUpdate | None = None
        self.scheduler: RefreshScheduler[tuple[str, str, OIState]] = RefreshScheduler(
            name="open_interest",
            interval=settings.poll_interval,
            compute=self._compute,
            commit=self._commit,
            on_error=self._report_error,
        )

    async def restart(self) -> None:
        await self.scheduler.start()

    async def stop(self) -> None:
        await self.scheduler.stop()

    async def set_interval(self, interval: str) -> bool:
        """Switch the open interest lookback label and refresh immediately.

        Returns:
            True if the immediate refresh committed.

        Raises:
            ValueError: If the label is not a supported lookback.
        """
        if interval not in OI_INTERVALS:
            raise ValueError(f"Unsupported open interest interval: {interval}")
        self.interval = interval
        return await self.scheduler.run_once()

    async def _compute(self) -> tuple[str, str, OIState]:
        symbol = self.symbol
        interval = self.interval

        points = await self._source.fetch_open_interest(symbol, interval, limit=2)
        now, delta, delta_percent, direction = compute_oi_delta(points)

        taker_buy: Decimal | None = None
        taker_sell: Decimal | None = None
        try:
            trades = await self._source.fetch_recent_trades(symbol, limit=self._trades_limit)
            volumes = compute_taker_volume(trades)
            if volumes is not None:
                taker_buy, taker_sell = volumes
        except EngineError as e:
            logger.warning("taker_volume_unavailable", symbol=symbol, error=str(e))

        funding_rate: Decimal | None = None
        try:
            funding_rate = await self._source.fetch_funding_rate(symbol)
        except EngineError as e:
            logger.warning("funding_rate_unavailable", symbol=symbol, error=str(e))

        state = OIState(
            open_interest_now=now,
            open_interest_delta=delta,
            delta_percent=delta_percent,
            delta_direction=direction,
            taker_buy_volume=taker_buy,
            taker_sell_volume=taker_sell,
            funding_rate=funding_rate,
        )
        return symbol, interval, state

    async def _commit(self, result: tuple[str, str, OIState]) -> None:
        symbol, interval, state = result

        metrics: dict[str, Decimal | None] = {
            "open_interest": state.open_interest_now,
            "taker_buy_volume": state.taker_buy_volume,
            "taker_sell_volume": state.taker_sell_volume,
            "funding_rate": state.funding_rate,
        }
        trends = {
            metric: self.trend_tracker.classify(metric, value)
            for metric, value in metrics.items()
            if value is not None
        }

        logger.debug(
            "open_interest_updated",
            symbol=symbol,
            interval=interval,
            open_interest=str(state.open_interest_now),
            delta_percent=str(state.delta_percent),
        )
        await self._emit(
            OIUpdate(
                symbol=symbol,
                status=TickStatus.ONLINE,
                interval=interval,
                state=state,
                trends=trends,
            )
        )

    async def _report_error(self, error: Exception) -> None:
        await self._emit(
            OIUpdate(
                symbol=self.symbol,
                status=TickStatus.ERROR,
                interval=self.interval,
                error=str(error),
            )
        )

    async def _emit(self, update: OIUpdate) -> None:
        self.last_update = update
        await self._publish(update)
