"""Price/indicator refresh pipeline.

Each tick: IndicatorEngine.compute -> build_signal_plan -> TrendTracker ->
publish an AgentUpdate. Insufficient history publishes an OFFLINE update and
leaves the trend state untouched; a failed tick publishes ERROR.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType

from byagent.logging import get_logger
from byagent.models import TickStatus, TrendDirection
from byagent.scheduler import RefreshScheduler
from byagent.signals.engine import IndicatorEngine
from byagent.signals.evaluator import build_signal_plan
from byagent.signals.models import IndicatorSnapshot, SignalPlan
from byagent.trend_tracker import TrendTracker

logger = get_logger(__name__)


@dataclass(frozen=True)
class AgentUpdate:
    """What the renderer receives after every price/indicator tick."""

    symbol: str
    status: TickStatus
    snapshot: IndicatorSnapshot | None = None
    plan: SignalPlan | None = None
    trends: Mapping[str, TrendDirection] = field(default_factory=dict)
    error: str | None = None
    updated_at: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        object.__setattr__(self, "trends", MappingProxyType(dict(self.trends)))


AgentPublisher = Callable[[AgentUpdate], Awaitable[None]]


def _tracked_metrics(snapshot: IndicatorSnapshot) -> dict[str, Decimal]:
    return {
        "rsi": snapshot.rsi14,
        "ema50": snapshot.ema50,
        "ema200": snapshot.ema200,
        "macd": snapshot.macd_line,
        "atr": snapshot.atr14,
    }


class AgentPipeline:
    """Periodically computes indicators and the advisory signal for one symbol.

    The symbol can be changed at runtime; ``restart()`` must follow so that
    results computed for the old symbol are discarded.

    Args:
        engine: Indicator aggregator.
        publish: Async callback receiving every AgentUpdate.
        symbol: Initial symbol.
        refresh_period: Seconds between ticks.
    """

    def __init__(
        self,
        engine: IndicatorEngine,
        publish: AgentPublisher,
        symbol: str,
        refresh_period: float,
    ) -> None:
        self._engine = engine
        self._publish = publish
        self.symbol = symbol
        self.trend_tracker = TrendTracker()
        self.last_update: AgentUpdate | None = None
        self.scheduler: RefreshScheduler[tuple[str, IndicatorSnapshot | None]] = RefreshScheduler(
            name="agent",
            interval=refresh_period,
            compute=self._compute,
            commit=self._commit,
            on_error=self._report_error,
        )

    async def restart(self, refresh_period: float | None = None) -> None:
        """(Re)arm the scheduler, optionally with a new period."""
        await self.scheduler.start(refresh_period)

    async def stop(self) -> None:
        await self.scheduler.stop()

    async def _compute(self) -> tuple[str, IndicatorSnapshot | None]:
        symbol = self.symbol
        return symbol, await self._engine.compute(symbol)

    async def _commit(self, result: tuple[str, IndicatorSnapshot | None]) -> None:
        symbol, snapshot = result
        if snapshot is None:
            await self._emit(AgentUpdate(symbol=symbol, status=TickStatus.OFFLINE))
            return

        plan = build_signal_plan(snapshot)
        trends = {
            metric: self.trend_tracker.classify(metric, value)
            for metric, value in _tracked_metrics(snapshot).items()
        }

        logger.info(
            "agent_signal",
            symbol=symbol,
            signal=snapshot.signal.value,
            last_price=str(snapshot.last_price),
            rsi14=str(snapshot.rsi14),
            confidence=str(plan.confidence_percent) if plan.confidence_percent is not None else None,
        )
        await self._emit(
            AgentUpdate(
                symbol=symbol,
                status=TickStatus.ONLINE,
                snapshot=snapshot,
                plan=plan,
                trends=trends,
            )
        )

    async def _report_error(self, error: Exception) -> None:
        await self._emit(
            AgentUpdate(symbol=self.symbol, status=TickStatus.ERROR, error=str(error))
        )

    async def _emit(self, update: AgentUpdate) -> None:
        self.last_update = update
        await self._publish(update)
