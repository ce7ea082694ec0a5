"""Dashboard orchestrator -- owns both refresh pipelines for the selected symbol.

The orchestrator is the only place that reacts to user-driven changes:

- symbol switch: restart both pipelines so in-flight results for the old
  symbol are discarded by generation
- indicator refresh period change: restart the agent pipeline only
- open interest lookback change: refresh open interest immediately

The two pipelines share no state; each keeps its own scheduler and trend
tracker.
"""

from __future__ import annotations

import asyncio

from byagent.config import AppSettings
from byagent.exceptions import EngineError
from byagent.exchange.client import MarketDataSource
from byagent.exchange.symbols import normalize_symbol
from byagent.logging import get_logger
from byagent.models import SymbolInfo
from byagent.pipelines.agent import AgentPipeline, AgentPublisher
from byagent.pipelines.open_interest import OIPublisher, OpenInterestPipeline
from byagent.scheduler import SchedulerState
from byagent.signals.engine import IndicatorEngine

logger = get_logger(__name__)


class Orchestrator:
    """Wires the agent and open-interest pipelines to one selected symbol.

    Args:
        settings: Application settings (initial symbol, periods, OI lookback).
        source: Market data source shared by both pipelines.
        publish_agent: Receives every AgentUpdate.
        publish_oi: Receives every OIUpdate.
    """

    def __init__(
        self,
        settings: AppSettings,
        source: MarketDataSource,
        publish_agent: AgentPublisher,
        publish_oi: OIPublisher,
    ) -> None:
        self._settings = settings
        self._source = source
        self._symbol = settings.agent.symbol
        self._refresh_period = settings.agent.refresh_period
        self._symbols: list[SymbolInfo] = []

        self.agent = AgentPipeline(
            engine=IndicatorEngine(source, settings.agent),
            publish=publish_agent,
            symbol=self._symbol,
            refresh_period=self._refresh_period,
        )
        self.open_interest = OpenInterestPipeline(
            source=source,
            publish=publish_oi,
            symbol=self._symbol,
            settings=settings.open_interest,
        )

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def symbols(self) -> list[SymbolInfo]:
        return list(self._symbols)

    async def start(self) -> None:
        """Load the symbol list and start both pipelines."""
        await self.load_symbols()
        logger.info(
            "orchestrator_starting",
            symbol=self._symbol,
            refresh_period=self._refresh_period,
            oi_interval=self.open_interest.interval,
        )
        await self._restart_both()

    async def stop(self) -> None:
        """Stop both pipelines."""
        await self.agent.stop()
        await self.open_interest.stop()
        logger.info("orchestrator_stopped", symbol=self._symbol)

    async def _restart_both(self) -> None:
        # Each first tick awaits its own fetch; neither pipeline waits on the other
        await asyncio.gather(
            self.agent.restart(self._refresh_period),
            self.open_interest.restart(),
        )

    async def load_symbols(self) -> list[SymbolInfo]:
        """Refresh the known symbol list. Failures keep the previous list."""
        try:
            self._symbols = await self._source.list_symbols()
        except EngineError as e:
            logger.warning("symbol_list_unavailable", error=str(e))
        return self.symbols

    async def select_symbol(self, raw: str) -> str:
        """Normalize user input, switch both pipelines to it and restart them.

        Returns:
            The normalized symbol.

        Raises:
            ValueError: If the input contains no ticker.
        """
        symbol = normalize_symbol(raw, self._symbols)
        if symbol is None:
            raise ValueError(f"No ticker in input: {raw!r}")

        previous = self._symbol
        self._symbol = symbol
        self.agent.symbol = symbol
        self.open_interest.symbol = symbol
        logger.info("symbol_selected", symbol=symbol, previous=previous)

        await self._restart_both()
        return symbol

    async def set_refresh_period(self, seconds: int) -> None:
        """Change the indicator refresh period and restart the agent pipeline."""
        if seconds <= 0:
            raise ValueError(f"refresh period must be positive, got {seconds}")
        self._refresh_period = seconds
        logger.info("refresh_period_changed", seconds=seconds)
        await self.agent.restart(seconds)

    async def set_oi_interval(self, interval: str) -> None:
        """Change the open interest lookback label and refresh immediately."""
        await self.open_interest.set_interval(interval)
        logger.info("oi_interval_changed", interval=interval)

    def get_status(self) -> dict:
        """Return current state for display."""
        agent_update = self.agent.last_update
        oi_update = self.open_interest.last_update
        return {
            "symbol": self._symbol,
            "refresh_period": self._refresh_period,
            "oi_interval": self.open_interest.interval,
            "agent_running": self.agent.scheduler.state is SchedulerState.ARMED,
            "open_interest_running": self.open_interest.scheduler.state is SchedulerState.ARMED,
            "agent_status": agent_update.status.value if agent_update else None,
            "open_interest_status": oi_update.status.value if oi_update else None,
            "known_symbols": len(self._symbols),
        }
