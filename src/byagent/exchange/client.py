"""Abstract market data source interface.

Defines the read-only capabilities the engine consumes. Pipelines depend
only on this interface, keeping Bybit/ccxt details isolated in the concrete
implementation.

Contract for every fetch: either return complete, ordered data or raise
DataSourceError. Never return a partial or corrupt result.
"""

from abc import ABC, abstractmethod
from decimal import Decimal

from byagent.models import Candle, OpenInterestPoint, SymbolInfo, Trade


class MarketDataSource(ABC):
    """Abstract base class for market data providers."""

    @abstractmethod
    async def connect(self) -> None:
        """Initialize connection and load markets."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release network resources."""
        ...

    @abstractmethod
    async def list_symbols(self) -> list[SymbolInfo]:
        """Return all USDT-quoted linear perpetuals (exchange ids such as BTCUSDT)."""
        ...

    @abstractmethod
    async def fetch_candles(
        self, symbol: str, interval_minutes: int, limit: int
    ) -> list[Candle]:
        """Fetch the latest ``limit`` candles, oldest first."""
        ...

    @abstractmethod
    async def fetch_open_interest(
        self, symbol: str, interval: str, limit: int = 2
    ) -> list[OpenInterestPoint]:
        """Fetch the latest open interest samples for a lookback label, oldest first."""
        ...

    @abstractmethod
    async def fetch_recent_trades(self, symbol: str, limit: int = 50) -> list[Trade]:
        """Fetch the most recent public trades."""
        ...

    @abstractmethod
    async def fetch_funding_rate(self, symbol: str) -> Decimal | None:
        """Fetch the current funding rate, None when the exchange reports none."""
        ...
