"""Shared market data models for the indicator and signal engine.

CRITICAL: All prices, volumes and rates use Decimal. Never use float for market values.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class TrendDirection(str, Enum):
    """Change of a metric relative to its value on the previous tick."""

    UP = "up"
    DOWN = "down"
    FLAT = "flat"


class TickStatus(str, Enum):
    """Outcome of a single refresh tick as reported to the renderer."""

    ONLINE = "online"
    OFFLINE = "offline"  # not enough history to compute anything trustworthy
    ERROR = "error"  # the tick raised; retried at the next interval


class TradeSide(str, Enum):
    """Taker side of a public trade."""

    BUY = "buy"
    SELL = "sell"


@dataclass(frozen=True)
class Candle:
    """A single OHLCV bar. Candles arrive oldest-first, one per interval."""

    open_time: int  # Unix milliseconds
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal = Decimal("0")


@dataclass(frozen=True)
class OpenInterestPoint:
    """Open interest sample at the end of one lookback interval."""

    timestamp: int  # Unix milliseconds
    open_interest: Decimal


@dataclass(frozen=True)
class Trade:
    """Recent public trade."""

    side: TradeSide
    size: Decimal
    price: Decimal
    timestamp: int = 0

    @property
    def notional(self) -> Decimal:
        return self.size * self.price


@dataclass(frozen=True)
class SymbolInfo:
    """Tradable linear perpetual as listed by the exchange (e.g. BTCUSDT)."""

    symbol: str
    base: str
    quote: str

