"""Indicator snapshot and signal plan models.

CRITICAL: All indicator and price values use Decimal. Never use float for signal computations.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class SignalDirection(str, Enum):
    """Advisory direction derived from price, EMA50 and RSI."""

    LONG = "LONG"
    SHORT = "SHORT"
    FLAT = "FLAT"


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Indicators computed from one candle window for a single symbol.

    Recomputed on every tick and never persisted.
    """

    symbol: str
    last_price: Decimal
    rsi14: Decimal
    ema50: Decimal
    ema200: Decimal
    macd_line: Decimal
    atr14: Decimal
    signal: SignalDirection


@dataclass(frozen=True)
class SignalPlan:
    """Suggested entry, targets and confidence for a snapshot's signal.

    Every numeric field is None for FLAT signals; renderers show them as "—".
    """

    direction: SignalDirection
    entry: Decimal | None = None
    take_profit: Decimal | None = None
    stop_loss: Decimal | None = None
    risk_reward: Decimal | None = None
    confidence_percent: Decimal | None = None

    @property
    def is_actionable(self) -> bool:
        return self.direction is not SignalDirection.FLAT
