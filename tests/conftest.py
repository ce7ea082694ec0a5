"""Shared test fixtures for the indicator and signal engine."""

from collections.abc import Callable, Sequence
from decimal import Decimal

import pytest

from byagent.config import AgentSettings, AppSettings, ExchangeSettings, OpenInterestSettings
from byagent.models import Candle

#: 15-minute candles, in milliseconds.
INTERVAL_MS = 15 * 60_000
START_MS = 1_700_000_000_000

CandleFactory = Callable[..., list[Candle]]


def _make_candles(
    closes: Sequence[Decimal | int | str],
    spread: Decimal = Decimal("0"),
    start_ms: int = START_MS,
) -> list[Candle]:
    """Build contiguous 15m candles with open == close and high/low = close +/- spread."""
    candles = []
    for i, raw in enumerate(closes):
        close = Decimal(str(raw))
        candles.append(
            Candle(
                open_time=start_ms + i * INTERVAL_MS,
                open=close,
                high=close + spread,
                low=close - spread,
                close=close,
                volume=Decimal("1"),
            )
        )
    return candles


@pytest.fixture
def candle_factory() -> CandleFactory:
    """Factory producing contiguous, ascending 15-minute candles from closes."""
    return _make_candles


@pytest.fixture
def mock_settings() -> AppSettings:
    """AppSettings with long periods so tests drive ticks explicitly."""
    return AppSettings(
        log_level="DEBUG",
        exchange=ExchangeSettings(testnet=False),
        agent=AgentSettings(symbol="BTCUSDT", refresh_period=60),
        open_interest=OpenInterestSettings(poll_interval=60.0, interval="5min"),
    )
