"""Custom exceptions for the indicator and signal engine.

Everything raised inside a refresh tick derives from EngineError so the
scheduler boundary can tell engine failures apart from programming errors
in the logs.
"""


class EngineError(Exception):
    """Base exception for all engine errors."""


class InsufficientHistoryError(EngineError):
    """Raised when fewer candles are available than an indicator's warm-up window.

    The tick reports the symbol as offline; no partial snapshot is published.
    """

    def __init__(self, symbol: str, available: int, required: int) -> None:
        self.symbol = symbol
        self.available = available
        self.required = required
        super().__init__(
            f"{symbol}: {available} contiguous candles available, {required} required"
        )


class DataSourceError(EngineError):
    """Raised when the market data source fails or returns unusable data.

    Treated as transient: the tick reports an error and the scheduler
    retries at the next interval.
    """
