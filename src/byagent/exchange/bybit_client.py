"""Bybit market data source implementation via ccxt async.

Wraps ccxt.async_support.bybit for the public linear-perpetual endpoints the
engine reads: klines, open interest history, recent trades and funding rate.
Symbols are accepted as Bybit exchange ids (BTCUSDT) and translated to ccxt
unified symbols (BTC/USDT:USDT) from the loaded markets.

Every ccxt failure or malformed payload is re-raised as DataSourceError.
"""

from decimal import Decimal, InvalidOperation

import ccxt.async_support as ccxt_async

from byagent.config import ExchangeSettings
from byagent.exceptions import DataSourceError
from byagent.exchange.client import MarketDataSource
from byagent.logging import get_logger
from byagent.models import Candle, OpenInterestPoint, SymbolInfo, Trade, TradeSide

logger = get_logger(__name__)

#: Candle interval in minutes -> ccxt timeframe.
_CANDLE_TIMEFRAMES: dict[int, str] = {
    1: "1m",
    3: "3m",
    5: "5m",
    15: "15m",
    30: "30m",
    60: "1h",
    120: "2h",
    240: "4h",
    360: "6h",
    720: "12h",
    1440: "1d",
}

#: Open interest lookback label -> ccxt timeframe.
_OI_TIMEFRAMES: dict[str, str] = {
    "5min": "5m",
    "15min": "15m",
    "30min": "30m",
    "1h": "1h",
    "4h": "4h",
    "1d": "1d",
}

_MALFORMED = (KeyError, IndexError, TypeError, ValueError, InvalidOperation)


def _dec(value: object) -> Decimal:
    return Decimal(str(value))


class BybitMarketData(MarketDataSource):
    """Concrete Bybit market data source using ccxt async (public endpoints only)."""

    def __init__(self, settings: ExchangeSettings) -> None:
        self._settings = settings
        self._exchange = ccxt_async.bybit(
            {
                "enableRateLimit": True,
                "options": {
                    "defaultType": "swap",
                },
            }
        )
        if settings.testnet:
            self._exchange.set_sandbox_mode(True)
        self._markets: dict = {}
        self._unified_by_id: dict[str, str] = {}

    @property
    def exchange(self) -> ccxt_async.bybit:
        """Access the underlying ccxt exchange instance."""
        return self._exchange

    async def connect(self) -> None:
        """Load markets and build the exchange-id lookup."""
        logger.info("connecting_to_bybit", testnet=self._settings.testnet)
        await self.load_markets()
        logger.info("bybit_connected", market_count=len(self._markets))

    async def close(self) -> None:
        """Clean up ccxt async resources. CRITICAL: must be called to avoid resource leaks."""
        logger.info("closing_bybit_connection")
        await self._exchange.close()
        logger.info("bybit_connection_closed")

    async def load_markets(self) -> dict:
        """Load and cache market data from Bybit."""
        try:
            self._markets = await self._exchange.load_markets()
        except ccxt_async.BaseError as e:
            raise DataSourceError(f"failed to load markets: {e}") from e
        self._unified_by_id = {
            market["id"]: unified
            for unified, market in self._markets.items()
            if market.get("linear") and market.get("swap")
        }
        return self._markets

    def _unified(self, symbol: str) -> str:
        """Translate an exchange id to a ccxt unified symbol when known."""
        return self._unified_by_id.get(symbol, symbol)

    async def list_symbols(self) -> list[SymbolInfo]:
        """Return USDT-quoted linear perpetuals, keyed by exchange id."""
        if not self._markets:
            await self.load_markets()

        symbols = [
            SymbolInfo(symbol=market["id"], base=market["base"], quote=market["quote"])
            for market in self._markets.values()
            if market.get("linear") and market.get("swap") and market.get("quote") == "USDT"
        ]
        logger.debug("fetched_symbols", count=len(symbols))
        return symbols

    async def fetch_candles(
        self, symbol: str, interval_minutes: int, limit: int
    ) -> list[Candle]:
        """Fetch OHLCV candles via ccxt, sorted oldest first."""
        timeframe = _CANDLE_TIMEFRAMES.get(interval_minutes)
        if timeframe is None:
            raise ValueError(f"Unsupported candle interval: {interval_minutes} minutes")

        try:
            rows = await self._exchange.fetch_ohlcv(
                self._unified(symbol), timeframe, limit=limit
            )
        except ccxt_async.BaseError as e:
            raise DataSourceError(f"fetch_ohlcv failed for {symbol}: {e}") from e

        try:
            candles = [
                Candle(
                    open_time=int(row[0]),
                    open=_dec(row[1]),
                    high=_dec(row[2]),
                    low=_dec(row[3]),
                    close=_dec(row[4]),
                    volume=_dec(row[5]) if len(row) > 5 and row[5] is not None else Decimal("0"),
                )
                for row in rows
            ]
        except _MALFORMED as e:
            raise DataSourceError(f"malformed candle data for {symbol}: {e}") from e

        candles.sort(key=lambda c: c.open_time)
        return candles

    async def fetch_open_interest(
        self, symbol: str, interval: str, limit: int = 2
    ) -> list[OpenInterestPoint]:
        """Fetch open interest history samples, sorted oldest first."""
        timeframe = _OI_TIMEFRAMES.get(interval)
        if timeframe is None:
            raise ValueError(f"Unsupported open interest interval: {interval}")

        try:
            entries = await self._exchange.fetch_open_interest_history(
                self._unified(symbol), timeframe, limit=limit
            )
        except ccxt_async.BaseError as e:
            raise DataSourceError(f"fetch_open_interest_history failed for {symbol}: {e}") from e

        try:
            points = []
            for entry in entries:
                amount = entry.get("openInterestAmount")
                if amount is None:
                    amount = entry["info"]["openInterest"]
                points.append(
                    OpenInterestPoint(timestamp=int(entry["timestamp"]), open_interest=_dec(amount))
                )
        except _MALFORMED as e:
            raise DataSourceError(f"malformed open interest data for {symbol}: {e}") from e

        points.sort(key=lambda p: p.timestamp)
        return points

    async def fetch_recent_trades(self, symbol: str, limit: int = 50) -> list[Trade]:
        """Fetch the latest public trades."""
        try:
            raw_trades = await self._exchange.fetch_trades(self._unified(symbol), limit=limit)
        except ccxt_async.BaseError as e:
            raise DataSourceError(f"fetch_trades failed for {symbol}: {e}") from e

        try:
            return [
                Trade(
                    side=TradeSide(str(t["side"]).lower()),
                    size=_dec(t["amount"]),
                    price=_dec(t["price"]),
                    timestamp=int(t.get("timestamp") or 0),
                )
                for t in raw_trades
            ]
        except _MALFORMED as e:
            raise DataSourceError(f"malformed trade data for {symbol}: {e}") from e

    async def fetch_funding_rate(self, symbol: str) -> Decimal | None:
        """Fetch the current funding rate for a perpetual."""
        try:
            data = await self._exchange.fetch_funding_rate(self._unified(symbol))
        except ccxt_async.BaseError as e:
            raise DataSourceError(f"fetch_funding_rate failed for {symbol}: {e}") from e

        raw_rate = data.get("fundingRate")
        if raw_rate is None:
            return None
        try:
            return _dec(raw_rate)
        except InvalidOperation as e:
            raise DataSourceError(f"invalid funding rate for {symbol}: {raw_rate!r}") from e
