"""Market data source layer -- Bybit public API integration via ccxt."""

from byagent.exchange.bybit_client import BybitMarketData
from byagent.exchange.client import MarketDataSource
from byagent.exchange.symbols import normalize_symbol

__all__ = ["BybitMarketData", "MarketDataSource", "normalize_symbol"]
