"""Configuration system using pydantic-settings with environment variable loading."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

#: Open-interest lookback labels accepted by the OI pipeline (Bybit intervalTime values).
OIInterval = Literal["5min", "15min", "30min", "1h", "4h", "1d"]

OI_INTERVALS: tuple[str, ...] = ("5min", "15min", "30min", "1h", "4h", "1d")


class ExchangeSettings(BaseSettings):
    """Bybit public market data connection settings."""

    model_config = SettingsConfigDict(env_prefix="BYBIT_")

    testnet: bool = False


class AgentSettings(BaseSettings):
    """Price/indicator pipeline parameters."""

    model_config = SettingsConfigDict(env_prefix="AGENT_")

    symbol: str = "BTCUSDT"
    refresh_period: int = Field(default=30, gt=0)  # seconds between indicator ticks
    candle_interval_minutes: int = 15
    candle_limit: int = Field(default=300, ge=300)  # EMA200 window needs 300
    min_candles: int = Field(default=200, ge=200)  # below this the tick is offline


class OpenInterestSettings(BaseSettings):
    """Open-interest / taker volume / funding pipeline parameters."""

    model_config = SettingsConfigDict(env_prefix="OI_")

    poll_interval: float = Field(default=10.0, gt=0)
    interval: OIInterval = "5min"
    trades_limit: int = 50


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    exchange: ExchangeSettings = ExchangeSettings()
    agent: AgentSettings = AgentSettings()
    open_interest: OpenInterestSettings = OpenInterestSettings()
