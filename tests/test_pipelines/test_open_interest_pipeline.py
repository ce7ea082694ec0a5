"""Tests for the open-interest / taker volume / funding pipeline.

All tests use a mocked MarketDataSource to avoid real API calls.
"""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from byagent.config import OpenInterestSettings
from byagent.exceptions import DataSourceError
from byagent.exchange.client import MarketDataSource
from byagent.models import OpenInterestPoint, TickStatus, Trade, TradeSide, TrendDirection
from byagent.pipelines.open_interest import (
    OIUpdate,
    OpenInterestPipeline,
    compute_oi_delta,
    compute_taker_volume,
)


def _points(*values: str) -> list[OpenInterestPoint]:
    return [
        OpenInterestPoint(timestamp=1_700_000_000_000 + i * 300_000, open_interest=Decimal(v))
        for i, v in enumerate(values)
    ]


MOCK_TRADES = [
    Trade(side=TradeSide.BUY, size=Decimal("2"), price=Decimal("100")),
    Trade(side=TradeSide.BUY, size=Decimal("1"), price=Decimal("101")),
    Trade(side=TradeSide.SELL, size=Decimal("3"), price=Decimal("99")),
]


@pytest.fixture
def source() -> AsyncMock:
    source = AsyncMock(spec=MarketDataSource)
    source.fetch_open_interest.return_value = _points("1000", "1100")
    source.fetch_recent_trades.return_value = MOCK_TRADES
    source.fetch_funding_rate.return_value = Decimal("0.0001")
    return source


@pytest.fixture
def publish() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def pipeline(source: AsyncMock, publish: AsyncMock) -> OpenInterestPipeline:
    return OpenInterestPipeline(
        source=source,
        publish=publish,
        symbol="BTCUSDT",
        settings=OpenInterestSettings(poll_interval=60.0),
    )


def _published(publish: AsyncMock) -> list[OIUpdate]:
    return [c.args[0] for c in publish.await_args_list]


class TestComputeOiDelta:
    """Tests for the open interest delta math."""

    def test_rising_open_interest(self) -> None:
        now, delta, pct, direction = compute_oi_delta(_points("1000", "1100"))
        assert now == Decimal("1100")
        assert delta == Decimal("100")
        assert pct == Decimal("10")
        assert direction == TrendDirection.UP

    def test_falling_open_interest(self) -> None:
        _, delta, pct, direction = compute_oi_delta(_points("1000", "950"))
        assert delta == Decimal("-50")
        assert pct == Decimal("-5")
        assert direction == TrendDirection.DOWN

    def test_single_sample_has_zero_delta(self) -> None:
        now, delta, pct, direction = compute_oi_delta(_points("1000"))
        assert now == Decimal("1000")
        assert delta == Decimal("0")
        assert pct == Decimal("0")
        assert direction == TrendDirection.FLAT

    def test_zero_previous_gives_zero_percent(self) -> None:
        _, delta, pct, _ = compute_oi_delta(_points("0", "500"))
        assert delta == Decimal("500")
        assert pct == Decimal("0")

    def test_no_samples_raises(self) -> None:
        with pytest.raises(DataSourceError):
            compute_oi_delta([])


class TestComputeTakerVolume:
    """Tests for taker notional aggregation."""

    def test_sums_notional_by_side(self) -> None:
        assert compute_taker_volume(MOCK_TRADES) == (Decimal("301"), Decimal("297"))

    def test_no_trades_is_unavailable(self) -> None:
        assert compute_taker_volume([]) is None


class TestOpenInterestTicks:
    """Tests for tick outcomes and partial failures."""

    @pytest.mark.asyncio
    async def test_full_tick(
        self, pipeline: OpenInterestPipeline, source: AsyncMock, publish: AsyncMock
    ) -> None:
        await pipeline.restart()
        await pipeline.stop()

        source.fetch_open_interest.assert_awaited_once_with("BTCUSDT", "5min", limit=2)
        source.fetch_recent_trades.assert_awaited_once_with("BTCUSDT", limit=50)

        update = _published(publish)[0]
        assert update.status == TickStatus.ONLINE
        assert update.interval == "5min"
        assert update.state is not None
        assert update.state.open_interest_delta == Decimal("100")
        assert update.state.delta_percent == Decimal("10")
        assert update.state.delta_direction == TrendDirection.UP
        assert update.state.taker_buy_volume == Decimal("301")
        assert update.state.taker_sell_volume == Decimal("297")
        assert update.state.funding_rate == Decimal("0.0001")
        assert set(update.trends) == {
            "open_interest",
            "taker_buy_volume",
            "taker_sell_volume",
            "funding_rate",
        }

    @pytest.mark.asyncio
    async def test_trend_against_previous_tick(
        self, pipeline: OpenInterestPipeline, source: AsyncMock, publish: AsyncMock
    ) -> None:
        source.fetch_open_interest.side_effect = [
            _points("900", "1000"),
            _points("1000", "1100"),
        ]

        await pipeline.restart()
        await pipeline.scheduler.run_once()
        await pipeline.stop()

        second = _published(publish)[1]
        assert second.trends["open_interest"] == TrendDirection.UP
        assert second.trends["taker_buy_volume"] == TrendDirection.FLAT

    @pytest.mark.asyncio
    async def test_taker_failure_is_partial(
        self, pipeline: OpenInterestPipeline, source: AsyncMock, publish: AsyncMock
    ) -> None:
        source.fetch_recent_trades.side_effect = DataSourceError("rate limited")

        await pipeline.restart()
        await pipeline.stop()

        update = _published(publish)[0]
        assert update.status == TickStatus.ONLINE
        assert update.state is not None
        assert update.state.taker_buy_volume is None
        assert update.state.taker_sell_volume is None
        assert update.state.open_interest_now == Decimal("1100")
        assert "taker_buy_volume" not in update.trends
        assert pipeline.trend_tracker.previous("taker_buy_volume") is None

    @pytest.mark.asyncio
    async def test_taker_failure_keeps_previous_value(
        self, pipeline: OpenInterestPipeline, source: AsyncMock
    ) -> None:
        source.fetch_recent_trades.side_effect = [MOCK_TRADES, DataSourceError("timeout")]

        await pipeline.restart()
        await pipeline.scheduler.run_once()
        await pipeline.stop()

        assert pipeline.trend_tracker.previous("taker_buy_volume") == Decimal("301")

    @pytest.mark.asyncio
    async def test_funding_failure_is_partial(
        self, pipeline: OpenInterestPipeline, source: AsyncMock, publish: AsyncMock
    ) -> None:
        source.fetch_funding_rate.side_effect = DataSourceError("timeout")

        await pipeline.restart()
        await pipeline.stop()

        update = _published(publish)[0]
        assert update.status == TickStatus.ONLINE
        assert update.state is not None
        assert update.state.funding_rate is None
        assert "funding_rate" not in update.trends

    @pytest.mark.asyncio
    async def test_open_interest_failure_fails_tick(
        self, pipeline: OpenInterestPipeline, source: AsyncMock, publish: AsyncMock
    ) -> None:
        source.fetch_open_interest.side_effect = DataSourceError("502 Bad Gateway")

        await pipeline.restart()
        await pipeline.stop()

        update = _published(publish)[0]
        assert update.status == TickStatus.ERROR
        assert update.state is None
        assert update.error == "502 Bad Gateway"
        assert pipeline.trend_tracker.snapshot() == {}

    @pytest.mark.asyncio
    async def test_bug_in_trades_path_fails_tick(
        self, pipeline: OpenInterestPipeline, source: AsyncMock, publish: AsyncMock
    ) -> None:
        source.fetch_recent_trades.return_value = [object()]

        await pipeline.restart()
        await pipeline.stop()

        update = _published(publish)[0]
        assert update.status == TickStatus.ERROR
        assert update.state is None

    @pytest.mark.asyncio
    async def test_bug_in_funding_path_fails_tick(
        self, pipeline: OpenInterestPipeline, source: AsyncMock, publish: AsyncMock
    ) -> None:
        source.fetch_funding_rate.side_effect = RuntimeError("unexpected")

        await pipeline.restart()
        await pipeline.stop()

        update = _published(publish)[0]
        assert update.status == TickStatus.ERROR
        assert update.error == "unexpected"


class TestOIUpdate:
    """Tests for the published value object."""

    def test_trends_are_read_only(self) -> None:
        trends = {"open_interest": TrendDirection.UP}
        update = OIUpdate(
            symbol="BTCUSDT", status=TickStatus.ONLINE, interval="5min", trends=trends
        )
        trends["open_interest"] = TrendDirection.DOWN

        assert update.trends["open_interest"] == TrendDirection.UP
        with pytest.raises(TypeError):
            update.trends["funding_rate"] = TrendDirection.FLAT  # type: ignore[index]


class TestSetInterval:
    """Tests for lookback label changes."""

    @pytest.mark.asyncio
    async def test_refreshes_immediately_with_new_label(
        self, pipeline: OpenInterestPipeline, source: AsyncMock, publish: AsyncMock
    ) -> None:
        await pipeline.restart()
        assert await pipeline.set_interval("1h") is True
        await pipeline.stop()

        source.fetch_open_interest.assert_awaited_with("BTCUSDT", "1h", limit=2)
        assert _published(publish)[-1].interval == "1h"

    @pytest.mark.asyncio
    async def test_unknown_label_rejected(self, pipeline: OpenInterestPipeline) -> None:
        with pytest.raises(ValueError):
            await pipeline.set_interval("2h")
        assert pipeline.interval == "5min"
