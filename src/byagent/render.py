"""Display formatting and a renderer that writes updates to the log.

The engine publishes plain value objects; this module is the only place
that turns them into text. Unavailable values (None, NaN) render as "—".
"""

from decimal import Decimal

from byagent.logging import get_logger
from byagent.pipelines.agent import AgentUpdate
from byagent.pipelines.open_interest import OIUpdate

logger = get_logger(__name__)

PLACEHOLDER = "—"


def _unavailable(value: Decimal | None) -> bool:
    return value is None or value.is_nan()


def fmt(value: Decimal | None, digits: int = 4) -> str:
    """Group thousands and keep at most ``digits`` decimals, trailing zeros dropped."""
    if _unavailable(value):
        return PLACEHOLDER
    text = f"{value.quantize(Decimal(1).scaleb(-digits)):,f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def fmt_percent(value: Decimal | None, digits: int = 2) -> str:
    """Fixed-decimals percentage, e.g. ``fmt_percent(Decimal("10")) == "10.00%"``."""
    if _unavailable(value):
        return PLACEHOLDER
    return f"{value:.{digits}f}%"


class LogRenderer:
    """Renders pipeline updates as structured log events."""

    async def on_agent_update(self, update: AgentUpdate) -> None:
        if update.snapshot is None or update.plan is None:
            logger.info("agent_view", symbol=update.symbol, status=update.status.value, error=update.error)
            return

        snapshot = update.snapshot
        plan = update.plan
        confidence = plan.confidence_percent
        logger.info(
            "agent_view",
            symbol=update.symbol,
            status=update.status.value,
            signal=snapshot.signal.value,
            last=fmt(snapshot.last_price),
            rsi=fmt(snapshot.rsi14, 2),
            ema50=fmt(snapshot.ema50, 2),
            ema200=fmt(snapshot.ema200, 2),
            macd=fmt(snapshot.macd_line, 4),
            atr=fmt(snapshot.atr14, 4),
            entry=fmt(plan.entry),
            take_profit=fmt(plan.take_profit, 2),
            stop_loss=fmt(plan.stop_loss, 2),
            risk_reward=f"{plan.risk_reward:.2f}" if plan.risk_reward is not None else PLACEHOLDER,
            confidence=f"{fmt(confidence, 0)}%" if confidence is not None else PLACEHOLDER,
            trends={metric: trend.value for metric, trend in update.trends.items()},
        )

    async def on_oi_update(self, update: OIUpdate) -> None:
        if update.state is None:
            logger.info(
                "open_interest_view",
                symbol=update.symbol,
                status=update.status.value,
                interval=update.interval,
                error=update.error,
            )
            return

        state = update.state
        funding = state.funding_rate * 100 if state.funding_rate is not None else None
        logger.info(
            "open_interest_view",
            symbol=update.symbol,
            status=update.status.value,
            interval=update.interval,
            open_interest=fmt(state.open_interest_now, 0),
            delta=fmt(state.open_interest_delta, 0),
            delta_percent=fmt_percent(state.delta_percent),
            taker_buy=fmt(state.taker_buy_volume, 0),
            taker_sell=fmt(state.taker_sell_volume, 0),
            funding=fmt_percent(funding, 4),
            trends={metric: trend.value for metric, trend in update.trends.items()},
        )
