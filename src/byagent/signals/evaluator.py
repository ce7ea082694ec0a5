"""Signal classification and risk plan for an indicator snapshot.

The thresholds below are a fixed heuristic policy, not a fitted model:
RSI above 55 with price over EMA50 reads LONG, RSI below 45 with price
under EMA50 reads SHORT. Take-profit and stop-loss are ATR multiples of
1.2 and 0.8, so every plan has the same 1.5 reward/risk ratio.

CRITICAL: All computations use Decimal. Never use float.
"""

from decimal import Decimal

from byagent.signals.models import IndicatorSnapshot, SignalDirection, SignalPlan

RSI_LONG_THRESHOLD = Decimal("55")
RSI_SHORT_THRESHOLD = Decimal("45")
RSI_NEUTRAL = Decimal("50")

TAKE_PROFIT_ATR_MULTIPLE = Decimal("1.2")
STOP_LOSS_ATR_MULTIPLE = Decimal("0.8")
RISK_REWARD = TAKE_PROFIT_ATR_MULTIPLE / STOP_LOSS_ATR_MULTIPLE

CONFIDENCE_FLOOR = Decimal("30")
CONFIDENCE_CAP = Decimal("99")


def classify_signal(
    last_price: Decimal, ema50: Decimal, rsi14: Decimal
) -> SignalDirection:
    """Classify the advisory direction.

    LONG iff ``last_price > ema50`` and ``rsi14 > 55``; SHORT iff
    ``last_price < ema50`` and ``rsi14 < 45``; FLAT otherwise. The two
    non-FLAT conditions cannot both hold, so exactly one direction results.
    """
    if last_price > ema50 and rsi14 > RSI_LONG_THRESHOLD:
        return SignalDirection.LONG
    if last_price < ema50 and rsi14 < RSI_SHORT_THRESHOLD:
        return SignalDirection.SHORT
    return SignalDirection.FLAT


def compute_confidence(rsi14: Decimal) -> Decimal:
    """Confidence percentage: ``clamp(|rsi14 - 50| * 2, 30, 99)``."""
    raw = abs(rsi14 - RSI_NEUTRAL) * 2
    return min(CONFIDENCE_CAP, max(CONFIDENCE_FLOOR, raw))


def build_signal_plan(snapshot: IndicatorSnapshot) -> SignalPlan:
    """Derive entry, take-profit, stop-loss and confidence from a snapshot.

    Entry is the last price. For LONG the target sits 1.2 ATR above and
    the stop 0.8 ATR below; SHORT mirrors that. FLAT yields an empty plan.
    """
    direction = snapshot.signal
    if direction is SignalDirection.FLAT:
        return SignalPlan(direction=direction)

    price = snapshot.last_price
    reward = snapshot.atr14 * TAKE_PROFIT_ATR_MULTIPLE
    risk = snapshot.atr14 * STOP_LOSS_ATR_MULTIPLE

    if direction is SignalDirection.LONG:
        take_profit = price + reward
        stop_loss = price - risk
    else:
        take_profit = price - reward
        stop_loss = price + risk

    return SignalPlan(
        direction=direction,
        entry=price,
        take_profit=take_profit,
        stop_loss=stop_loss,
        risk_reward=RISK_REWARD,
        confidence_percent=compute_confidence(snapshot.rsi14),
    )
