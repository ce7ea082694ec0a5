"""Indicator and signal module.

Provides the series math (RSI, EMA, MACD, ATR), the snapshot/plan data
models, the signal evaluator, and the IndicatorEngine that turns a candle
window into an IndicatorSnapshot.
"""

from byagent.signals.indicators import MACDResult, atr, ema, ema_series, macd, rsi, true_range
from byagent.signals.models import IndicatorSnapshot, SignalDirection, SignalPlan
from byagent.signals.evaluator import build_signal_plan, classify_signal, compute_confidence
from byagent.signals.engine import IndicatorEngine, build_snapshot, contiguous_suffix

__all__ = [
    "IndicatorEngine",
    "IndicatorSnapshot",
    "MACDResult",
    "SignalDirection",
    "SignalPlan",
    "atr",
    "build_signal_plan",
    "build_snapshot",
    "classify_signal",
    "compute_confidence",
    "contiguous_suffix",
    "ema",
    "ema_series",
    "macd",
    "rsi",
    "true_range",
]
