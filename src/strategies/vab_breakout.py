# src/strategies/vab_breakout.py

from typing import Any, Dict, Sequence

from engine.models import Candle
from .indicators import atr, session_range
from .strategy import Strategy, TradeIntent


class VolatilityAdjustedBreakoutStrategy(Strategy):
    """
    Trade a close outside the recent session range, with the stop parked
    beyond the opposite side of the range plus an ATR buffer.
    """

    name = "VAB Breakout"

    def __init__(self, params: Dict[str, Any] | None = None):
        super().__init__(params)

        self.session_bars: int = self.params.get("session_bars", 32)
        self.atr_period: int = self.params.get("atr_period", 14)
        self.atr_multiplier: float = self.params.get("atr_multiplier", 2.0)
        self.reward_risk: float = self.params.get("reward_risk", 2.0)

        # narrower sessions are noise, not a range worth breaking
        self.min_range: float = self.params.get("min_range", 0.5)

        self.min_lookback = max(self.session_bars + 1, self.atr_period + 1)

    def on_window(self, window: Sequence[Candle]) -> TradeIntent | None:
        if len(window) < self.min_lookback:
            return None

        current = window[-1]
        high, low = session_range(window, self.session_bars)
        if high - low < self.min_range:
            return None

        buffer = atr(window, self.atr_period) * self.atr_multiplier

        if current.close > high:
            stop = low - buffer
            return TradeIntent(
                direction="long",
                reason=f"Bullish breakout above session high ({high:.2f})",
                confidence=85,
                stop_loss=stop,
                take_profit=current.close + (current.close - stop) * self.reward_risk,
            )

        if current.close < low:
            stop = high + buffer
            return TradeIntent(
                direction="short",
                reason=f"Bearish breakdown below session low ({low:.2f})",
                confidence=85,
                stop_loss=stop,
                take_profit=current.close - (stop - current.close) * self.reward_risk,
            )

        return None
