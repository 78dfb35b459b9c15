# src/strategies/momentum_scalper.py

from typing import Any, Dict, Sequence

import numpy as np

from engine.models import Candle
from .indicators import atr, closes, ema, rsi
from .strategy import Strategy, TradeIntent

# newest change first
MOMENTUM_WEIGHTS = (0.4, 0.3, 0.2, 0.1)


class MomentumScalperStrategy(Strategy):
    """
    Short-horizon momentum: weighted last-four-bar move in the direction of
    the fast/slow EMA stack, skipped when RSI is already stretched.
    """

    name = "Momentum Scalper"

    def __init__(self, params: Dict[str, Any] | None = None):
        super().__init__(params)

        self.fast_period: int = self.params.get("fast_period", 8)
        self.slow_period: int = self.params.get("slow_period", 21)
        self.rsi_period: int = self.params.get("rsi_period", 14)
        self.rsi_low: float = self.params.get("rsi_low", 30.0)
        self.rsi_high: float = self.params.get("rsi_high", 70.0)

        # momentum must exceed this share of ATR to count
        self.min_momentum_atr: float = self.params.get("min_momentum_atr", 0.1)

        self.atr_period: int = self.params.get("atr_period", 14)
        self.atr_multiplier: float = self.params.get("atr_multiplier", 1.5)
        self.reward_risk: float = self.params.get("reward_risk", 1.5)

        self.min_lookback = max(self.slow_period + 1, self.rsi_period + 1,
                                self.atr_period + 1, len(MOMENTUM_WEIGHTS) + 1)

    def _momentum(self, values) -> float:
        changes = np.diff(values[-(len(MOMENTUM_WEIGHTS) + 1):])[::-1]
        return float(sum(w * d for w, d in zip(MOMENTUM_WEIGHTS, changes)))

    def on_window(self, window: Sequence[Candle]) -> TradeIntent | None:
        if len(window) < self.min_lookback:
            return None

        values = closes(window)
        price = values[-1]

        fast = ema(values, self.fast_period)
        slow = ema(values, self.slow_period)
        r = rsi(values, self.rsi_period)
        a = atr(window, self.atr_period)
        if a <= 0 or not (self.rsi_low < r < self.rsi_high):
            return None

        momentum = self._momentum(values)
        threshold = self.min_momentum_atr * a

        if momentum > threshold and fast > slow and price > fast:
            stop = price - a * self.atr_multiplier
            return TradeIntent(
                direction="long",
                reason=f"Bullish momentum {momentum:.2f} above EMA{self.fast_period}",
                confidence=75,
                stop_loss=stop,
                take_profit=price + (price - stop) * self.reward_risk,
            )

        if momentum < -threshold and fast < slow and price < fast:
            stop = price + a * self.atr_multiplier
            return TradeIntent(
                direction="short",
                reason=f"Bearish momentum {momentum:.2f} below EMA{self.fast_period}",
                confidence=75,
                stop_loss=stop,
                take_profit=price - (stop - price) * self.reward_risk,
            )

        return None
