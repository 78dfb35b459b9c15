# src/strategies/mean_reversion.py

from typing import Any, Dict, Sequence

from engine.models import Candle
from .indicators import atr, bollinger, closes, rsi
from .strategy import Strategy, TradeIntent


class MeanReversionStrategy(Strategy):
    """
    Fade closes stretched outside the Bollinger bands when RSI agrees the
    move is exhausted; aim back at the middle band.
    """

    name = "Mean Reversion"

    def __init__(self, params: Dict[str, Any] | None = None):
        super().__init__(params)

        self.bb_period: int = self.params.get("bb_period", 20)
        self.bb_width: float = self.params.get("bb_width", 2.0)
        self.rsi_period: int = self.params.get("rsi_period", 14)
        self.rsi_overbought: float = self.params.get("rsi_overbought", 75.0)
        self.rsi_oversold: float = self.params.get("rsi_oversold", 25.0)
        self.atr_period: int = self.params.get("atr_period", 14)
        self.atr_multiplier: float = self.params.get("atr_multiplier", 1.5)

        self.min_lookback = max(self.bb_period, self.rsi_period + 1, self.atr_period + 1)

    def on_window(self, window: Sequence[Candle]) -> TradeIntent | None:
        if len(window) < self.min_lookback:
            return None

        values = closes(window)
        price = values[-1]
        upper, middle, lower = bollinger(values, self.bb_period, self.bb_width)
        r = rsi(values, self.rsi_period)
        buffer = atr(window, self.atr_period) * self.atr_multiplier

        if price <= lower and r <= self.rsi_oversold:
            return TradeIntent(
                direction="long",
                reason=f"Oversold bounce: RSI {r:.1f}, price at lower band",
                confidence=80,
                stop_loss=lower - buffer,
                take_profit=middle,
            )

        if price >= upper and r >= self.rsi_overbought:
            return TradeIntent(
                direction="short",
                reason=f"Overbought reversal: RSI {r:.1f}, price at upper band",
                confidence=80,
                stop_loss=upper + buffer,
                take_profit=middle,
            )

        return None
