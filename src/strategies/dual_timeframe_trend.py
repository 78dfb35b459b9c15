# src/strategies/dual_timeframe_trend.py

from typing import Any, Dict, Sequence

from engine.models import Candle
from .indicators import atr, closes, ema, resample_closes
from .strategy import Strategy, TradeIntent


class DualTimeframeTrendStrategy(Strategy):
    """
    Higher-timeframe trend from an EMA of resampled closes; enter on the
    base timeframe when price pulls back onto its own EMA in the trend
    direction.
    """

    name = "Dual-Timeframe Trend"
    warmup = 200
    min_lookback = 200

    def __init__(self, params: Dict[str, Any] | None = None):
        super().__init__(params)

        self.htf_factor: int = self.params.get("htf_factor", 4)
        self.htf_period: int = self.params.get("htf_period", 50)
        self.ema_period: int = self.params.get("ema_period", 50)

        # how close to the EMA counts as "on" it, as a fraction of price
        self.pullback_band: float = self.params.get("pullback_band", 0.001)

        self.atr_period: int = self.params.get("atr_period", 14)
        self.atr_multiplier: float = self.params.get("atr_multiplier", 2.0)
        self.reward_risk: float = self.params.get("reward_risk", 2.0)

        self.min_lookback = max(
            self.htf_factor * self.htf_period, self.ema_period, self.atr_period + 1)

    def on_window(self, window: Sequence[Candle]) -> TradeIntent | None:
        if len(window) < self.min_lookback:
            return None

        values = closes(window)
        price = values[-1]

        htf = resample_closes(values, self.htf_factor)
        htf_ema = ema(htf, self.htf_period)
        base_ema = ema(values, self.ema_period)
        buffer = atr(window, self.atr_period) * self.atr_multiplier

        if htf[-1] > htf_ema:
            if base_ema * (1 - self.pullback_band) < price <= base_ema:
                stop = base_ema - buffer
                return TradeIntent(
                    direction="long",
                    reason=f"Higher-timeframe uptrend, pullback to EMA{self.ema_period}",
                    confidence=75,
                    stop_loss=stop,
                    take_profit=price + (price - stop) * self.reward_risk,
                )
        elif htf[-1] < htf_ema:
            if base_ema <= price < base_ema * (1 + self.pullback_band):
                stop = base_ema + buffer
                return TradeIntent(
                    direction="short",
                    reason=f"Higher-timeframe downtrend, pullback to EMA{self.ema_period}",
                    confidence=75,
                    stop_loss=stop,
                    take_profit=price - (stop - price) * self.reward_risk,
                )

        return None
