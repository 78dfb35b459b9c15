from dataclasses import dataclass
from typing import Any, Dict, Sequence

from engine.models import Candle


@dataclass(frozen=True)
class TradeIntent:
    direction: str                      # "long" or "short"
    reason: str = ""
    confidence: float = 0.0             # 0-100
    stop_loss: float | None = None      # None -> sizer default distance
    take_profit: float | None = None    # None -> sizer reward:risk


class Strategy:
    name: str = "Strategy"
    warmup: int = 50          # bars skipped before the first evaluation
    min_lookback: int = 50    # window size needed by the indicators

    def __init__(self, params: Dict[str, Any] | None = None):
        self.params = params or {}
        self.state: Dict[str, Any] = {}  # optional internal memory

        self.warmup = int(self.params.get("warmup", self.warmup))
        self.cooldown_bars: int = int(self.params.get("cooldown_bars", 0))
        self.state.setdefault("bars_since_signal", None)

    def evaluate(self, window: Sequence[Candle]) -> TradeIntent | None:
        """
        Called once per bar past warm-up with the bars up to and including
        the current one (window[-1]). Returns at most one intent.
        """
        since = self.state["bars_since_signal"]
        if since is not None:
            since += 1
            self.state["bars_since_signal"] = since
            if since <= self.cooldown_bars:
                return None

        intent = self.on_window(window)
        if intent is not None:
            self.state["bars_since_signal"] = 0
        return intent

    def on_window(self, window: Sequence[Candle]) -> TradeIntent | None:
        raise NotImplementedError
