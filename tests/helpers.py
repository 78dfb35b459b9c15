import datetime as dt
from typing import Any, Dict, Sequence

import numpy as np

from engine.candles import CandleSeries
from strategies.strategy import Strategy, TradeIntent

START = dt.datetime(2025, 7, 1, tzinfo=dt.timezone.utc)


def ts(i: int, minutes: int = 15) -> str:
    return (START + dt.timedelta(minutes=minutes * i)).strftime("%Y-%m-%dT%H:%M:%SZ")


def build_series(closes: Sequence[float], wick: float = 0.5, minutes: int = 15) -> CandleSeries:
    """Each bar opens at the previous close; high/low pad the body by `wick`."""
    records = []
    prev = float(closes[0])
    for i, close in enumerate(closes):
        close = float(close)
        records.append({
            "timestamp": ts(i, minutes),
            "open": prev,
            "high": max(prev, close) + wick,
            "low": min(prev, close) - wick,
            "close": close,
            "volume": 1.0,
        })
        prev = close
    return CandleSeries.from_records(records)


def random_walk(n: int, seed: int = 7, start: float = 2000.0, step: float = 2.0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return start + np.cumsum(rng.normal(0.0, step, n))


class ScheduledStrategy(Strategy):
    """Emits preset intents keyed by the current bar's timestamp."""

    name = "Scheduled"

    def __init__(self, params: Dict[str, Any] | None = None):
        super().__init__(params)
        self.signals: Dict[str, TradeIntent] = self.params.get("signals", {})
        self.min_lookback = 1

    def on_window(self, window):
        return self.signals.get(window[-1].timestamp)


class RecordingStrategy(Strategy):
    """Wraps another strategy and keeps every decision it made."""

    def __init__(self, inner: Strategy):
        super().__init__({"warmup": inner.warmup})
        self.inner = inner
        self.name = inner.name
        self.min_lookback = inner.min_lookback
        self.decisions = []

    def evaluate(self, window):
        intent = self.inner.evaluate(window)
        self.decisions.append((window[-1].timestamp, intent))
        return intent
