"""
Indicator helpers over a window of candles.

Each function looks only at the values it is handed; the last element is
the current bar.
"""
from typing import Sequence, Tuple

import numpy as np
import pandas as pd

from engine.models import Candle


def closes(window: Sequence[Candle]) -> np.ndarray:
    return np.array([c.close for c in window], dtype=float)


def sma(values: np.ndarray, period: int) -> float:
    tail = values[-period:]
    return float(tail.mean())


def ema(values: np.ndarray, period: int) -> float:
    """Exponential moving average seeded with the first value."""
    series = pd.Series(values)
    return float(series.ewm(span=period, adjust=False).mean().iloc[-1])


def rsi(values: np.ndarray, period: int = 14) -> float:
    """Simple-average RSI over the last `period` changes."""
    if len(values) < 2:
        return 50.0
    deltas = np.diff(values[-(period + 1):])
    gains = deltas[deltas > 0].sum() / period
    losses = -deltas[deltas < 0].sum() / period
    if losses == 0:
        return 100.0 if gains > 0 else 50.0
    rs = gains / losses
    return float(100.0 - 100.0 / (1.0 + rs))


def true_ranges(window: Sequence[Candle]) -> np.ndarray:
    out = []
    prev_close = None
    for c in window:
        if prev_close is None:
            out.append(c.high - c.low)
        else:
            out.append(max(
                c.high - c.low,
                abs(c.high - prev_close),
                abs(c.low - prev_close),
            ))
        prev_close = c.close
    return np.array(out, dtype=float)


def atr(window: Sequence[Candle], period: int = 14) -> float:
    tr = true_ranges(window)
    if len(tr) == 0:
        return 0.0
    return float(tr[-period:].mean())


def bollinger(values: np.ndarray, period: int = 20, width: float = 2.0) -> Tuple[float, float, float]:
    """(upper, middle, lower), population standard deviation."""
    tail = values[-period:]
    middle = float(tail.mean())
    std = float(tail.std())
    return middle + width * std, middle, middle - width * std


def session_range(window: Sequence[Candle], bars: int) -> Tuple[float, float]:
    """High/low of the `bars` candles before the current one."""
    prior = window[-(bars + 1):-1]
    if not prior:
        return float("nan"), float("nan")
    return max(c.high for c in prior), min(c.low for c in prior)


def resample_closes(values: np.ndarray, factor: int) -> np.ndarray:
    """
    Higher-timeframe closes: every `factor`-th close counted back from the
    current bar, oldest first.
    """
    if factor <= 1:
        return values
    return values[::-1][::factor][::-1]
