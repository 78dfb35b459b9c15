import datetime as dt
import math
from typing import Any, Dict, Iterable, Iterator, List, Tuple

from .errors import ConfigurationError
from .models import Candle


def parse_timestamp(ts: str) -> dt.datetime:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.
    Handles both ...+00:00 and ...Z; naive values are taken as UTC.
    """
    if ts.endswith("Z"):
        ts = ts[:-1] + "+00:00"
    parsed = dt.datetime.fromisoformat(ts)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=dt.timezone.utc)
    return parsed.astimezone(dt.timezone.utc)


def duration_ms(start: str, end: str) -> int:
    delta = parse_timestamp(end) - parse_timestamp(start)
    return int(delta.total_seconds() * 1000)


class CandleSeries:
    """
    Ordered, immutable sequence of OHLCV bars.

    Timestamps must be strictly increasing; the constructor refuses
    duplicates and out-of-order bars instead of fixing them, so callers
    (the dataset loader) clean first.
    """

    def __init__(self, candles: Iterable[Candle]):
        self._candles: Tuple[Candle, ...] = tuple(candles)
        self._times: List[dt.datetime] = []

        for idx, c in enumerate(self._candles):
            try:
                t = parse_timestamp(c.timestamp)
            except (TypeError, ValueError):
                raise ConfigurationError(
                    f"candle {idx} has a malformed timestamp: {c.timestamp!r}")

            prices = (c.open, c.high, c.low, c.close, c.volume)
            if not all(math.isfinite(p) for p in prices):
                raise ConfigurationError(f"candle {idx} has non-finite values")

            if self._times and t <= self._times[-1]:
                raise ConfigurationError(
                    f"candle {idx} ({c.timestamp}) is not after "
                    f"candle {idx - 1} ({self._candles[idx - 1].timestamp})"
                )
            self._times.append(t)

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> "CandleSeries":
        return cls(
            Candle(
                timestamp=str(r["timestamp"]),
                open=float(r["open"]),
                high=float(r["high"]),
                low=float(r["low"]),
                close=float(r["close"]),
                volume=float(r.get("volume", 1.0)),
            )
            for r in records
        )

    def __len__(self) -> int:
        return len(self._candles)

    def __getitem__(self, idx: int) -> Candle:
        return self._candles[idx]

    def __iter__(self) -> Iterator[Candle]:
        return iter(self._candles)

    def time_at(self, idx: int) -> dt.datetime:
        return self._times[idx]

    def window(self, idx: int, size: int) -> Tuple[Candle, ...]:
        """
        Bars [idx - size + 1 .. idx], never anything after idx.
        """
        if idx < 0 or idx >= len(self._candles):
            raise IndexError(f"bar {idx} outside series of {len(self)}")
        start = max(0, idx - size + 1)
        return self._candles[start: idx + 1]

    def to_records(self) -> List[Dict[str, Any]]:
        return [c.to_dict() for c in self._candles]
