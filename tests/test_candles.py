import datetime as dt

import pytest

from engine.candles import CandleSeries, duration_ms, parse_timestamp
from engine.errors import ConfigurationError
from engine.models import Candle

from helpers import build_series, ts


def _candle(stamp, close=2000.0):
    return Candle(stamp, close, close + 1, close - 1, close, 1.0)


def test_parse_timestamp_handles_z_and_naive():
    a = parse_timestamp("2025-07-01T00:00:00Z")
    b = parse_timestamp("2025-07-01T00:00:00")
    c = parse_timestamp("2025-07-01T02:00:00+02:00")
    assert a == b == c
    assert a.tzinfo == dt.timezone.utc


def test_duration_ms():
    assert duration_ms(ts(0), ts(4)) == 4 * 15 * 60 * 1000


def test_series_rejects_out_of_order_and_duplicates():
    with pytest.raises(ConfigurationError):
        CandleSeries([_candle(ts(1)), _candle(ts(0))])
    with pytest.raises(ConfigurationError):
        CandleSeries([_candle(ts(0)), _candle(ts(0))])


def test_series_rejects_bad_timestamp_and_nan():
    with pytest.raises(ConfigurationError):
        CandleSeries([_candle("yesterday")])
    with pytest.raises(ConfigurationError):
        CandleSeries([_candle(ts(0), close=float("nan"))])


def test_window_never_reaches_past_current_bar():
    series = build_series([2000 + i for i in range(10)])

    window = series.window(5, 3)
    assert [c.timestamp for c in window] == [ts(3), ts(4), ts(5)]
    assert isinstance(window, tuple)

    # clipped at the start of the series
    assert len(series.window(1, 50)) == 2

    with pytest.raises(IndexError):
        series.window(10, 3)


def test_from_records_defaults_volume():
    series = CandleSeries.from_records([
        {"timestamp": ts(0), "open": 1, "high": 2, "low": 0.5, "close": 1.5},
    ])
    assert series[0].volume == 1.0
    assert series.to_records()[0]["close"] == 1.5
