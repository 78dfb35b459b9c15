from __future__ import annotations

import os
from typing import Any, Dict

import pandas as pd
import requests
from dotenv import load_dotenv

from engine.candles import CandleSeries
from engine.errors import UpstreamError
from .datasets import clean_candles, frame_to_series

load_dotenv()

YAHOO_CHART_URL = os.environ.get(
    "YAHOO_CHART_URL", "https://query1.finance.yahoo.com/v8/finance/chart")
YAHOO_TIMEOUT_SECONDS = float(os.environ.get("YAHOO_TIMEOUT_SECONDS", "10"))

# Yahoo has no 4h bars; fall back to 1h
INTERVALS = {
    "1m": "1m",
    "5m": "5m",
    "15m": "15m",
    "30m": "30m",
    "1h": "1h",
    "4h": "1h",
    "1d": "1d",
}


def fetch_chart(symbol: str, interval: str = "1h", range_: str = "1mo") -> CandleSeries:
    """
    Download OHLCV bars from the Yahoo Finance chart endpoint.

    No retries here: HTTP and connection failures surface as UpstreamError
    with the status so the caller decides what to do.
    """
    url = f"{YAHOO_CHART_URL}/{symbol}"
    params = {"interval": INTERVALS.get(interval, "1d"), "range": range_}

    print(f"[yahoo] fetching {symbol} {params['interval']} / {range_}")
    try:
        resp = requests.get(
            url,
            params=params,
            headers={"User-Agent": "Mozilla/5.0"},
            timeout=YAHOO_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        raise UpstreamError(f"Yahoo Finance unreachable: {e}")

    if resp.status_code != 200:
        raise UpstreamError(
            f"Yahoo Finance returned HTTP {resp.status_code} for {symbol}",
            status=resp.status_code,
        )

    try:
        payload = resp.json()
    except ValueError:
        raise UpstreamError("Yahoo Finance returned invalid JSON", status=502)

    series = chart_to_series(payload)
    print(f"[yahoo] {symbol}: {len(series)} candles")
    return series


def chart_to_series(payload: Dict[str, Any]) -> CandleSeries:
    chart = payload.get("chart") or {}
    if chart.get("error"):
        err = chart["error"]
        desc = err.get("description") if isinstance(err, dict) else str(err)
        raise UpstreamError(f"Yahoo Finance error: {desc}", status=502)

    results = chart.get("result") or []
    if not results:
        raise UpstreamError("Yahoo Finance returned no chart data", status=502)

    result = results[0]
    timestamps = result.get("timestamp") or []
    quote = ((result.get("indicators") or {}).get("quote") or [{}])[0]

    df = pd.DataFrame({
        "timestamp": pd.to_datetime(timestamps, unit="s", utc=True),
        "open": quote.get("open") or [None] * len(timestamps),
        "high": quote.get("high") or [None] * len(timestamps),
        "low": quote.get("low") or [None] * len(timestamps),
        "close": quote.get("close") or [None] * len(timestamps),
        "volume": quote.get("volume") or [None] * len(timestamps),
    })
    return frame_to_series(clean_candles(df))
