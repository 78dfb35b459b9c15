from __future__ import annotations

import io
import os
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd
from dotenv import load_dotenv

from engine.candles import CandleSeries
from engine.errors import ConfigurationError, UpstreamError
from engine.models import Candle

# Load .env from repo root
load_dotenv()

DATASETS_DIR = Path(os.environ.get("BACKTEST_DATASETS_DIR", "src/data/datasets"))

COLUMNS = ["timestamp", "open", "high", "low", "close", "volume"]


def _datasets_dir(base_dir: Path | None) -> Path:
    return Path(base_dir) if base_dir is not None else DATASETS_DIR


def list_datasets(base_dir: Path | None = None) -> List[Dict[str, Any]]:
    """
    Every *.csv under the datasets directory (one level of sub-folders
    allowed), id = file name.
    """
    root = _datasets_dir(base_dir)
    if not root.exists():
        return []

    out = []
    for path in sorted(root.rglob("*.csv")):
        rel = path.relative_to(root)
        if len(rel.parts) > 2:
            continue
        group = rel.parts[0] if len(rel.parts) == 2 else ""
        label = path.stem if not group else f"{group}: {path.stem}"
        out.append({"id": path.name, "name": label, "path": str(rel)})
    return out


def resolve_dataset(dataset_id: str, base_dir: Path | None = None) -> Path:
    if not dataset_id:
        raise ConfigurationError("datasetId is required")
    if "/" in dataset_id or "\\" in dataset_id or dataset_id.startswith("."):
        raise ConfigurationError(f"invalid dataset id {dataset_id!r}")

    root = _datasets_dir(base_dir)
    for entry in list_datasets(root):
        if entry["id"] == dataset_id:
            return root / entry["path"]

    raise ConfigurationError(f"Dataset not found: {dataset_id}")


def load_dataset(dataset_id: str, base_dir: Path | None = None) -> CandleSeries:
    path = resolve_dataset(dataset_id, base_dir)
    try:
        text = path.read_text()
    except OSError as e:
        raise UpstreamError(f"failed to read dataset {dataset_id}: {e}")

    df = parse_dataset_text(text)
    series = frame_to_series(df)
    print(f"[load_dataset] Loaded {len(series)} candles from {dataset_id}")
    return series


def parse_dataset_text(text: str) -> pd.DataFrame:
    """
    Two layouts exist:
      - tab separated, no header: timestamp, open, high, low, close[, volume]
      - "extended" export: a title line, then Date,Open,High,Low,Close,...
        newest first
    """
    lines = text.strip().splitlines()
    if not lines:
        return pd.DataFrame(columns=COLUMNS)

    is_extended = "Historical Data" in lines[0] or (
        len(lines) > 1 and lines[1].startswith("Date,Open,High,Low,Close"))

    if is_extended:
        body = "\n".join(
            line for line in lines[1:]
            if line.strip() and not line.startswith("Date,Open")
        )
        # rows with more fields than the first are skipped
        raw = pd.read_csv(io.StringIO(body), header=None, on_bad_lines="skip")
        raw = raw.iloc[:, :5]
        raw.columns = COLUMNS[:5]
        raw["volume"] = 1.0
        raw["timestamp"] = pd.to_datetime(
            raw["timestamp"], errors="coerce", utc=True, format="mixed")
    else:
        raw = pd.read_csv(
            io.StringIO("\n".join(lines)), sep="\t", header=None, on_bad_lines="skip")
        raw = raw.iloc[:, :6]
        raw.columns = COLUMNS[: raw.shape[1]]
        if "volume" not in raw.columns:
            raw["volume"] = 1.0
        raw["timestamp"] = pd.to_datetime(raw["timestamp"], errors="coerce", utc=True)

    return clean_candles(raw)


def clean_candles(df: pd.DataFrame) -> pd.DataFrame:
    """
    Drop unusable bars, sort oldest first, keep the last row per timestamp.
    """
    df = df.copy()
    for col in ("open", "high", "low", "close", "volume"):
        df[col] = pd.to_numeric(df[col], errors="coerce")
    df["volume"] = df["volume"].fillna(1.0)

    df = df.dropna(subset=["timestamp", "open", "high", "low", "close"])

    valid = (
        (df["open"] > 0)
        & (df["high"] > 0)
        & (df["low"] > 0)
        & (df["close"] > 0)
        & (df["high"] >= df["low"])
        & (df["high"] >= df[["open", "close"]].max(axis=1))
        & (df["low"] <= df[["open", "close"]].min(axis=1))
    )
    dropped = int((~valid).sum())
    if dropped:
        print(f"[load_dataset] WARNING: dropped {dropped} invalid bars")
    df = df[valid]

    df = df.sort_values("timestamp", kind="mergesort")
    df = df.drop_duplicates(subset="timestamp", keep="last")
    return df.reset_index(drop=True)


def frame_to_series(df: pd.DataFrame) -> CandleSeries:
    return CandleSeries(
        Candle(
            timestamp=ts.strftime("%Y-%m-%dT%H:%M:%S.000Z"),
            open=float(o),
            high=float(h),
            low=float(lo),
            close=float(c),
            volume=float(v),
        )
        for ts, o, h, lo, c, v in zip(
            df["timestamp"], df["open"], df["high"], df["low"], df["close"], df["volume"])
    )


def save_dataset(series: CandleSeries, dataset_id: str, base_dir: Path | None = None) -> Path:
    """Write in the tab-separated layout that load_dataset reads back."""
    root = _datasets_dir(base_dir)
    root.mkdir(parents=True, exist_ok=True)
    path = root / dataset_id

    df = pd.DataFrame(series.to_records(), columns=COLUMNS)
    df.to_csv(path, sep="\t", header=False, index=False)
    print(f"[save_dataset] wrote {len(df)} candles to {path}")
    return path
