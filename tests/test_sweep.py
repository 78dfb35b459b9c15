import pytest

from engine.models import BacktestConfig
from engine.sweep import expand_grid, run_parameter_sweep

from helpers import build_series, random_walk


@pytest.fixture(scope="module")
def series():
    return build_series(random_walk(500, seed=21), wick=1.0)


def test_expand_grid_keeps_key_order():
    combos = expand_grid({"a": [1, 2], "b": ["x", "y"]})
    assert combos == [
        {"a": 1, "b": "x"},
        {"a": 1, "b": "y"},
        {"a": 2, "b": "x"},
        {"a": 2, "b": "y"},
    ]


def test_empty_grid_is_one_run():
    assert expand_grid({}) == [{}]


def test_inline_sweep(series):
    config = BacktestConfig(strategy="vab_breakout", dataset_id="walk")
    grid = {"session_bars": [16, 32], "atr_multiplier": [1.0, 2.0]}

    out = run_parameter_sweep(series, config, grid)

    assert [o["params"] for o in out] == expand_grid(grid)
    for o in out:
        assert o["result"]["isRealBacktest"] is True
        assert "statistics" in o["result"]


def test_failed_run_reports_error(series):
    config = BacktestConfig(strategy="vab_breakout", dataset_id="walk")

    out = run_parameter_sweep(series, config, {"warmup": [50, 10000]})

    assert "result" in out[0]
    assert out[1]["error"]["error"] == "insufficient_data"


def test_parallel_matches_inline(series):
    config = BacktestConfig(strategy="momentum_scalper", dataset_id="walk")
    grid = {"fast_period": [5, 8], "slow_period": [21, 34]}

    inline = run_parameter_sweep(series, config, grid)
    parallel = run_parameter_sweep(series, config, grid, max_workers=2)

    for a, b in zip(inline, parallel):
        a["result"].pop("executionTime")
        b["result"].pop("executionTime")
    assert inline == parallel
