import itertools
from concurrent.futures import ProcessPoolExecutor
from dataclasses import replace
from typing import Any, Dict, List

from .backtest import run_configured_backtest
from .candles import CandleSeries
from .errors import BacktestError
from .models import BacktestConfig


def expand_grid(param_grid: Dict[str, List[Any]]) -> List[Dict[str, Any]]:
    """Cartesian product of the grid, keys in insertion order."""
    if not param_grid:
        return [{}]
    keys = list(param_grid)
    return [dict(zip(keys, combo)) for combo in itertools.product(*param_grid.values())]


def run_parameter_sweep(
    candles: CandleSeries,
    config: BacktestConfig,
    param_grid: Dict[str, List[Any]],
    max_workers: int = 1,
) -> List[Dict[str, Any]]:
    """
    One isolated run per parameter combination.

    Runs share nothing: each worker builds its own strategy from the id.
    Output keeps grid order; a failed run reports its error object.
    """
    combos = expand_grid(param_grid)
    jobs = [
        (replace(config, strategy_params={**config.strategy_params, **params}), candles)
        for params in combos
    ]

    if max_workers <= 1:
        outcomes = [_run_job(job) for job in jobs]
    else:
        with ProcessPoolExecutor(max_workers=max_workers) as executor:
            outcomes = list(executor.map(_run_job, jobs))

    return [
        {"params": params, **outcome}
        for params, outcome in zip(combos, outcomes)
    ]


def _run_job(job) -> Dict[str, Any]:
    config, candles = job
    try:
        result = run_configured_backtest(config, candles)
    except BacktestError as e:
        return {"error": e.to_dict()}
    return {"result": result.to_dict(include_statistics=True)}
