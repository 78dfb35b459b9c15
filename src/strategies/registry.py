# src/strategies/registry.py

from typing import Any, Dict, List

from engine.errors import ConfigurationError
from .dual_timeframe_trend import DualTimeframeTrendStrategy
from .mean_reversion import MeanReversionStrategy
from .momentum_scalper import MomentumScalperStrategy
from .strategy import Strategy
from .vab_breakout import VolatilityAdjustedBreakoutStrategy

STRATEGY_REGISTRY = {
    "vab_breakout": VolatilityAdjustedBreakoutStrategy,
    "mean_reversion": MeanReversionStrategy,
    "dual_timeframe_trend": DualTimeframeTrendStrategy,
    "momentum_scalper": MomentumScalperStrategy,
}


def create_strategy(strategy_id: str, params: Dict[str, Any] | None = None) -> Strategy:
    """
    New instance per call, so runs never share indicator state.
    """
    StrategyClass = STRATEGY_REGISTRY.get(strategy_id)
    if StrategyClass is None:
        raise ConfigurationError(
            f"unknown strategy {strategy_id!r}; "
            f"expected one of {sorted(STRATEGY_REGISTRY)}"
        )
    return StrategyClass(dict(params or {}))


def list_strategies() -> List[Dict[str, Any]]:
    return [
        {"id": sid, "name": cls.name, "warmup": cls.warmup}
        for sid, cls in STRATEGY_REGISTRY.items()
    ]
