import math
from dataclasses import dataclass, field
from typing import Any, Dict, List

from .errors import ConfigurationError

LONG = "long"
SHORT = "short"

# position status
PENDING = "pending"
OPEN = "open"
CLOSED = "closed"


@dataclass(frozen=True)
class Candle:
    timestamp: str   # ISO-8601
    open: float
    high: float
    low: float
    close: float
    volume: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }


@dataclass(frozen=True)
class Order:
    direction: str       # "long" | "short"
    entry_price: float
    volume: float        # lots
    stop_loss: float
    take_profit: float
    reason: str = ""


@dataclass
class Position:
    id: str
    symbol: str
    direction: str
    volume: float
    entry_price: float
    entry_time: str
    stop_loss: float
    take_profit: float
    bar_index: int
    reason: str = ""
    status: str = PENDING
    mfe: float = 0.0     # best unrealized pnl seen, account currency
    mae: float = 0.0     # worst unrealized pnl seen, account currency

    @property
    def sign(self) -> int:
        return 1 if self.direction == LONG else -1


@dataclass(frozen=True)
class ClosedTrade:
    id: str
    symbol: str
    direction: str
    entry_time: str
    exit_time: str
    entry_price: float
    exit_price: float
    stop_loss: float
    take_profit: float
    volume: float
    pnl: float               # gross, account currency
    pnl_in_price_units: float
    commission: float
    swap: float
    duration_ms: int
    max_favorable_excursion: float
    max_adverse_excursion: float
    exit_reason: str
    reason: str = ""

    @property
    def net_pnl(self) -> float:
        return self.pnl - self.commission - self.swap

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "direction": self.direction,
            "action": "buy" if self.direction == LONG else "sell",
            "entryTime": self.entry_time,
            "exitTime": self.exit_time,
            "entryPrice": self.entry_price,
            "exitPrice": self.exit_price,
            "stopLoss": self.stop_loss,
            "takeProfit": self.take_profit,
            "volume": self.volume,
            "pnl": self.pnl,
            "pnlInPriceUnits": self.pnl_in_price_units,
            "commission": self.commission,
            "swap": self.swap,
            "netPnl": self.net_pnl,
            "durationMs": self.duration_ms,
            "maxFavorableExcursion": self.max_favorable_excursion,
            "maxAdverseExcursion": self.max_adverse_excursion,
            "exitReason": self.exit_reason,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class EquityPoint:
    timestamp: str
    balance: float
    equity: float
    drawdown: float
    drawdown_percent: float
    peak_balance: float
    trades: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "balance": self.balance,
            "equity": self.equity,
            "drawdown": self.drawdown,
            "drawdownPercent": self.drawdown_percent,
            "peakBalance": self.peak_balance,
            "trades": self.trades,
        }


@dataclass(frozen=True)
class CostModel:
    commission_per_trade: float = 0.5
    commission_per_lot: float = 0.0
    swap_per_lot_per_night: float = 0.0


@dataclass(frozen=True)
class BacktestConfig:
    strategy: str
    dataset_id: str = ""
    initial_balance: float = 10000.0
    risk_per_trade: float = 1.0          # percent of balance
    prop_firm: str | None = None
    symbol: str = "XAUUSD"
    warmup: int | None = None            # None -> strategy.warmup
    lookback: int = 50
    max_concurrent_positions: int = 1
    allow_reversal: bool = False
    contract_multiplier: float = 100.0
    min_volume: float = 0.01
    max_volume: float | None = None
    volume_step: float = 0.01
    default_stop_distance: float = 5.0   # price units
    reward_risk: float = 2.0
    min_confidence: float = 0.0         # intents below this are dropped
    costs: CostModel = field(default_factory=CostModel)
    strategy_params: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.strategy:
            raise ConfigurationError("strategy is required")
        if not math.isfinite(self.initial_balance) or self.initial_balance <= 0:
            raise ConfigurationError("initial balance must be a positive number")
        if not math.isfinite(self.risk_per_trade) or not 0 < self.risk_per_trade <= 100:
            raise ConfigurationError(
                "risk per trade must be between 0 and 100 percent")
        if self.max_concurrent_positions < 1:
            raise ConfigurationError(
                "max_concurrent_positions must be at least 1")
        if self.warmup is not None and self.warmup < 1:
            raise ConfigurationError("warmup must be at least 1 bar")
        if self.lookback < 1:
            raise ConfigurationError("lookback must be at least 1 bar")
        if self.min_volume <= 0 or self.contract_multiplier <= 0:
            raise ConfigurationError(
                "min_volume and contract_multiplier must be positive")
        if self.max_volume is not None and self.max_volume < self.min_volume:
            raise ConfigurationError(
                f"max_volume {self.max_volume} is below min_volume {self.min_volume}")
        if not 0 <= self.min_confidence <= 100:
            raise ConfigurationError("min_confidence must be between 0 and 100")


@dataclass
class BacktestResult:
    strategy: str
    symbol: str
    dataset_id: str
    initial_balance: float
    final_balance: float
    total_return: float
    total_return_percent: float
    win_rate: float
    total_trades: int
    winning_trades: int
    losing_trades: int
    max_drawdown: float
    max_drawdown_percent: float
    profit_factor: float
    trades: List[ClosedTrade]
    equity_data: List[EquityPoint]
    execution_time: float               # ms, informational only
    data_points: int
    statistics: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self, include_statistics: bool = False) -> Dict[str, Any]:
        out = {
            "strategy": self.strategy,
            "symbol": self.symbol,
            "datasetId": self.dataset_id,
            "initialBalance": self.initial_balance,
            "finalBalance": self.final_balance,
            "totalReturn": self.total_return,
            "totalReturnPercent": self.total_return_percent,
            "winRate": self.win_rate,
            "totalTrades": self.total_trades,
            "winningTrades": self.winning_trades,
            "losingTrades": self.losing_trades,
            "maxDrawdown": self.max_drawdown,
            "maxDrawdownPercent": self.max_drawdown_percent,
            "profitFactor": self.profit_factor,
            "trades": [t.to_dict() for t in self.trades],
            "equityData": [p.to_dict() for p in self.equity_data],
            "executionTime": self.execution_time,
            "dataPoints": self.data_points,
            "isRealBacktest": True,
        }
        if include_statistics:
            out["statistics"] = self.statistics
        return out
