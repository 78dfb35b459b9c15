import math
from typing import Any, Dict, List

import numpy as np

from .candles import parse_timestamp
from .models import ClosedTrade, EquityPoint

# reported instead of infinity when there are wins and no losses
PROFIT_FACTOR_CAP = 999.0
PERIODS_PER_YEAR = 252
MS_PER_YEAR = 365.25 * 24 * 60 * 60 * 1000
# exp() overflows just above 709
MAX_LOG_GROWTH = 700.0


def compute_metrics(
    trades: List[ClosedTrade],
    equity_curve: List[EquityPoint],
    initial_balance: float,
    final_balance: float,
    max_drawdown: float,
    max_drawdown_percent: float,
) -> Dict[str, Any]:
    """
    Reduce a finished run to its summary numbers.

    Pure: same ledger + curve in, same numbers out. Wins and losses are
    classified on net pnl (after commission and swap); a zero net trade
    counts as a loss so the two counts always add up to the total.
    """
    net = [t.net_pnl for t in trades]
    wins = [p for p in net if p > 0]
    losses = [p for p in net if p <= 0]

    total_trades = len(trades)
    gross_profit = math.fsum(wins)
    gross_loss = abs(math.fsum(losses))

    total_return = final_balance - initial_balance

    summary = {
        "final_balance": final_balance,
        "total_return": total_return,
        "total_return_percent": total_return / initial_balance * 100.0,
        "total_trades": total_trades,
        "winning_trades": len(wins),
        "losing_trades": len(losses),
        "win_rate": (len(wins) / total_trades * 100.0) if total_trades else 0.0,
        "profit_factor": _profit_factor(gross_profit, gross_loss),
        "max_drawdown": max_drawdown,
        "max_drawdown_percent": max_drawdown_percent,
    }

    statistics = {
        "grossProfit": gross_profit,
        "grossLoss": gross_loss,
        "averageWin": (gross_profit / len(wins)) if wins else 0.0,
        "averageLoss": (gross_loss / len(losses)) if losses else 0.0,
        "largestWin": max(net) if net else 0.0,
        "largestLoss": min(net) if net else 0.0,
        "maxConsecutiveWins": _max_streak(net, wins=True),
        "maxConsecutiveLosses": _max_streak(net, wins=False),
        "averageHoldTimeMs": _mean([t.duration_ms for t in trades]),
        "averageMFE": _mean([t.max_favorable_excursion for t in trades]),
        "averageMAE": _mean([t.max_adverse_excursion for t in trades]),
        "totalCommission": math.fsum(t.commission for t in trades),
        "totalSwap": math.fsum(t.swap for t in trades),
        "longTrades": sum(1 for t in trades if t.direction == "long"),
        "shortTrades": sum(1 for t in trades if t.direction == "short"),
        "exitReasons": _count_exit_reasons(trades),
    }
    annualized = _annualized_return(equity_curve, initial_balance, final_balance)
    statistics.update({
        "annualizedReturn": annualized,
        "payoffRatio": _payoff_ratio(statistics["averageWin"], statistics["averageLoss"], wins),
        "recoveryFactor": (total_return / max_drawdown) if max_drawdown > 0 else 0.0,
        "calmarRatio": (
            annualized / max_drawdown_percent) if max_drawdown_percent > 0 else 0.0,
    })
    statistics.update(_ratios(equity_curve))

    summary["statistics"] = statistics
    return summary


# -------------------------
# Internal helpers
# -------------------------

def _profit_factor(gross_profit: float, gross_loss: float) -> float:
    if gross_loss > 0:
        return gross_profit / gross_loss
    if gross_profit > 0:
        return PROFIT_FACTOR_CAP
    return 0.0


def _max_streak(net: List[float], wins: bool) -> int:
    best = 0
    current = 0
    for p in net:
        if (p > 0) == wins:
            current += 1
            best = max(best, current)
        else:
            current = 0
    return best


def _mean(values: List[float]) -> float:
    return (math.fsum(values) / len(values)) if values else 0.0


def _count_exit_reasons(trades: List[ClosedTrade]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for t in trades:
        counts[t.exit_reason] = counts.get(t.exit_reason, 0) + 1
    return dict(sorted(counts.items()))


def _ratios(equity_curve: List[EquityPoint]) -> Dict[str, float]:
    """
    Sharpe / Sortino over point-to-point balance returns, annualized
    with sqrt(252) as the dashboard always has.
    """
    balances = np.array([p.balance for p in equity_curve], dtype=float)
    if len(balances) < 3 or np.any(balances[:-1] <= 0):
        return {"sharpeRatio": 0.0, "sortinoRatio": 0.0}

    returns = np.diff(balances) / balances[:-1]
    mean = float(returns.mean())
    scale = math.sqrt(PERIODS_PER_YEAR)

    std = float(returns.std())
    sharpe = (mean * scale / std) if std > 0 else 0.0

    downside = returns[returns < 0]
    if len(downside) == 0:
        sortino = PROFIT_FACTOR_CAP if mean > 0 else 0.0
    else:
        down_dev = float(np.sqrt(np.mean(downside ** 2)))
        sortino = (mean * scale / down_dev) if down_dev > 0 else 0.0

    return {"sharpeRatio": sharpe, "sortinoRatio": sortino}


def _annualized_return(
    equity_curve: List[EquityPoint],
    initial_balance: float,
    final_balance: float,
) -> float:
    """Compound growth per 365.25-day year over the curve's time span, in percent."""
    if len(equity_curve) < 2:
        return 0.0
    first = parse_timestamp(equity_curve[0].timestamp)
    last = parse_timestamp(equity_curve[-1].timestamp)
    years = (last - first).total_seconds() * 1000.0 / MS_PER_YEAR
    if years <= 0:
        return 0.0

    ratio = final_balance / initial_balance
    if ratio <= 0:
        return -100.0
    growth = min(math.log(ratio) / years, MAX_LOG_GROWTH)
    return (math.exp(growth) - 1.0) * 100.0


def _payoff_ratio(average_win: float, average_loss: float, wins: List[float]) -> float:
    if not wins or average_loss <= 0:
        return 0.0
    return average_win / average_loss
