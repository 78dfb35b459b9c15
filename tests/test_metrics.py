import math

import pytest

from engine.metrics import PROFIT_FACTOR_CAP, compute_metrics
from engine.models import ClosedTrade, EquityPoint

from helpers import ts


def _trade(i, pnl, commission=0.5, direction="long", reason="take_profit"):
    return ClosedTrade(
        id=f"trade_{i}", symbol="XAUUSD", direction=direction,
        entry_time=ts(i), exit_time=ts(i + 4),
        entry_price=2000.0, exit_price=2000.0, stop_loss=1995.0, take_profit=2010.0,
        volume=0.2, pnl=pnl, pnl_in_price_units=pnl / 20, commission=commission, swap=0.0,
        duration_ms=4 * 15 * 60 * 1000, max_favorable_excursion=abs(pnl),
        max_adverse_excursion=-10.0, exit_reason=reason,
    )


def _curve(balances, minutes=15):
    peak = balances[0]
    out = []
    for i, b in enumerate(balances):
        peak = max(peak, b)
        out.append(EquityPoint(ts(i, minutes), b, b, peak - b, (peak - b) / peak * 100, peak, i))
    return out


def _metrics(trades, initial=10000.0, max_dd=0.0, max_dd_pct=0.0, minutes=15):
    final = initial + math.fsum(t.net_pnl for t in trades)
    balances = [initial]
    for t in trades:
        balances.append(balances[-1] + t.net_pnl)
    if len(balances) == 1:
        balances.append(initial)
    return compute_metrics(
        trades, _curve(balances, minutes), initial, final, max_dd, max_dd_pct)


def test_no_trades_gives_zeros_not_nan():
    m = _metrics([])

    assert m["total_trades"] == 0
    assert m["win_rate"] == 0.0
    assert m["profit_factor"] == 0.0
    assert m["total_return"] == 0.0
    assert m["statistics"]["sharpeRatio"] == 0.0
    assert all(not (isinstance(v, float) and math.isnan(v))
               for v in m["statistics"].values() if not isinstance(v, dict))


def test_only_winners_reports_sentinel():
    m = _metrics([_trade(1, 100.0), _trade(2, 50.0)])

    assert m["profit_factor"] == PROFIT_FACTOR_CAP
    assert m["win_rate"] == 100.0
    assert m["losing_trades"] == 0


def test_mixed_ledger():
    trades = [
        _trade(1, 200.0),
        _trade(2, -100.0, reason="stop_loss"),
        _trade(3, 0.5, direction="short", reason="end_of_series"),   # nets to zero
        _trade(4, 300.0),
    ]
    # five equity points spread evenly over one 365.25-day year
    year_minutes = 365.25 * 24 * 60
    m = _metrics(trades, max_dd=100.5, max_dd_pct=1.0, minutes=year_minutes / 4)
    stats = m["statistics"]

    assert m["total_trades"] == 4
    assert m["winning_trades"] == 2
    assert m["losing_trades"] == 2
    assert m["winning_trades"] + m["losing_trades"] == m["total_trades"]
    assert m["win_rate"] == 50.0

    gross_profit = 199.5 + 299.5
    gross_loss = 100.5 + 0.0
    assert stats["grossProfit"] == pytest.approx(gross_profit)
    assert stats["grossLoss"] == pytest.approx(gross_loss)
    assert m["profit_factor"] == pytest.approx(gross_profit / gross_loss)

    assert m["total_return"] == pytest.approx(199.5 - 100.5 + 0.0 + 299.5)
    assert m["total_return_percent"] == pytest.approx(m["total_return"] / 100)

    assert stats["largestWin"] == pytest.approx(299.5)
    assert stats["largestLoss"] == pytest.approx(-100.5)
    assert stats["maxConsecutiveWins"] == 1
    assert stats["maxConsecutiveLosses"] == 2
    assert stats["totalCommission"] == pytest.approx(2.0)
    assert stats["longTrades"] == 3
    assert stats["shortTrades"] == 1
    assert stats["exitReasons"] == {"end_of_series": 1, "stop_loss": 1, "take_profit": 2}
    assert stats["averageHoldTimeMs"] == 4 * 15 * 60 * 1000

    # one year: annualized equals the plain return
    assert stats["annualizedReturn"] == pytest.approx(m["total_return_percent"])
    assert stats["calmarRatio"] == pytest.approx(m["total_return_percent"] / 1.0)
    assert stats["recoveryFactor"] == pytest.approx(398.5 / 100.5)
    assert stats["payoffRatio"] == pytest.approx((499.0 / 2) / (100.5 / 2))


def test_ratios_are_finite():
    trades = [_trade(i, p) for i, p in enumerate([120.0, -80.0, 60.0, -30.0, 90.0])]
    stats = _metrics(trades)["statistics"]

    assert math.isfinite(stats["sharpeRatio"])
    assert math.isfinite(stats["sortinoRatio"])
    assert stats["sharpeRatio"] > 0


def test_metrics_are_repeatable():
    trades = [_trade(1, 200.0), _trade(2, -100.0)]
    assert _metrics(trades) == _metrics(trades)


def test_extra_ratios_guarded_without_drawdown_or_losses():
    stats = _metrics([_trade(1, 100.0), _trade(2, 50.0)])["statistics"]

    assert stats["payoffRatio"] == 0.0
    assert stats["recoveryFactor"] == 0.0
    assert stats["calmarRatio"] == 0.0


def test_annualized_return_stays_finite_on_short_runs():
    # 10% in fifteen minutes compounds past float range
    stats = _metrics([_trade(1, 1000.5)])["statistics"]

    assert math.isfinite(stats["annualizedReturn"])
    assert stats["annualizedReturn"] > 0
