import time
from typing import Any, Dict

from .candles import CandleSeries
from .equity import EquityTracker
from .errors import InsufficientDataError, OrderRejected
from .lifecycle import END_OF_SERIES, REVERSAL, PositionBook
from .metrics import compute_metrics
from .models import LONG, SHORT, BacktestConfig, BacktestResult
from .risk import PropFirmGuard, get_prop_firm_rules
from .sizing import PositionSizer
from data.datasets import load_dataset
from strategies.registry import create_strategy


def run_backtest(strategy, candles: CandleSeries, config: BacktestConfig) -> BacktestResult:
    """
    Replay `candles` bar by bar through `strategy`.

    The strategy only ever sees a window ending at the current bar.
    Anything still open at the last bar is closed at its close, so the
    result is fully realized. Same inputs -> same ledger.
    """
    started = time.perf_counter()

    warmup = config.warmup if config.warmup is not None else strategy.warmup
    if len(candles) < warmup:
        raise InsufficientDataError(len(candles), warmup)

    lookback = max(config.lookback, getattr(strategy, "min_lookback", 1))

    rules = get_prop_firm_rules(config.prop_firm) if config.prop_firm else None
    guard = PropFirmGuard(rules, config.initial_balance)
    sizer = PositionSizer.from_config(
        config, risk_per_trade=guard.risk_per_trade(config.risk_per_trade))
    capacity = guard.capacity(config.max_concurrent_positions)

    book = PositionBook(config.symbol, config.contract_multiplier, config.costs)
    tracker = EquityTracker(config.initial_balance)
    tracker.seed(candles[0].timestamp)

    counters = {
        "signalsGenerated": 0,
        "filteredByConfidence": 0,
        "rejectedOrders": 0,
        "blockedByRiskRules": 0,
    }

    for idx in range(warmup, len(candles)):
        candle = candles[idx]
        guard.on_bar(candle.timestamp, tracker.balance)

        # 1) exits for positions opened on earlier bars
        book.update_excursions(candle, idx)
        for trade in book.check_exits(candle, idx):
            tracker.record_close(trade, book.unrealized_pnl(candle.close))

        # 2) strategy decision on history up to and including this bar
        intent = strategy.evaluate(candles.window(idx, lookback))

        if intent is not None:
            counters["signalsGenerated"] += 1
            _apply_intent(intent, idx, candles, config, book, tracker,
                          sizer, guard, capacity, counters)

        tracker.mark(book.unrealized_pnl(candle.close))

    last = candles[len(candles) - 1]
    for trade in book.close_all(last, END_OF_SERIES):
        tracker.record_close(trade, book.unrealized_pnl(last.close))
    tracker.finish(last.timestamp)

    summary = compute_metrics(
        book.trades,
        tracker.points,
        config.initial_balance,
        tracker.balance,
        tracker.max_drawdown,
        tracker.max_drawdown_percent,
    )
    statistics = summary.pop("statistics")
    statistics.update(counters)

    return BacktestResult(
        strategy=getattr(strategy, "name", config.strategy),
        symbol=config.symbol,
        dataset_id=config.dataset_id,
        initial_balance=config.initial_balance,
        final_balance=summary["final_balance"],
        total_return=summary["total_return"],
        total_return_percent=summary["total_return_percent"],
        win_rate=summary["win_rate"],
        total_trades=summary["total_trades"],
        winning_trades=summary["winning_trades"],
        losing_trades=summary["losing_trades"],
        max_drawdown=summary["max_drawdown"],
        max_drawdown_percent=summary["max_drawdown_percent"],
        profit_factor=summary["profit_factor"],
        trades=list(book.trades),
        equity_data=list(tracker.points),
        execution_time=(time.perf_counter() - started) * 1000.0,
        data_points=len(candles),
        statistics=statistics,
    )


def run_configured_backtest(
    config: BacktestConfig,
    candles: CandleSeries | None = None,
) -> BacktestResult:
    """
    Build a fresh strategy for this run and load the dataset unless the
    caller already has the candles.
    """
    strategy = create_strategy(config.strategy, config.strategy_params)
    if candles is None:
        candles = load_dataset(config.dataset_id)
    return run_backtest(strategy, candles, config)


# -------------------------
# Internal helpers
# -------------------------

def _apply_intent(
    intent,
    idx: int,
    candles: CandleSeries,
    config: BacktestConfig,
    book: PositionBook,
    tracker: EquityTracker,
    sizer: PositionSizer,
    guard: PropFirmGuard,
    capacity: int,
    counters: Dict[str, Any],
):
    candle = candles[idx]

    if intent.confidence < config.min_confidence:
        counters["filteredByConfidence"] += 1
        return

    if config.allow_reversal:
        opposite = SHORT if intent.direction == LONG else LONG
        for trade in book.close_all(candle, REVERSAL, direction=opposite):
            tracker.record_close(trade, book.unrealized_pnl(candle.close))

    if len(book.open_positions) >= capacity:
        return

    if not guard.allows_new_order(tracker.balance):
        counters["blockedByRiskRules"] += 1
        return

    try:
        order = sizer.size(intent, candle.close, tracker.balance)
    except OrderRejected as e:
        counters["rejectedOrders"] += 1
        print(f"[backtest] WARNING: rejected order at bar {idx} "
              f"({candle.timestamp}): {e.message}")
        return

    book.open(order, candle, idx)
