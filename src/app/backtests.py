# src/app/backtests.py

from flask import Blueprint, jsonify, request

from data.datasets import list_datasets
from engine.backtest import run_configured_backtest
from engine.errors import BacktestError, ConfigurationError, InsufficientDataError, UpstreamError
from engine.models import BacktestConfig
from strategies.registry import list_strategies

bp = Blueprint("backtests", __name__)

DEFAULT_INITIAL_BALANCE = 10000.0
DEFAULT_RISK_PER_TRADE = 1.0


def _number(value, default: float) -> float:
    # anything non-numeric or zero -> default
    try:
        num = float(value)
    except (TypeError, ValueError):
        return default
    return num if num else default


def _error_status(err: BacktestError) -> int:
    if isinstance(err, ConfigurationError):
        return 400
    if isinstance(err, InsufficientDataError):
        return 422
    if isinstance(err, UpstreamError):
        return err.status if err.status and err.status >= 400 else 502
    return 500


@bp.route("/api/backtest/dataset", methods=["GET"])
def run_dataset_backtest():
    args = request.args

    strategy_name = args.get("strategy")
    dataset_id = args.get("datasetId")
    if not strategy_name or not dataset_id:
        return jsonify({
            "error": "Missing required parameters",
            "message": "strategy and datasetId are required",
        }), 400

    detailed = args.get("detailed") in ("1", "true", "yes")

    try:
        config = BacktestConfig(
            strategy=strategy_name,
            dataset_id=dataset_id,
            initial_balance=_number(args.get("initialBalance"), DEFAULT_INITIAL_BALANCE),
            risk_per_trade=_number(args.get("riskPerTrade"), DEFAULT_RISK_PER_TRADE),
            prop_firm=args.get("propFirm") or None,
            min_confidence=_number(args.get("minConfidence"), 0.0),
        )
        print(f"[backtests] starting {strategy_name} on {dataset_id}")
        result = run_configured_backtest(config)
    except BacktestError as e:
        print(f"[backtests] {e.kind}: {e.message}")
        return jsonify(e.to_dict()), _error_status(e)
    except Exception as e:  # noqa: BLE001
        print(f"[backtests] ERROR during backtest: {e!r}")
        return jsonify({
            "error": "Failed to run backtest",
            "message": str(e) or e.__class__.__name__,
        }), 500

    print(
        f"[backtests] {strategy_name}: {result.total_trades} trades, "
        f"{result.win_rate:.1f}% win rate in {result.execution_time:.0f}ms"
    )
    return jsonify(result.to_dict(include_statistics=detailed))


@bp.route("/api/datasets", methods=["GET"])
def get_datasets():
    return jsonify({"datasets": list_datasets()})


@bp.route("/api/strategies", methods=["GET"])
def get_strategies():
    return jsonify({"strategies": list_strategies()})
