import pytest

import data.datasets as datasets
from app.main import create_app
from data.datasets import save_dataset

from helpers import build_series, random_walk

CONTRACT_KEYS = {
    "strategy", "symbol", "datasetId", "initialBalance", "finalBalance",
    "totalReturn", "totalReturnPercent", "winRate", "totalTrades",
    "winningTrades", "losingTrades", "maxDrawdown", "maxDrawdownPercent",
    "profitFactor", "trades", "equityData", "executionTime", "dataPoints",
    "isRealBacktest",
}


@pytest.fixture
def client(tmp_path, monkeypatch):
    save_dataset(build_series(random_walk(400, seed=11), wick=1.0), "walk.csv", tmp_path)
    save_dataset(build_series([2000.0] * 10), "tiny.csv", tmp_path)
    monkeypatch.setattr(datasets, "DATASETS_DIR", tmp_path)

    app = create_app()
    app.config["TESTING"] = True
    return app.test_client()


def test_backtest_returns_result(client):
    resp = client.get("/api/backtest/dataset?strategy=vab_breakout&datasetId=walk.csv")

    assert resp.status_code == 200
    body = resp.get_json()
    assert set(body) == CONTRACT_KEYS
    assert body["isRealBacktest"] is True
    assert body["datasetId"] == "walk.csv"
    assert body["initialBalance"] == 10000.0
    assert body["dataPoints"] == 400
    assert body["totalTrades"] == len(body["trades"])


def test_numeric_params_fall_back_to_defaults(client):
    resp = client.get(
        "/api/backtest/dataset?strategy=mean_reversion&datasetId=walk.csv"
        "&initialBalance=abc&riskPerTrade=0"
    )

    assert resp.status_code == 200
    assert resp.get_json()["initialBalance"] == 10000.0


def test_detailed_adds_statistics(client):
    resp = client.get(
        "/api/backtest/dataset?strategy=vab_breakout&datasetId=walk.csv"
        "&initialBalance=5000&detailed=1"
    )

    body = resp.get_json()
    assert body["initialBalance"] == 5000.0
    assert "statistics" in body
    assert "sharpeRatio" in body["statistics"]


@pytest.mark.parametrize("query", [
    "",
    "?strategy=vab_breakout",
    "?datasetId=walk.csv",
])
def test_missing_params(client, query):
    resp = client.get("/api/backtest/dataset" + query)

    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Missing required parameters"


@pytest.mark.parametrize("query", [
    "?strategy=nope&datasetId=walk.csv",
    "?strategy=vab_breakout&datasetId=missing.csv",
    "?strategy=vab_breakout&datasetId=walk.csv&propFirm=acme",
])
def test_configuration_errors(client, query):
    resp = client.get("/api/backtest/dataset" + query)

    assert resp.status_code == 400
    body = resp.get_json()
    assert body["error"] == "configuration"
    assert "isRealBacktest" not in body


def test_insufficient_data(client):
    resp = client.get("/api/backtest/dataset?strategy=vab_breakout&datasetId=tiny.csv")

    assert resp.status_code == 422
    body = resp.get_json()
    assert body["error"] == "insufficient_data"
    assert "isRealBacktest" not in body


def test_unexpected_failure_is_500(client, monkeypatch):
    def explode(config, candles=None):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr("app.backtests.run_configured_backtest", explode)
    resp = client.get("/api/backtest/dataset?strategy=vab_breakout&datasetId=walk.csv")

    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Failed to run backtest", "message": "disk on fire"}


def test_list_datasets(client):
    body = client.get("/api/datasets").get_json()
    assert sorted(d["id"] for d in body["datasets"]) == ["tiny.csv", "walk.csv"]


def test_list_strategies(client):
    body = client.get("/api/strategies").get_json()
    ids = [s["id"] for s in body["strategies"]]
    assert ids == ["vab_breakout", "mean_reversion", "dual_timeframe_trend", "momentum_scalper"]


@pytest.mark.parametrize("value", ["inf", "-inf", "nan"])
def test_non_finite_balance_is_rejected(client, value):
    resp = client.get(
        "/api/backtest/dataset?strategy=vab_breakout&datasetId=walk.csv"
        f"&initialBalance={value}"
    )

    assert resp.status_code == 400
    assert resp.get_json()["error"] == "configuration"
