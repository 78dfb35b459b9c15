import os

from dotenv import load_dotenv
from flask import Flask

from app.backtests import bp as backtests_bp

load_dotenv()

BACKTEST_HOST = os.environ.get("BACKTEST_HOST", "127.0.0.1")
BACKTEST_PORT = int(os.environ.get("BACKTEST_PORT", "5000"))
BACKTEST_DEBUG = os.environ.get("BACKTEST_DEBUG", "1") == "1"


def create_app() -> Flask:
    """App factory; tests build their own instance."""
    app = Flask(__name__)
    app.register_blueprint(backtests_bp)
    return app


app = create_app()

if __name__ == "__main__":
    print(f"[app] serving backtests on {BACKTEST_HOST}:{BACKTEST_PORT}")
    app.run(host=BACKTEST_HOST, port=BACKTEST_PORT, debug=BACKTEST_DEBUG)
