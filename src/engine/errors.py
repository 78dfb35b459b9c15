from typing import Any, Dict


class BacktestError(Exception):
    """
    Base for every failure the engine reports to its caller.

    Carries a short machine-readable `kind` next to the message so the
    HTTP layer can return {"error": kind, "message": ...} instead of a
    half-filled result.
    """

    kind = "backtest_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.kind, "message": self.message}


class ConfigurationError(BacktestError):
    # unknown strategy, missing dataset, bad numbers, malformed series
    kind = "configuration"


class InsufficientDataError(BacktestError):
    kind = "insufficient_data"

    def __init__(self, available: int, required: int):
        super().__init__(
            f"dataset has {available} candles, strategy needs at least "
            f"{required} for warm-up"
        )
        self.available = available
        self.required = required


class OrderRejected(BacktestError):
    """Raised by the sizer for a single degenerate order; the run goes on."""

    kind = "numeric_degeneracy"


class UpstreamError(BacktestError):
    kind = "upstream"

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out["status"] = self.status
        return out
