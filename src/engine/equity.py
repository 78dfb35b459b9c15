from typing import List

from .models import ClosedTrade, EquityPoint


class CompensatedSum:
    """Neumaier running sum; keeps long pnl sequences from drifting."""

    def __init__(self, start: float = 0.0):
        self._sum = start
        self._carry = 0.0

    def add(self, x: float):
        t = self._sum + x
        if abs(self._sum) >= abs(x):
            self._carry += (self._sum - t) + x
        else:
            self._carry += (x - t) + self._sum
        self._sum = t

    @property
    def value(self) -> float:
        return self._sum + self._carry


class EquityTracker:
    """
    Realized balance, equity (balance + open pnl) and peak-to-trough
    drawdown. A point is appended at the seed, at every closed trade and
    at series end.
    """

    def __init__(self, initial_balance: float):
        self.initial_balance = initial_balance
        self._balance = CompensatedSum(initial_balance)
        self.equity = initial_balance
        self.peak_balance = initial_balance
        self.max_drawdown = 0.0
        self.peak_at_max_drawdown = initial_balance
        self.trade_count = 0
        self.points: List[EquityPoint] = []

    @property
    def balance(self) -> float:
        return self._balance.value

    @property
    def drawdown(self) -> float:
        return max(0.0, self.peak_balance - self.balance)

    @property
    def max_drawdown_percent(self) -> float:
        if self.peak_at_max_drawdown <= 0:
            return 0.0
        return self.max_drawdown / self.peak_at_max_drawdown * 100.0

    def seed(self, timestamp: str):
        self._append(timestamp)

    def mark(self, unrealized_pnl: float):
        self.equity = self.balance + unrealized_pnl

    def record_close(self, trade: ClosedTrade, unrealized_pnl: float = 0.0):
        self._balance.add(trade.pnl - trade.commission - trade.swap)
        self.trade_count += 1

        balance = self.balance
        if balance > self.peak_balance:
            self.peak_balance = balance

        dd = self.drawdown
        if dd > self.max_drawdown:
            self.max_drawdown = dd
            self.peak_at_max_drawdown = self.peak_balance

        self.mark(unrealized_pnl)
        self._append(trade.exit_time)

    def finish(self, timestamp: str):
        if len(self.points) < 2 or self.points[-1].timestamp != timestamp:
            self._append(timestamp)

    def _append(self, timestamp: str):
        dd = self.drawdown
        self.points.append(
            EquityPoint(
                timestamp=timestamp,
                balance=self.balance,
                equity=self.equity,
                drawdown=dd,
                drawdown_percent=(
                    dd / self.peak_balance * 100.0 if self.peak_balance > 0 else 0.0),
                peak_balance=self.peak_balance,
                trades=self.trade_count,
            )
        )
