from dataclasses import dataclass
from typing import Dict

from .candles import parse_timestamp
from .errors import ConfigurationError


@dataclass(frozen=True)
class PropFirmRules:
    name: str
    max_daily_loss: float       # percent of the day's opening balance
    max_total_loss: float       # percent of the initial balance
    max_positions: int
    max_risk_per_trade: float   # percent


PROP_FIRM_RULES: Dict[str, PropFirmRules] = {
    "equity-edge": PropFirmRules(
        name="Equity Edge",
        max_daily_loss=4.0,
        max_total_loss=6.0,
        max_positions=3,
        max_risk_per_trade=2.0,
    ),
    "fundednext": PropFirmRules(
        name="FundedNext",
        max_daily_loss=5.0,
        max_total_loss=10.0,
        max_positions=5,
        max_risk_per_trade=2.0,
    ),
}


def get_prop_firm_rules(name: str) -> PropFirmRules:
    rules = PROP_FIRM_RULES.get(name)
    if rules is None:
        raise ConfigurationError(
            f"unknown prop firm ruleset {name!r}; "
            f"expected one of {sorted(PROP_FIRM_RULES)}"
        )
    return rules


class PropFirmGuard:
    """
    Applies a prop-firm ruleset on top of the run's own limits.

    Only restricts: caps risk per trade and position count, and stops new
    orders once the daily or total loss limit is reached. Open positions
    are left to their own exits.
    """

    def __init__(self, rules: PropFirmRules | None, initial_balance: float):
        self.rules = rules
        self.initial_balance = initial_balance
        self._day = None
        self._day_start_balance = initial_balance
        self._halted = False

    def risk_per_trade(self, requested: float) -> float:
        if self.rules is None:
            return requested
        return min(requested, self.rules.max_risk_per_trade)

    def capacity(self, requested: int) -> int:
        if self.rules is None:
            return requested
        return min(requested, self.rules.max_positions)

    def on_bar(self, timestamp: str, balance: float):
        """Roll the daily loss window over on each new UTC day."""
        if self.rules is None:
            return
        day = parse_timestamp(timestamp).date()
        if day != self._day:
            self._day = day
            self._day_start_balance = balance

    def allows_new_order(self, balance: float) -> bool:
        if self.rules is None:
            return True

        if self._halted:
            return False

        total_loss = self.initial_balance - balance
        if total_loss >= self.initial_balance * self.rules.max_total_loss / 100.0:
            # total loss breach ends trading for the run
            self._halted = True
            return False

        daily_loss = self._day_start_balance - balance
        if daily_loss >= self._day_start_balance * self.rules.max_daily_loss / 100.0:
            return False

        return True
