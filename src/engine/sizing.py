import math

from .errors import ConfigurationError, OrderRejected
from .models import LONG, SHORT, Order


class PositionSizer:
    """
    Turns a strategy intent into a concrete order sized so that hitting
    the stop loses `risk_per_trade` percent of the current balance:

      riskAmount = balance * risk_per_trade / 100
      priceRisk  = |entry - stop|
      volume     = max(min_volume, riskAmount / (priceRisk * contract_multiplier))

    Volume is rounded to `volume_step` and optionally capped. Degenerate
    inputs raise OrderRejected; the caller skips that one order.
    """

    def __init__(
        self,
        risk_per_trade: float,
        contract_multiplier: float = 100.0,
        min_volume: float = 0.01,
        max_volume: float | None = None,
        volume_step: float = 0.01,
        default_stop_distance: float = 5.0,
        reward_risk: float = 2.0,
    ):
        if max_volume is not None and max_volume < min_volume:
            raise ConfigurationError(
                f"max_volume {max_volume} is below min_volume {min_volume}")

        self.risk_per_trade = risk_per_trade
        self.contract_multiplier = contract_multiplier
        self.min_volume = min_volume
        self.max_volume = max_volume
        self.volume_step = volume_step
        self.default_stop_distance = default_stop_distance
        self.reward_risk = reward_risk

    @classmethod
    def from_config(cls, config, risk_per_trade: float | None = None):
        return cls(
            risk_per_trade=(
                config.risk_per_trade if risk_per_trade is None else risk_per_trade),
            contract_multiplier=config.contract_multiplier,
            min_volume=config.min_volume,
            max_volume=config.max_volume,
            volume_step=config.volume_step,
            default_stop_distance=config.default_stop_distance,
            reward_risk=config.reward_risk,
        )

    def size(self, intent, entry_price: float, balance: float) -> Order:
        direction = intent.direction
        if direction not in (LONG, SHORT):
            raise OrderRejected(f"unknown direction {direction!r}")
        if not math.isfinite(entry_price) or entry_price <= 0:
            raise OrderRejected(f"invalid entry price {entry_price!r}")
        if not math.isfinite(balance) or balance <= 0:
            raise OrderRejected(f"no balance left to risk ({balance!r})")

        sign = 1 if direction == LONG else -1
        stop_loss = self._stop_loss(intent, entry_price, sign)
        if stop_loss <= 0:
            raise OrderRejected(f"stop {stop_loss!r} is not a valid price")

        price_risk = abs(entry_price - stop_loss)
        if not math.isfinite(price_risk) or price_risk == 0.0:
            raise OrderRejected("zero or non-finite price risk")

        take_profit = self._take_profit(intent, entry_price, price_risk, sign)
        if take_profit <= 0:
            raise OrderRejected(f"target {take_profit!r} is not a valid price")

        risk_amount = balance * self.risk_per_trade / 100.0
        raw_volume = risk_amount / (price_risk * self.contract_multiplier)
        if not math.isfinite(raw_volume):
            raise OrderRejected("non-finite volume")

        volume = max(self.min_volume, self._round_volume(raw_volume))
        if self.max_volume is not None:
            volume = min(volume, self.max_volume)
        if volume <= 0:
            raise OrderRejected(f"non-positive volume {volume!r}")

        return Order(
            direction=direction,
            entry_price=entry_price,
            volume=volume,
            stop_loss=stop_loss,
            take_profit=take_profit,
            reason=getattr(intent, "reason", "") or "",
        )

    # -------------------------
    # Internal helpers
    # -------------------------

    def _stop_loss(self, intent, entry_price: float, sign: int) -> float:
        stop = getattr(intent, "stop_loss", None)
        # only accept a strategy stop on the losing side of entry
        if stop is not None and math.isfinite(stop) and sign * (entry_price - stop) > 0:
            return stop
        return entry_price - sign * self.default_stop_distance

    def _take_profit(self, intent, entry_price: float, price_risk: float, sign: int) -> float:
        target = getattr(intent, "take_profit", None)
        if target is not None and math.isfinite(target) and sign * (target - entry_price) > 0:
            return target
        return entry_price + sign * price_risk * self.reward_risk

    def _round_volume(self, volume: float) -> float:
        if not self.volume_step:
            return volume
        steps = round(volume / self.volume_step)
        return round(steps * self.volume_step, 10)
