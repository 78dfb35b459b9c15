from typing import List, Tuple

from .candles import duration_ms, parse_timestamp
from .models import (
    CLOSED,
    LONG,
    OPEN,
    PENDING,
    Candle,
    ClosedTrade,
    CostModel,
    Order,
    Position,
)

STOP_LOSS = "stop_loss"
TAKE_PROFIT = "take_profit"
REVERSAL = "reversal"
END_OF_SERIES = "end_of_series"


class PositionBook:
    """
    Owns every simulated position for one run.

    Positions move pending -> open -> closed and are never removed;
    each close appends exactly one ClosedTrade to `trades`.
    """

    def __init__(
        self,
        symbol: str,
        contract_multiplier: float = 100.0,
        costs: CostModel | None = None,
    ):
        self.symbol = symbol
        self.contract_multiplier = contract_multiplier
        self.costs = costs or CostModel()
        self.positions: List[Position] = []
        self.trades: List[ClosedTrade] = []
        self._next_id = 1

    @property
    def open_positions(self) -> List[Position]:
        return [p for p in self.positions if p.status == OPEN]

    def open(self, order: Order, candle: Candle, bar_index: int) -> Position:
        pos = Position(
            id=f"trade_{self._next_id}",
            symbol=self.symbol,
            direction=order.direction,
            volume=order.volume,
            entry_price=order.entry_price,
            entry_time=candle.timestamp,
            stop_loss=order.stop_loss,
            take_profit=order.take_profit,
            bar_index=bar_index,
            reason=order.reason,
        )
        self._next_id += 1
        self.positions.append(pos)

        # market fill at the signal bar's close: pending -> open at once
        if pos.status == PENDING:
            pos.status = OPEN
        return pos

    def update_excursions(self, candle: Candle, bar_index: int):
        """Fold this bar's high/low into each open position's MFE/MAE."""
        for pos in self.open_positions:
            if pos.bar_index >= bar_index:
                continue
            if pos.direction == LONG:
                favorable = candle.high - pos.entry_price
                adverse = candle.low - pos.entry_price
            else:
                favorable = pos.entry_price - candle.low
                adverse = pos.entry_price - candle.high

            scale = pos.volume * self.contract_multiplier
            pos.mfe = max(pos.mfe, favorable * scale)
            pos.mae = min(pos.mae, adverse * scale)

    def check_exits(self, candle: Candle, bar_index: int) -> List[ClosedTrade]:
        closed: List[ClosedTrade] = []

        for pos in self.open_positions:
            # entered at this bar's close; its range is already in the past
            if pos.bar_index >= bar_index:
                continue

            hit = _exit_for_bar(pos, candle)
            if hit is None:
                continue

            exit_price, reason = hit
            closed.append(self.close(pos, exit_price, candle.timestamp, reason))

        return closed

    def close_all(
        self,
        candle: Candle,
        reason: str,
        direction: str | None = None,
    ) -> List[ClosedTrade]:
        """Close at the bar's close, optionally only one direction."""
        return [
            self.close(pos, candle.close, candle.timestamp, reason)
            for pos in self.open_positions
            if direction is None or pos.direction == direction
        ]

    def close(
        self,
        pos: Position,
        exit_price: float,
        exit_time: str,
        reason: str,
    ) -> ClosedTrade:
        if pos.status != OPEN:
            raise ValueError(f"position {pos.id} is {pos.status}, not open")

        price_move = pos.sign * (exit_price - pos.entry_price)
        pnl = price_move * pos.volume * self.contract_multiplier
        commission, swap = self._costs(pos, exit_time)

        trade = ClosedTrade(
            id=pos.id,
            symbol=pos.symbol,
            direction=pos.direction,
            entry_time=pos.entry_time,
            exit_time=exit_time,
            entry_price=pos.entry_price,
            exit_price=exit_price,
            stop_loss=pos.stop_loss,
            take_profit=pos.take_profit,
            volume=pos.volume,
            pnl=pnl,
            pnl_in_price_units=price_move,
            commission=commission,
            swap=swap,
            duration_ms=duration_ms(pos.entry_time, exit_time),
            max_favorable_excursion=pos.mfe,
            max_adverse_excursion=pos.mae,
            exit_reason=reason,
            reason=pos.reason,
        )

        pos.status = CLOSED
        self.trades.append(trade)
        return trade

    def unrealized_pnl(self, price: float) -> float:
        return sum(
            pos.sign * (price - pos.entry_price) * pos.volume * self.contract_multiplier
            for pos in self.open_positions
        )

    # -------------------------
    # Internal helpers
    # -------------------------

    def _costs(self, pos: Position, exit_time: str) -> Tuple[float, float]:
        c = self.costs
        commission = c.commission_per_trade + c.commission_per_lot * pos.volume

        nights = (
            parse_timestamp(exit_time).date() - parse_timestamp(pos.entry_time).date()
        ).days
        swap = c.swap_per_lot_per_night * pos.volume * max(nights, 0)
        return commission, swap


def _exit_for_bar(pos: Position, candle: Candle) -> Tuple[float, str] | None:
    """
    Stop/target touch for one bar. If both levels fall inside the bar the
    stop wins; a bar opening beyond a level fills at the open.
    """
    if pos.direction == LONG:
        if candle.low <= pos.stop_loss:
            return min(candle.open, pos.stop_loss), STOP_LOSS
        if candle.high >= pos.take_profit:
            return max(candle.open, pos.take_profit), TAKE_PROFIT
    else:
        if candle.high >= pos.stop_loss:
            return max(candle.open, pos.stop_loss), STOP_LOSS
        if candle.low <= pos.take_profit:
            return min(candle.open, pos.take_profit), TAKE_PROFIT
    return None
