"""Per-round positions and profit/loss."""

import math
import uuid
from dataclasses import dataclass, field, replace

from rugpull.errors import ActionResult, Failure

# position status
ACTIVE = "active"
CASHED_OUT = "cashed_out"
LOST = "lost"

# position kind
INITIAL = "initial"
DOUBLED = "doubled"

ENTRY_PRICE = 1.0


@dataclass
class Position:
    amount: float
    entry_price: float
    entry_time: float
    kind: str  # "initial" | "doubled"
    status: str = ACTIVE
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def entry_day(self) -> int:
        return math.floor(self.entry_time) + 1


@dataclass(frozen=True)
class PositionValue:
    position: Position
    multiplier: float
    value: float
    profit: float


@dataclass(frozen=True)
class ProfitSnapshot:
    total_profit: float = 0.0
    total_invested: float = 0.0
    current_value: float = 0.0
    multiplier: float = 0.0
    positions: tuple[PositionValue, ...] = ()


class InvestmentManager:
    """Tracks the 0-2 positions of the current round."""

    def __init__(self):
        self.reset()

    def reset(self):
        """Discard the previous round's positions."""
        self.positions: list[Position] = []
        self.has_doubled_down = False
        self.has_cashed_out = False

    def auto_invest(self, amount: float) -> ActionResult:
        """Mandatory entry at $1.00 on day 1. The caller checks funds."""
        position = Position(amount=amount, entry_price=ENTRY_PRICE, entry_time=0.0, kind=INITIAL)
        self.positions.append(position)
        return ActionResult(success=True, position=position, amount=amount)

    def double_down(self, amount: float, price: float, time: float) -> ActionResult:
        failure = self.double_down_failure()
        if failure:
            return ActionResult.fail(failure)

        position = Position(amount=amount, entry_price=price, entry_time=time, kind=DOUBLED)
        self.positions.append(position)
        self.has_doubled_down = True
        return ActionResult(success=True, position=position, amount=amount)

    def double_down_failure(self) -> Failure | None:
        if self.has_doubled_down:
            return Failure.ALREADY_DOUBLED_DOWN
        if self.has_cashed_out:
            return Failure.ALREADY_CASHED_OUT
        if not self.positions:
            return Failure.NO_INITIAL_POSITION
        return None

    def can_double_down(self) -> bool:
        return self.double_down_failure() is None

    def has_active_investments(self) -> bool:
        return bool(self.positions) and not self.has_cashed_out

    def calculate_current_profit(self, price: float) -> ProfitSnapshot:
        """Value every position at `price`. No side effects."""
        if not self.positions:
            return ProfitSnapshot()

        total_invested = 0.0
        current_value = 0.0
        values = []
        for pos in self.positions:
            multiplier = price / pos.entry_price if pos.entry_price > 0 else 0.0
            value = pos.amount * multiplier
            total_invested += pos.amount
            current_value += value
            # copy so later status changes don't leak into the snapshot
            values.append(PositionValue(
                position=replace(pos),
                multiplier=multiplier,
                value=value,
                profit=value - pos.amount,
            ))

        return ProfitSnapshot(
            total_profit=current_value - total_invested,
            total_invested=total_invested,
            current_value=current_value,
            multiplier=current_value / total_invested if total_invested else 0.0,
            positions=tuple(values),
        )

    def cash_out(self, price: float) -> ActionResult:
        if not self.positions:
            return ActionResult.fail(Failure.NO_ACTIVE_INVESTMENTS)
        if self.has_cashed_out:
            return ActionResult.fail(Failure.ALREADY_CASHED_OUT)

        snapshot = self.calculate_current_profit(price)
        self.has_cashed_out = True
        for pos in self.positions:
            pos.status = CASHED_OUT
        return ActionResult(success=True, snapshot=snapshot, amount=snapshot.current_value)

    def mark_as_lost(self) -> float:
        """Forfeit every still-active position. Returns the total staked."""
        lost = 0.0
        for pos in self.positions:
            if pos.status == ACTIVE:
                pos.status = LOST
                lost += pos.amount
        return lost

    def summary(self) -> dict:
        return {
            "total_investments": len(self.positions),
            "has_doubled_down": self.has_doubled_down,
            "has_cashed_out": self.has_cashed_out,
            "can_double_down": self.can_double_down(),
            "investments": [replace(p) for p in self.positions],
        }
