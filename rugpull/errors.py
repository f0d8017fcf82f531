"""Failure taxonomy and structured action results.

Player-facing operations never raise for expected conditions; they return an
ActionResult that carries either the outcome payload or a Failure.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rugpull.investments import Position, ProfitSnapshot


class Failure(Enum):
    INSUFFICIENT_FUNDS = "Insufficient funds"
    ROUND_NOT_ACTIVE = "Round not active"
    ALREADY_DOUBLED_DOWN = "Already doubled down this round"
    ALREADY_CASHED_OUT = "Already cashed out this round"
    NO_ACTIVE_INVESTMENTS = "No active investments"
    NO_INITIAL_POSITION = "No initial investment"
    TOO_LATE_TO_DOUBLE_DOWN = "Too late to double down"


@dataclass
class ActionResult:
    success: bool
    error: Failure | None = None
    balance: float | None = None
    amount: float | None = None
    position: "Position | None" = None
    snapshot: "ProfitSnapshot | None" = None

    @property
    def message(self) -> str:
        return self.error.value if self.error else "OK"

    @classmethod
    def fail(cls, error: Failure, balance: float | None = None) -> "ActionResult":
        return cls(success=False, error=error, balance=balance)
