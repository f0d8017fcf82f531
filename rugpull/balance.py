"""Player balance and transaction ledger."""

import time
from collections import deque
from dataclasses import dataclass

from rugpull.errors import ActionResult, Failure

HISTORY_LIMIT = 100


@dataclass(frozen=True)
class Transaction:
    amount: float  # positive for credits, negative for debits
    reason: str
    timestamp: float
    balance_after: float


class BalanceManager:
    """Owns the balance across rounds. Every mutation is written to the store."""

    def __init__(self, initial_balance: float = 1000.0, store=None,
                 restore: bool = False, clock=time.time):
        self.initial_balance = initial_balance
        self.store = store
        self.clock = clock
        saved = store.load() if (store is not None and restore) else None
        self._balance = saved if saved is not None else initial_balance
        self._history: deque[Transaction] = deque(maxlen=HISTORY_LIMIT)

    @property
    def balance(self) -> float:
        return self._balance

    def has_sufficient_funds(self, amount: float) -> bool:
        return self._balance >= amount

    def deduct(self, amount: float, reason: str = "investment") -> ActionResult:
        if not self.has_sufficient_funds(amount):
            return ActionResult.fail(Failure.INSUFFICIENT_FUNDS, balance=self._balance)

        self._balance -= amount
        self._record(-amount, reason)
        self._save()
        return ActionResult(success=True, balance=self._balance, amount=-amount)

    def add(self, amount: float, reason: str = "cash_out") -> ActionResult:
        self._balance += amount
        self._record(amount, reason)
        self._save()
        return ActionResult(success=True, balance=self._balance, amount=amount)

    def reset(self) -> None:
        """Restore the starting balance and clear the ledger."""
        self._balance = self.initial_balance
        self._history.clear()
        self._save()

    def history(self, limit: int = 10) -> list[Transaction]:
        """Most recent transactions, oldest first."""
        if limit <= 0:
            return []
        return list(self._history)[-limit:]

    def _record(self, amount: float, reason: str) -> None:
        self._history.append(Transaction(
            amount=amount,
            reason=reason,
            timestamp=self.clock(),
            balance_after=self._balance,
        ))

    def _save(self) -> None:
        if self.store is not None:
            self.store.save(self._balance)

    @staticmethod
    def format_currency(amount: float) -> str:
        sign = "+" if amount >= 0 else "-"
        return f"{sign}${abs(amount):.2f}"
