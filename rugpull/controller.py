"""Round lifecycle: countdown, live price, settlement, repeat.

    idle -> countdown -> active -> results -> idle -> ...

The controller never blocks. Every wait is a scheduler callback, so the same
code runs on deck timers in production and on a virtual clock in tests.
"""

import math
import random
from dataclasses import dataclass

from rugpull.balance import BalanceManager
from rugpull.chart import ChartGenerator, Round, get_price_at_time
from rugpull.config import GameConfig
from rugpull.errors import ActionResult, Failure
from rugpull.events import BalanceUpdate, EventBus, PriceUpdate, RoundEnd, StateChange
from rugpull.investments import InvestmentManager, ProfitSnapshot
from rugpull.timer import RoundTimer

IDLE = "idle"
COUNTDOWN = "countdown"
ACTIVE = "active"
RESULTS = "results"

LOSS = "loss"
CASHED_OUT = "cashed_out"
NO_INVESTMENT = "no_investment"


@dataclass(frozen=True)
class RoundResult:
    outcome: str  # "loss" | "cashed_out" | "no_investment"
    profit: float
    multiplier: float
    total_invested: float | None = None
    current_value: float | None = None


class GameController:
    """Owns one round at a time and the managers that settle it."""

    def __init__(self, scheduler, config: GameConfig | None = None,
                 rng: random.Random | None = None, bus: EventBus | None = None,
                 balance: BalanceManager | None = None,
                 chart_generator: ChartGenerator | None = None):
        self.config = config or GameConfig()
        self.scheduler = scheduler
        self.rng = rng or random.Random(self.config.seed)
        self.bus = bus or EventBus()
        self.balance = balance or BalanceManager(self.config.starting_balance)
        self.chart_generator = chart_generator or ChartGenerator(self.rng)
        self.investments = InvestmentManager()
        self.timer = RoundTimer(clock=scheduler.now)

        self.state = IDLE
        self.bet_amount = max(1, math.floor(self.config.bet_amount))
        self.current_round: Round | None = None
        self.coin_name: str | None = None
        self.last_cash_out: ProfitSnapshot | None = None
        self.last_result: RoundResult | None = None
        self._last_coin: str | None = None
        self._frame = None
        self._pending = None

        self.stats = {
            "rounds": 0,
            "cashed_out": 0,
            "losses": 0,
            "net_profit": 0.0,
            "best_multiplier": 0.0,
        }

    # -- lifecycle -------------------------------------------------------------

    def start_round(self) -> None:
        if self.state != IDLE:
            return
        self._set_state(COUNTDOWN)
        self._pending = self.scheduler.call_later(self.config.countdown_seconds, self._begin_round)

    def _begin_round(self):
        self._pending = None
        cfg = self.config
        duration = self.rng.randint(cfg.min_duration, cfg.max_duration)
        self.current_round = self.chart_generator.generate_chart(duration)
        self.coin_name = self._pick_coin_name()

        self.investments.reset()
        self.last_cash_out = None
        self.last_result = None
        self.timer.start(duration)

        # no funds: the round still plays, with nothing at stake
        if self.balance.has_sufficient_funds(self.bet_amount):
            self.balance.deduct(self.bet_amount, "investment")
            self.investments.auto_invest(self.bet_amount)
            self._publish_balance()

        self._set_state(ACTIVE)
        self._schedule_frame()

    def _schedule_frame(self):
        self._frame = self.scheduler.call_later(self.config.frame_interval, self._on_frame)

    def _on_frame(self):
        self._frame = None
        if self.state != ACTIVE:
            return

        elapsed = self.timer.elapsed_time()
        price = get_price_at_time(self.current_round.price_points, elapsed)
        self.bus.publish(PriceUpdate(price=price, day=self.timer.current_day(), time=elapsed))

        if self.timer.is_over():
            self._end_round()
            return
        self._schedule_frame()

    def _end_round(self):
        # no price samples after the crash
        if self._frame:
            self._frame.cancel()
            self._frame = None
        self.timer.stop()

        if self.investments.has_active_investments():
            lost = self.investments.mark_as_lost()
            result = RoundResult(outcome=LOSS, profit=-lost, multiplier=0.0,
                                 total_invested=lost, current_value=0.0)
        elif self.investments.has_cashed_out and self.last_cash_out:
            snap = self.last_cash_out
            result = RoundResult(outcome=CASHED_OUT, profit=snap.total_profit,
                                 multiplier=snap.multiplier,
                                 total_invested=snap.total_invested,
                                 current_value=snap.current_value)
        else:
            result = RoundResult(outcome=NO_INVESTMENT, profit=0.0, multiplier=0.0)

        self.last_result = result
        self._record_stats(result)
        self._set_state(RESULTS)
        self.bus.publish(RoundEnd(result=result, round=self.current_round, coin_name=self.coin_name))
        self._pending = self.scheduler.call_later(self.config.results_seconds, self._next_round)

    def _next_round(self):
        self._pending = None
        self._set_state(IDLE)
        self.start_round()

    def _record_stats(self, result: RoundResult):
        if result.outcome == NO_INVESTMENT:
            return
        self.stats["rounds"] += 1
        self.stats["net_profit"] += result.profit
        if result.outcome == CASHED_OUT:
            self.stats["cashed_out"] += 1
            self.stats["best_multiplier"] = max(self.stats["best_multiplier"], result.multiplier)
        else:
            self.stats["losses"] += 1

    # -- player actions ----------------------------------------------------------

    def double_down(self) -> ActionResult:
        """Second stake at the live price. Not allowed in the last 30% of the round."""
        if self.state != ACTIVE:
            return ActionResult.fail(Failure.ROUND_NOT_ACTIVE)

        failure = self.investments.double_down_failure()
        if failure:
            return ActionResult.fail(failure)

        elapsed = self.timer.elapsed_time()
        if elapsed / self.current_round.duration > self.config.double_down_cutoff:
            return ActionResult.fail(Failure.TOO_LATE_TO_DOUBLE_DOWN)

        if not self.balance.has_sufficient_funds(self.bet_amount):
            return ActionResult.fail(Failure.INSUFFICIENT_FUNDS, balance=self.balance.balance)

        price = get_price_at_time(self.current_round.price_points, elapsed)
        deducted = self.balance.deduct(self.bet_amount, "investment")
        if not deducted.success:
            return deducted

        result = self.investments.double_down(self.bet_amount, price, elapsed)
        self._publish_balance()
        result.balance = self.balance.balance
        return result

    def cash_out(self) -> ActionResult:
        if self.state != ACTIVE:
            return ActionResult.fail(Failure.ROUND_NOT_ACTIVE)
        if not self.investments.has_active_investments():
            return ActionResult.fail(Failure.NO_ACTIVE_INVESTMENTS)

        result = self.investments.cash_out(self.current_price())
        if not result.success:
            return result

        self.balance.add(result.snapshot.current_value, "cash_out")
        self.last_cash_out = result.snapshot
        self._publish_balance()
        result.balance = self.balance.balance
        return result

    def set_bet_amount(self, amount: float) -> int:
        self.bet_amount = max(1, math.floor(amount))
        return self.bet_amount

    # -- queries -----------------------------------------------------------------

    def current_price(self) -> float:
        if self.state != ACTIVE or self.current_round is None:
            return 1.0
        return get_price_at_time(self.current_round.price_points, self.timer.elapsed_time())

    def current_profit(self) -> ProfitSnapshot:
        if not self.investments.has_active_investments():
            return ProfitSnapshot()
        return self.investments.calculate_current_profit(self.current_price())

    def get_state(self) -> dict:
        """Debug snapshot."""
        return {
            "state": self.state,
            "balance": self.balance.balance,
            "bet_amount": self.bet_amount,
            "current_price": self.current_price(),
            "current_day": self.timer.current_day(),
            "investments": self.investments.summary(),
            "current_profit": self.current_profit(),
            "coin_name": self.coin_name,
            "stats": dict(self.stats),
        }

    # -- helpers -----------------------------------------------------------------

    def _set_state(self, state: str):
        self.state = state
        if state in (ACTIVE, RESULTS):
            self.bus.publish(StateChange(state=state, round=self.current_round, coin_name=self.coin_name))
        else:
            self.bus.publish(StateChange(state=state))

    def _publish_balance(self):
        self.bus.publish(BalanceUpdate(balance=self.balance.balance))

    def _pick_coin_name(self) -> str:
        choices = [c for c in self.config.coins if c != self._last_coin]
        coin = self.rng.choice(choices)
        self._last_coin = coin
        return coin
