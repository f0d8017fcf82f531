"""Tests for the round lifecycle, driven by a virtual clock."""

import random

import pytest

from rugpull.balance import BalanceManager
from rugpull.chart import ChartGenerator, PricePoint, Round
from rugpull.config import GameConfig
from rugpull.controller import (
    ACTIVE,
    CASHED_OUT,
    COUNTDOWN,
    IDLE,
    LOSS,
    NO_INVESTMENT,
    RESULTS,
    GameController,
)
from rugpull.errors import Failure
from rugpull.events import BalanceUpdate, PriceUpdate, RoundEnd, StateChange
from rugpull.scheduler import VirtualScheduler


class FixedChart:
    """Chart generator that always returns the same price path."""

    def __init__(self, points, round_type="small_peak", peak=1.3):
        self.points = tuple(PricePoint.at(t, p) for t, p in points)
        self.round_type = round_type
        self.peak = peak

    def generate_chart(self, duration):
        return Round(type=self.round_type, peak_multiplier=self.peak,
                     price_points=self.points, duration=duration)


FLAT_THEN_RUG = [(0.0, 1.0), (9.7, 1.0), (9.7, 0.0)]
PUMP_TO_1_3 = [(0.0, 1.0), (2.0, 1.3), (9.7, 1.3), (9.7, 0.0)]
DIP_TO_0_8 = [(0.0, 1.0), (4.0, 0.8), (9.7, 0.8), (9.7, 0.0)]


def make_game(points=FLAT_THEN_RUG, balance=1000, **overrides):
    cfg = GameConfig(min_duration=10, max_duration=10, **overrides)
    scheduler = VirtualScheduler()
    ctl = GameController(
        scheduler,
        cfg,
        rng=random.Random(3),
        balance=BalanceManager(balance),
        chart_generator=FixedChart(points),
    )
    return ctl, scheduler


def record(ctl, *event_types):
    events = []
    for event_type in event_types:
        ctl.bus.subscribe(event_type, events.append)
    return events


def test_round_starts_after_countdown_with_auto_invest():
    ctl, clock = make_game()
    ctl.start_round()
    assert ctl.state == COUNTDOWN
    assert ctl.balance.balance == 1000

    clock.advance(3)
    assert ctl.state == ACTIVE
    assert ctl.balance.balance == 900
    assert len(ctl.investments.positions) == 1
    assert ctl.investments.positions[0].entry_price == 1.0
    assert ctl.coin_name in ctl.config.coins


def test_start_round_is_ignored_unless_idle():
    ctl, clock = make_game()
    ctl.start_round()
    ctl.start_round()
    clock.advance(3)
    assert ctl.balance.balance == 900
    ctl.start_round()
    assert ctl.state == ACTIVE


def test_holding_through_the_crash_loses_the_stake():
    """Bet $100, never cash out: balance ends at $900."""
    ctl, clock = make_game()
    ctl.start_round()
    clock.advance(3)
    clock.advance(10.1)

    assert ctl.state == RESULTS
    assert ctl.last_result.outcome == LOSS
    assert ctl.last_result.profit == -100
    assert ctl.balance.balance == 900


def test_cash_out_at_1_3_pays_stake_times_price():
    """Cash out at $1.30: profit +$30, balance credited $130."""
    ctl, clock = make_game(PUMP_TO_1_3)
    ctl.start_round()
    clock.advance(3)
    clock.advance(5)

    assert ctl.current_price() == pytest.approx(1.3)
    result = ctl.cash_out()
    assert result.success
    assert result.snapshot.total_profit == pytest.approx(30)
    assert ctl.balance.balance == pytest.approx(1030)

    clock.advance(6)
    assert ctl.last_result.outcome == CASHED_OUT
    assert ctl.last_result.profit == pytest.approx(30)
    assert ctl.last_result.multiplier == pytest.approx(1.3)
    # the crash does not touch cashed-out money
    assert ctl.balance.balance == pytest.approx(1030)


def test_double_down_then_crash_forfeits_both_stakes():
    ctl, clock = make_game(DIP_TO_0_8)
    ctl.start_round()
    clock.advance(3)
    clock.advance(5)

    result = ctl.double_down()
    assert result.success
    assert result.position.entry_price == pytest.approx(0.8)
    assert ctl.balance.balance == 800

    clock.advance(6)
    assert ctl.last_result.outcome == LOSS
    assert ctl.last_result.profit == -200
    assert ctl.balance.balance == 800


def test_double_down_closes_after_seventy_percent():
    ctl, clock = make_game()
    ctl.start_round()
    clock.advance(3)
    clock.advance(7.1)
    result = ctl.double_down()
    assert result.error == Failure.TOO_LATE_TO_DOUBLE_DOWN
    assert ctl.balance.balance == 900


@pytest.mark.parametrize("elapsed", [6.9, 7.0])
def test_double_down_allowed_up_to_cutoff(elapsed):
    ctl, clock = make_game()
    ctl.start_round()
    clock.advance(3)
    clock.advance(elapsed)
    assert ctl.double_down().success
    assert ctl.balance.balance == 800


def test_second_double_down_rejected():
    ctl, clock = make_game()
    ctl.start_round()
    clock.advance(4)
    assert ctl.double_down().success
    assert ctl.double_down().error == Failure.ALREADY_DOUBLED_DOWN


def test_double_down_needs_funds_for_second_stake():
    ctl, clock = make_game(balance=150)
    ctl.start_round()
    clock.advance(4)
    result = ctl.double_down()
    assert result.error == Failure.INSUFFICIENT_FUNDS
    assert ctl.balance.balance == 50


def test_double_down_after_cash_out_rejected():
    ctl, clock = make_game(PUMP_TO_1_3)
    ctl.start_round()
    clock.advance(6)
    assert ctl.cash_out().success
    assert ctl.double_down().error == Failure.ALREADY_CASHED_OUT
    assert ctl.cash_out().error == Failure.NO_ACTIVE_INVESTMENTS


def test_broke_player_watches_round_with_nothing_at_stake():
    ctl, clock = make_game(balance=50)
    ctl.start_round()
    clock.advance(3)
    assert ctl.state == ACTIVE
    assert ctl.investments.positions == []
    assert ctl.cash_out().error == Failure.NO_ACTIVE_INVESTMENTS
    assert ctl.double_down().error == Failure.NO_INITIAL_POSITION

    clock.advance(10.1)
    assert ctl.last_result.outcome == NO_INVESTMENT
    assert ctl.last_result.profit == 0
    assert ctl.balance.balance == 50
    assert ctl.stats["rounds"] == 0


def test_actions_outside_active_round_fail():
    ctl, clock = make_game()
    assert ctl.cash_out().error == Failure.ROUND_NOT_ACTIVE
    assert ctl.double_down().error == Failure.ROUND_NOT_ACTIVE
    ctl.start_round()
    assert ctl.cash_out().error == Failure.ROUND_NOT_ACTIVE
    clock.advance(13.1)
    assert ctl.state == RESULTS
    assert ctl.double_down().error == Failure.ROUND_NOT_ACTIVE


def test_state_cycle():
    ctl, clock = make_game()
    events = record(ctl, StateChange)
    ctl.start_round()
    clock.advance(3)
    clock.advance(10.1)
    clock.advance(3)

    states = [e.state for e in events]
    assert states == [COUNTDOWN, ACTIVE, RESULTS, IDLE, COUNTDOWN]
    active = events[1]
    assert active.round is not None
    assert active.coin_name == ctl.coin_name


def test_no_price_updates_after_round_end():
    ctl, clock = make_game()
    events = record(ctl, PriceUpdate, RoundEnd)
    ctl.start_round()
    clock.advance(3)
    clock.advance(10.1)
    clock.advance(2)

    kinds = [type(e) for e in events]
    end = kinds.index(RoundEnd)
    assert end == len(events) - 1
    assert PriceUpdate in kinds[:end]
    # final sample lands on the crash
    assert events[end - 1].price == 0


def test_price_updates_carry_day_and_time():
    ctl, clock = make_game()
    updates = record(ctl, PriceUpdate)
    ctl.start_round()
    clock.advance(3)
    clock.advance(2.5)
    last = updates[-1]
    assert last.day == 3
    assert last.time == pytest.approx(2.5, abs=0.05)
    assert last.price == pytest.approx(1.0)


def test_balance_updates_published_on_every_change():
    ctl, clock = make_game(PUMP_TO_1_3)
    updates = record(ctl, BalanceUpdate)
    ctl.start_round()
    clock.advance(5)
    ctl.cash_out()
    assert [u.balance for u in updates] == [900, pytest.approx(1030)]


def test_coin_name_never_repeats_back_to_back():
    ctl, clock = make_game(coins=["$A", "$B"])
    events = record(ctl, StateChange)
    ctl.start_round()
    clock.advance(16.5 * 6)

    coins = [e.coin_name for e in events if e.state == ACTIVE]
    assert len(coins) >= 5
    for prev, cur in zip(coins, coins[1:]):
        assert prev != cur


def test_set_bet_amount_floors_and_clamps():
    ctl, _ = make_game()
    assert ctl.set_bet_amount(150.9) == 150
    assert ctl.set_bet_amount(0.4) == 1
    assert ctl.set_bet_amount(-20) == 1


def test_new_bet_amount_applies_to_next_round():
    ctl, clock = make_game()
    ctl.set_bet_amount(250)
    ctl.start_round()
    clock.advance(3)
    assert ctl.balance.balance == 750
    assert ctl.investments.positions[0].amount == 250


def test_current_price_is_entry_price_when_idle():
    ctl, _ = make_game()
    assert ctl.current_price() == 1.0
    assert ctl.current_profit().total_profit == 0


def test_get_state_snapshot():
    ctl, clock = make_game()
    ctl.start_round()
    clock.advance(4.5)
    state = ctl.get_state()
    assert state["state"] == ACTIVE
    assert state["balance"] == 900
    assert state["bet_amount"] == 100
    assert state["current_day"] == 2
    assert state["investments"]["total_investments"] == 1
    assert state["coin_name"] == ctl.coin_name


def test_stats_track_settled_rounds():
    ctl, clock = make_game(PUMP_TO_1_3)
    ctl.start_round()
    clock.advance(5)
    ctl.cash_out()
    clock.advance(14.5)  # through results and countdown
    assert ctl.state == ACTIVE
    clock.advance(10.1)

    assert ctl.stats["rounds"] == 2
    assert ctl.stats["cashed_out"] == 1
    assert ctl.stats["losses"] == 1
    assert ctl.stats["net_profit"] == pytest.approx(30 - 100)
    assert ctl.stats["best_multiplier"] == pytest.approx(1.3)


def test_balance_matches_net_profit_over_many_generated_rounds():
    cfg = GameConfig(min_duration=15, max_duration=18)
    clock = VirtualScheduler()
    rng = random.Random(11)
    ctl = GameController(clock, cfg, rng=rng, chart_generator=ChartGenerator(rng))
    ctl.start_round()
    for i in range(200):
        clock.advance(1)
        if ctl.state == ACTIVE and i % 3 == 0 and ctl.current_price() > 1.05:
            ctl.cash_out()
    while ctl.state != RESULTS:
        clock.advance(1)

    assert ctl.stats["rounds"] > 5
    assert ctl.balance.balance == pytest.approx(1000 + ctl.stats["net_profit"])
