"""Rug Pull, a Stream Deck meme-coin crash game.

Every round you are bought in at $1.00 automatically. Double down once if
you dare, and cash out before the rug gets pulled.

Usage:
    uv run rugpull-deck --config config.yaml
    uv run rugpull-deck --simulate 100000 --seed 7
"""

import argparse
import random
import sys
import threading
from pathlib import Path

from StreamDeck.DeviceManager import DeviceManager
from StreamDeck.ImageHelpers import PILHelper

from rugpull.balance import BalanceManager
from rugpull.chart import ChartGenerator
from rugpull.config import AppConfig, load_config
from rugpull.controller import ACTIVE, COUNTDOWN, GameController
from rugpull.events import BalanceUpdate, PriceUpdate, RoundEnd, StateChange
from rugpull.renderer import (
    format_money,
    render_action,
    render_chart,
    render_key,
    render_label,
    render_price,
    render_profit,
    render_result,
    status_to_color,
)
from rugpull.scheduler import ThreadingScheduler
from rugpull.simulate import format_report, simulate_rounds
from rugpull.storage import BalanceStore

DEFAULT_CONFIG = "config.yaml"
RENDER_INTERVAL = 0.2  # seconds between chart/price redraws

# -- key layout (fits a 15-key deck) -----------------------------------------
KEY_BALANCE = 0
KEY_COIN = 1
KEY_PRICE = 2
KEY_DAY = 3
KEY_PROFIT = 4
KEY_CHART = 5
KEY_STATUS = 6
KEY_BET_DOWN = 7
KEY_BET = 8
KEY_BET_UP = 9
KEY_DOUBLE = 10
KEY_CASH_OUT = 11
KEY_EXIT = 14


def find_deck():
    """Find first visual Stream Deck device."""
    decks = DeviceManager().enumerate()
    for deck in decks:
        if deck.is_visual():
            return deck
    return None


class RugPullDeck:
    """Renders controller events onto deck keys and turns presses into actions."""

    def __init__(self, config: AppConfig, deck, controller: GameController,
                 scheduler, verbose: bool = False):
        self.config = config
        self.deck = deck
        self.controller = controller
        self.scheduler = scheduler
        self.verbose = verbose
        self.exit_event = threading.Event()
        self.prices: list[float] = []
        self.prev_price = 1.0
        self._last_render = float("-inf")

        bus = controller.bus
        bus.subscribe(StateChange, self._on_state_change)
        bus.subscribe(PriceUpdate, self._on_price_update)
        bus.subscribe(RoundEnd, self._on_round_end)
        bus.subscribe(BalanceUpdate, self._on_balance_update)

    def start(self):
        """Initialize deck and kick off the first round."""
        self.deck.open()
        self.deck.reset()
        self.deck.set_brightness(self.config.deck.brightness)
        self.deck.set_key_callback(self._on_key_change)

        with self.scheduler.lock:
            self._render_static()
            self.controller.start_round()

    def stop(self):
        """Shutdown cleanly."""
        with self.scheduler.lock:
            self.scheduler.cancel_all()
            self.deck.reset()
        self.deck.close()

    def set_key(self, key: int, img):
        if key >= self.deck.key_count():
            return
        try:
            native = PILHelper.to_native_key_format(self.deck, img)
            with self.deck:
                self.deck.set_key_image(key, native)
        except Exception as e:
            if self.verbose:
                print(f"Key {key} write failed: {e}")

    # -- rendering ---------------------------------------------------------------

    def _render_static(self):
        self._render_balance(self.controller.balance.balance)
        self._render_bet()
        self.set_key(KEY_EXIT, render_key([("EXIT", 22, "white")], "#7f1d1d"))
        self._render_actions()

    def _render_balance(self, balance: float):
        self.set_key(KEY_BALANCE, render_label("BALANCE", format_money(balance), "#22c55e"))

    def _render_bet(self):
        bet = self.controller.bet_amount
        step = self.config.deck.bet_step
        self.set_key(KEY_BET_DOWN, render_action("-", f"${step}", "#374151"))
        self.set_key(KEY_BET, render_label("BET", format_money(bet), "#fbbf24"))
        self.set_key(KEY_BET_UP, render_action("+", f"${step}", "#374151"))

    def _render_actions(self):
        ctl = self.controller
        active = ctl.state == ACTIVE
        self.set_key(KEY_DOUBLE, render_action(
            "DOUBLE", format_money(ctl.bet_amount), "#065f46",
            enabled=(active and ctl.investments.can_double_down()
                     and ctl.balance.has_sufficient_funds(ctl.bet_amount)),
        ))
        self.set_key(KEY_CASH_OUT, render_action(
            "CASH", "OUT", "#b45309",
            enabled=active and ctl.investments.has_active_investments(),
        ))

    def _on_state_change(self, event: StateChange):
        if event.state == COUNTDOWN:
            self.set_key(KEY_STATUS, render_key(
                [("NEXT", 18, "white"), ("COIN", 14, "#dddddd")], status_to_color(COUNTDOWN)))
        elif event.state == ACTIVE:
            self.prices = [1.0]
            self.prev_price = 1.0
            self._last_render = float("-inf")
            self.set_key(KEY_COIN, render_key(
                [(event.coin_name or "?", 16, "white")], "#4c1d95"))
            self.set_key(KEY_STATUS, render_key(
                [("LIVE", 22, "white")], status_to_color(ACTIVE)))
            if self.verbose:
                print(f"Round: {event.coin_name} ({event.round.duration}s)")
        self._render_actions()

    def _on_price_update(self, event: PriceUpdate):
        now = self.scheduler.now()
        if now - self._last_render < RENDER_INTERVAL and event.price > 0:
            return
        self._last_render = now
        self.prices.append(event.price)

        self.set_key(KEY_PRICE, render_price(event.price, self.prev_price))
        self.set_key(KEY_DAY, render_label("DAY", str(event.day), "#60a5fa", value_size=22))
        self.set_key(KEY_CHART, render_chart(self.prices))
        snap = self.controller.current_profit()
        self.set_key(KEY_PROFIT, render_profit(snap.total_profit, snap.multiplier))
        self.prev_price = event.price

    def _on_round_end(self, event: RoundEnd):
        result = event.result
        self.set_key(KEY_STATUS, render_result(result.outcome, result.profit, result.multiplier))
        self.set_key(KEY_PROFIT, render_profit(result.profit, result.multiplier))
        self._render_actions()
        if self.verbose:
            print(f"{event.coin_name} {event.round.type}: {result.outcome} "
                  f"{format_money(result.profit, signed=True)} ({result.multiplier:.2f}x)")

    def _on_balance_update(self, event: BalanceUpdate):
        self._render_balance(event.balance)
        self._render_actions()

    # -- input -------------------------------------------------------------------

    def _on_key_change(self, deck, key: int, pressed: bool):
        """Handle physical button press."""
        if not pressed:
            return

        with self.scheduler.lock:
            if key == KEY_DOUBLE:
                self._report("Double down", self.controller.double_down())
            elif key == KEY_CASH_OUT:
                self._report("Cash out", self.controller.cash_out())
            elif key == KEY_BET_DOWN:
                self._adjust_bet(-self.config.deck.bet_step)
            elif key == KEY_BET_UP:
                self._adjust_bet(self.config.deck.bet_step)
            elif key == KEY_EXIT:
                self.exit_event.set()

    def _adjust_bet(self, delta: int):
        new_bet = self.controller.bet_amount + delta
        if self.config.deck.bet_step <= new_bet <= self.controller.balance.balance:
            self.controller.set_bet_amount(new_bet)
            self._render_bet()
            self._render_actions()

    def _report(self, action: str, result):
        self._render_actions()
        if not self.verbose:
            return
        if result.success:
            print(f"{action}: OK, balance {format_money(result.balance)}")
        else:
            print(f"{action}: {result.message}")


def main():
    parser = argparse.ArgumentParser(description="Rug Pull Stream Deck game")
    parser.add_argument("--config", default=DEFAULT_CONFIG, help="Config file path")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--simulate", type=int, metavar="ROUNDS",
                        help="Generate rounds offline and print the house-edge report")
    parser.add_argument("--reset-balance", action="store_true",
                        help="Start over from the configured starting balance")
    args = parser.parse_args()

    config_path = Path(args.config)
    if config_path.exists():
        config = load_config(config_path)
    elif args.config != DEFAULT_CONFIG:
        print(f"Config not found: {config_path}")
        sys.exit(1)
    else:
        config = AppConfig()
    if args.seed is not None:
        config.game.seed = args.seed

    rng = random.Random(config.game.seed)

    if args.simulate:
        report = simulate_rounds(ChartGenerator(rng), args.simulate,
                                 duration=config.game.min_duration)
        print(format_report(report))
        return

    deck = find_deck()
    if deck is None:
        print("No Stream Deck found. Is it plugged in?")
        sys.exit(1)

    scheduler = ThreadingScheduler()
    balance = BalanceManager(
        config.game.starting_balance,
        store=BalanceStore(config.game.save_file),
        restore=config.game.restore_balance,
    )
    if args.reset_balance:
        balance.reset()
    controller = GameController(scheduler, config.game, rng=rng, balance=balance)

    app = RugPullDeck(config=config, deck=deck, controller=controller,
                      scheduler=scheduler, verbose=args.verbose)
    print(f"Connected: {deck.deck_type()} ({deck.key_count()} keys)")
    print(f"RUG PULL -- balance {format_money(balance.balance)}")
    app.start()

    try:
        app.exit_event.wait()
    except KeyboardInterrupt:
        print("\nShutting down...")
    finally:
        app.stop()
        print("Done.")


if __name__ == "__main__":
    main()
