"""Tests for the event bus."""

from rugpull.events import BalanceUpdate, EventBus, PriceUpdate


def test_publish_reaches_only_matching_subscribers():
    bus = EventBus()
    prices, balances = [], []
    bus.subscribe(PriceUpdate, prices.append)
    bus.subscribe(BalanceUpdate, balances.append)

    bus.publish(PriceUpdate(price=1.2, day=2, time=1.5))
    assert prices == [PriceUpdate(price=1.2, day=2, time=1.5)]
    assert balances == []


def test_unsubscribe():
    bus = EventBus()
    seen = []
    bus.subscribe(BalanceUpdate, seen.append)
    bus.unsubscribe(BalanceUpdate, seen.append)
    bus.publish(BalanceUpdate(balance=10))
    assert seen == []


def test_unsubscribe_unknown_handler_is_noop():
    bus = EventBus()
    bus.unsubscribe(BalanceUpdate, print)


def test_handler_may_unsubscribe_during_publish():
    bus = EventBus()
    seen = []

    def once(event):
        seen.append(event)
        bus.unsubscribe(BalanceUpdate, once)

    bus.subscribe(BalanceUpdate, once)
    bus.subscribe(BalanceUpdate, seen.append)
    bus.publish(BalanceUpdate(balance=1))
    bus.publish(BalanceUpdate(balance=2))
    assert [e.balance for e in seen] == [1, 1, 2]
