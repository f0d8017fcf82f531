"""Typed events published by the game controller."""

from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from rugpull.chart import Round
    from rugpull.controller import RoundResult


@dataclass(frozen=True)
class StateChange:
    state: str
    round: "Round | None" = None
    coin_name: str | None = None


@dataclass(frozen=True)
class PriceUpdate:
    price: float
    day: int
    time: float


@dataclass(frozen=True)
class RoundEnd:
    result: "RoundResult"
    round: "Round"
    coin_name: str


@dataclass(frozen=True)
class BalanceUpdate:
    balance: float


class EventBus:
    """Dispatches events to handlers subscribed by event class."""

    def __init__(self):
        self._handlers: dict[type, list[Callable[[Any], None]]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: Callable[[Any], None]) -> None:
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: type, handler: Callable[[Any], None]) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event) -> None:
        for handler in list(self._handlers.get(type(event), [])):
            handler(event)
