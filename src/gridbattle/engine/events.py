"""Events published by a match for the presentation layer."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from .attack import AttackOutcome
from .board import PlacementRejection
from .ship import Coordinate

TEvent = TypeVar("TEvent")
EventHandler = Callable[[Any], None]


class Side(Enum):
    HUMAN = "human"
    COMPUTER = "computer"

    def opponent(self) -> Side:
        return Side.COMPUTER if self is Side.HUMAN else Side.HUMAN


@dataclass(frozen=True)
class PlacementAccepted:
    ship_id: str
    origin: Coordinate
    width: int
    height: int


@dataclass(frozen=True)
class PlacementRejected:
    ship_id: str
    reason: PlacementRejection


@dataclass(frozen=True)
class AllShipsPlaced:
    side: Side = Side.HUMAN


@dataclass(frozen=True)
class AttackResult:
    side: Side
    row: int
    col: int
    outcome: AttackOutcome
    ship_id: str | None = None


@dataclass(frozen=True)
class ShipSunk:
    side: Side
    ship_id: str


@dataclass(frozen=True)
class MatchWon:
    """`side` is the winner; `turn_counts` maps each side to its attacks."""

    side: Side
    turn_counts: dict[Side, int] = field(default_factory=dict)


@dataclass(frozen=True)
class PhaseChanged:
    previous: str
    current: str


class EventBus:
    """In-process pub/sub with type-filtered handlers and a replayable history."""

    def __init__(self) -> None:
        self._next_id = 1
        self._subscriptions: dict[int, tuple[type[object], EventHandler]] = {}
        self.history: list[object] = []

    def subscribe(self, event_type: type[TEvent], handler: Callable[[TEvent], None]) -> int:
        """Subscribe handler for an event type and return its subscription id."""
        sub_id = self._next_id
        self._next_id += 1
        self._subscriptions[sub_id] = (event_type, handler)
        return sub_id

    def unsubscribe(self, subscription_id: int) -> None:
        self._subscriptions.pop(subscription_id, None)

    def publish(self, event: object) -> int:
        """Publish one event and return number of invoked handlers."""
        self.history.append(event)
        invoked = 0
        for subscribed_type, handler in tuple(self._subscriptions.values()):
            if isinstance(event, subscribed_type):
                handler(event)
                invoked += 1
        return invoked

    def of_type(self, event_type: type[TEvent]) -> list[TEvent]:
        return [event for event in self.history if isinstance(event, event_type)]

    def clear_history(self) -> None:
        self.history.clear()
