"""
Events - Notifications emitted by the session machine.

Events are observable side effects only. The machine never reads them back,
and a failing listener never aborts the transition that emitted the event.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable
import logging

from .state import Move


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionCreated:
    player_a: bytes
    player_b: bytes
    start_marker: int


@dataclass(frozen=True)
class MoveSubmitted:
    player: bytes
    # The move itself is not published until resolution.


@dataclass(frozen=True)
class SessionResolved:
    outcome: str  # Outcome value: "tie", "a_wins", "b_wins"
    move_a: Move
    move_b: Move
    winner: bytes | None
    loser: bytes | None
    pool: int


@dataclass(frozen=True)
class SessionTerminated:
    recipient: bytes | None
    amount: int


@dataclass(frozen=True)
class TransferFailed:
    recipient: bytes
    amount: int
    reason: str | None = None


Listener = Callable[[Any], None]


@dataclass
class EventLog:
    """
    In-order record of emitted events.

    Usage:
        events = EventLog()
        events.subscribe(print)
        machine = SessionMachine(config, ledger, clock, events=events)
    """
    events: list[Any] = field(default_factory=list)
    _listeners: list[Listener] = field(default_factory=list)

    def subscribe(self, listener: Listener):
        self._listeners.append(listener)

    def emit(self, event: Any):
        self.events.append(event)
        for listener in self._listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("listener %r failed on %s", listener, type(event).__name__)

    def of_type(self, event_type: type) -> list[Any]:
        return [e for e in self.events if isinstance(e, event_type)]

    def clear(self):
        self.events.clear()
