"""
Session State Machine - The single point of session mutation.

    IDLE --create--> AWAITING_MOVES --second move--> RESOLVING --> IDLE
                          |
                          +------terminate (after deadline)------> IDLE

Design principles:
- Every entry point decodes one snapshot and validates against it
  before its first write, so a raised SessionError leaves storage untouched
- Anything that moves funds out of custody runs under the guard
- Resolution and reset happen inside the same call as the second move
"""

from __future__ import annotations
from dataclasses import dataclass
import logging

from ..config import StakeConfig
from . import encoder, timeout
from .encoder import SHARED, SLOT_A, Storage
from .errors import InsufficientPayment, InvalidMove, InvalidState, TooEarly, Unauthorized
from .events import EventLog, MoveSubmitted, SessionCreated, SessionResolved, SessionTerminated
from .guard import ReentrancyGuard
from .ledger import BlockClock, Ledger
from .payout import Outcome, PayoutEngine, Settlement
from .state import EMPTY, Move, Phase, SessionState, Slot, format_identity


logger = logging.getLogger(__name__)


@dataclass
class SubmitResult:
    """Result of submit_move. settlement is set when the move resolved the session."""
    slot: Slot
    move: Move
    collected: int
    settlement: Settlement | None = None

    @property
    def resolved(self) -> bool:
        return self.settlement is not None


class SessionMachine:
    """
    Owns the one session and its pooled stakes.

    Usage:
        machine = SessionMachine(StakeConfig(stake=10, session_length=5), ledger, clock)
        machine.create(alice, bob)
        machine.submit_move(alice, Move.ROCK, value=10)
        result = machine.submit_move(bob, Move.SCISSORS, value=10)
        result.settlement.paid_to(alice)  # 20
    """

    def __init__(
        self,
        config: StakeConfig,
        ledger: Ledger,
        clock: BlockClock,
        events: EventLog | None = None,
    ):
        config.validate()
        self.config = config
        self.ledger = ledger
        self.clock = clock
        self.events = events if events is not None else EventLog()
        self._storage = Storage()
        self._guard = ReentrancyGuard(self._storage)
        self._payout = PayoutEngine(ledger=ledger, events=self.events)
        encoder.configure(self._storage, config.stake, config.session_length)

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return encoder.decode(self._storage)

    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def pool(self) -> int:
        return self.ledger.custody

    @property
    def deadline(self) -> int | None:
        state = self.state
        if not state.in_progress:
            return None
        return timeout.deadline(state.start_marker, state.session_length)

    def storage_words(self) -> tuple[int, int, int, int]:
        return self._storage.snapshot()

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def create(self, player_a: bytes, player_b: bytes) -> SessionState:
        """Open a session between two distinct identities. No funds move."""
        self._guard.check()
        state = self.state
        if state.in_progress:
            raise InvalidState("a session is already in progress")
        if player_a == EMPTY or player_b == EMPTY:
            raise InvalidState("both players must be set")
        if player_a == player_b:
            raise InvalidState("players must be distinct")

        # 0 is reserved for "no session"
        start_marker = max(self.clock.now(), 1)
        encoder.open_session(self._storage, start_marker, player_a, player_b)

        logger.info(
            "session created: %s vs %s at %d",
            format_identity(player_a), format_identity(player_b), start_marker,
        )
        self.events.emit(SessionCreated(player_a, player_b, start_marker))
        return self.state

    def submit_move(self, caller: bytes, move: int, value: int) -> SubmitResult:
        """
        Record caller's move and collect the stake.

        If the other player has already moved, the session is scored,
        paid out and reset before this call returns.
        """
        self._guard.check()
        state = self.state
        if not state.in_progress:
            raise InvalidState("no session in progress")
        if value < state.stake:
            raise InsufficientPayment(f"stake is {state.stake}, got {value}")
        if not Move.is_playable(move):
            raise InvalidMove(f"move must be 1, 2 or 3, got {move}")

        slot = state.slot_of(caller)
        if slot is None:
            raise Unauthorized(f"{format_identity(caller)} is not in this session")
        if state.move_in(slot) != Move.UNSET:
            raise Unauthorized(f"{format_identity(caller)} has already moved")

        move = Move(move)
        self.ledger.collect(caller, state.stake)
        encoder.set_move(self._storage, SLOT_A if slot is Slot.A else SHARED, move)
        logger.info("move recorded for slot %s", slot.value)
        self.events.emit(MoveSubmitted(caller))

        result = SubmitResult(slot=slot, move=move, collected=state.stake)
        other = Slot.B if slot is Slot.A else Slot.A
        if state.move_in(other) == Move.UNSET:
            return result

        with self._guard:
            result.settlement = self._resolve(state.with_move(slot, move))
        return result

    def terminate(self) -> Settlement:
        """
        Force-close a session that outlived its deadline.

        The single player who moved, if any, receives the whole pool.
        """
        self._guard.check()
        state = self.state
        if not state.in_progress:
            raise InvalidState("no session in progress")
        now = self.clock.now()
        if not timeout.expired(state.start_marker, state.session_length, now):
            deadline = timeout.deadline(state.start_marker, state.session_length)
            raise TooEarly(f"deadline is {deadline}, now {now}")
        if state.moves_submitted == 2:
            raise InvalidState("both players moved; session should already be resolved")

        movers = [
            state.player_in(slot) for slot in (Slot.A, Slot.B)
            if state.move_in(slot) != Move.UNSET
        ]

        with self._guard:
            if movers:
                settlement = self._payout.refund_single(movers[0])
            else:
                # Nobody staked. Anything stranded in custody stays there.
                settlement = Settlement(outcome=Outcome.FORFEIT, pool=0)
            encoder.reset(self._storage)

        recipient = movers[0] if movers else None
        logger.info("session terminated, %d paid out", settlement.paid_total)
        self.events.emit(SessionTerminated(recipient, settlement.paid_total))
        return settlement

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _resolve(self, state: SessionState) -> Settlement:
        """Score, pay and reset. Caller holds the guard."""
        settlement = self._payout.settle(state)
        encoder.reset(self._storage)

        winner = loser = None
        if settlement.outcome is Outcome.A_WINS:
            winner, loser = state.player_a, state.player_b
        elif settlement.outcome is Outcome.B_WINS:
            winner, loser = state.player_b, state.player_a

        logger.info("session resolved: %s, pool %d", settlement.outcome.value, settlement.pool)
        self.events.emit(SessionResolved(
            outcome=settlement.outcome.value,
            move_a=state.move_a,
            move_b=state.move_b,
            winner=winner,
            loser=loser,
            pool=settlement.pool,
        ))
        return settlement
