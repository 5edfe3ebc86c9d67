"""
Payout Engine - Decides the split of the pooled stakes and sends it.

Two layers:
1. outcome() / plan() are pure decisions
2. PayoutEngine executes a decision against the ledger

Transfers are best-effort. A recipient that rejects funds simply does
not receive them; resolution is never blocked or reverted by a refusal.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
import logging

from .events import EventLog, TransferFailed
from .ledger import Ledger, TransferReceipt
from .state import Move, SessionState, format_identity


logger = logging.getLogger(__name__)


class Outcome(Enum):
    TIE = "tie"
    A_WINS = "a_wins"
    B_WINS = "b_wins"
    FORFEIT = "forfeit"  # Forced termination


# move -> the move it beats
BEATS = {
    Move.ROCK: Move.SCISSORS,
    Move.PAPER: Move.ROCK,
    Move.SCISSORS: Move.PAPER,
}


def outcome(move_a: Move, move_b: Move) -> Outcome:
    """Cyclic dominance between two playable moves."""
    if not (Move.is_playable(move_a) and Move.is_playable(move_b)):
        raise ValueError(f"cannot score {move_a!r} against {move_b!r}")
    if move_a == move_b:
        return Outcome.TIE
    if BEATS[move_a] == move_b:
        return Outcome.A_WINS
    return Outcome.B_WINS


@dataclass(frozen=True)
class Transfer:
    """A planned transfer. A remainder transfer sends whatever custody still holds."""
    recipient: bytes
    amount: int
    remainder: bool = False


def plan(
    move_a: Move,
    move_b: Move,
    player_a: bytes,
    player_b: bytes,
    pool: int,
) -> list[Transfer]:
    """
    Decide who receives what.

    A tie gives player_a pool // 2 first and player_b the remainder,
    so an odd unit is never lost to integer division.
    """
    result = outcome(move_a, move_b)
    if result is Outcome.TIE:
        half = pool // 2
        return [Transfer(player_a, half), Transfer(player_b, pool - half, remainder=True)]
    if result is Outcome.A_WINS:
        return [Transfer(player_a, pool)]
    return [Transfer(player_b, pool)]


@dataclass
class Settlement:
    """What a resolution or termination actually paid out."""
    outcome: Outcome
    pool: int
    transfers: list[TransferReceipt] = field(default_factory=list)

    @property
    def paid_total(self) -> int:
        return sum(t.amount for t in self.transfers if t.success)

    @property
    def failed(self) -> list[TransferReceipt]:
        return [t for t in self.transfers if not t.success]

    def paid_to(self, recipient: bytes) -> int:
        return sum(t.amount for t in self.transfers if t.success and t.recipient == recipient)


@dataclass
class PayoutEngine:
    ledger: Ledger
    events: EventLog

    def settle(self, state: SessionState) -> Settlement:
        """
        Pay out a fully played session.

        Follows plan(). A remainder transfer is sized from custody at
        transfer time, so in a tie the second player gets whatever the
        first transfer left behind.
        """
        pool = self.ledger.custody
        settlement = Settlement(outcome=outcome(state.move_a, state.move_b), pool=pool)

        for transfer in plan(state.move_a, state.move_b, state.player_a, state.player_b, pool):
            amount = self.ledger.custody if transfer.remainder else transfer.amount
            self._send(settlement, transfer.recipient, amount)

        return settlement

    def refund_single(self, recipient: bytes) -> Settlement:
        """Pay the whole pool to the only player who moved."""
        pool = self.ledger.custody
        settlement = Settlement(outcome=Outcome.FORFEIT, pool=pool)
        self._send(settlement, recipient, pool)
        return settlement

    def _send(self, settlement: Settlement, recipient: bytes, amount: int):
        receipt = self.ledger.transfer(recipient, amount)
        settlement.transfers.append(receipt)
        if receipt.success:
            logger.info("paid %d to %s", amount, format_identity(recipient))
        else:
            self.events.emit(TransferFailed(recipient, amount, receipt.reason))
