"""
Session State - The decoded view of the single wagered session.

Design principles:
- Immutable snapshot: the machine decodes storage once per entry point
- Sentinels, not Nones: the empty identity and Move.UNSET stand for "absent"
- Game-agnostic helpers stay out; this is Rock/Paper/Scissors only
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum, IntEnum
import hashlib


IDENTITY_SIZE = 20  # bytes
EMPTY = bytes(IDENTITY_SIZE)


class Move(IntEnum):
    """Move codes. UNSET is the storage sentinel, never a legal submission."""
    UNSET = 0
    ROCK = 1
    PAPER = 2
    SCISSORS = 3

    @classmethod
    def is_playable(cls, code: int) -> bool:
        return code in (cls.ROCK, cls.PAPER, cls.SCISSORS)


class Phase(Enum):
    """Lifecycle phases of the session."""
    IDLE = "idle"
    AWAITING_MOVES = "awaiting_moves"
    RESOLVING = "resolving"  # Transient, guard held


class Slot(Enum):
    A = "a"
    B = "b"


def identity(label: str) -> bytes:
    """Derive a stable 20-byte identity from a human-readable label."""
    return hashlib.sha256(label.encode("utf-8")).digest()[:IDENTITY_SIZE]


def parse_identity(value: str | bytes) -> bytes:
    """
    Accept raw bytes or a hex string (with or without 0x).

    Raises ValueError if the result is not exactly 20 bytes.
    """
    if isinstance(value, str):
        text = value[2:] if value.lower().startswith("0x") else value
        raw = bytes.fromhex(text)
    else:
        raw = bytes(value)
    if len(raw) != IDENTITY_SIZE:
        raise ValueError(f"identity must be {IDENTITY_SIZE} bytes, got {len(raw)}")
    return raw


def format_identity(value: bytes) -> str:
    return "0x" + value.hex()


@dataclass(frozen=True)
class SessionState:
    """
    Complete session snapshot at a point in time.

    start_marker == 0 means no session has been created.
    stake and session_length are configuration and survive resets.
    """
    start_marker: int = 0
    stake: int = 0
    player_a: bytes = EMPTY
    move_a: Move = Move.UNSET
    player_b: bytes = EMPTY
    move_b: Move = Move.UNSET
    in_progress: bool = False
    locked: bool = False
    session_length: int = 0

    @property
    def phase(self) -> Phase:
        if self.locked:
            return Phase.RESOLVING
        if self.in_progress:
            return Phase.AWAITING_MOVES
        return Phase.IDLE

    @property
    def moves_submitted(self) -> int:
        return int(self.move_a != Move.UNSET) + int(self.move_b != Move.UNSET)

    @property
    def is_empty(self) -> bool:
        """True when every per-session field holds its sentinel."""
        return (
            self.start_marker == 0
            and self.player_a == EMPTY
            and self.player_b == EMPTY
            and self.move_a == Move.UNSET
            and self.move_b == Move.UNSET
            and not self.in_progress
            and not self.locked
        )

    def slot_of(self, who: bytes) -> Slot | None:
        """Get the slot registered to an identity, if any."""
        if who == EMPTY:
            return None
        if who == self.player_a:
            return Slot.A
        if who == self.player_b:
            return Slot.B
        return None

    def move_in(self, slot: Slot) -> Move:
        return self.move_a if slot is Slot.A else self.move_b

    def player_in(self, slot: Slot) -> bytes:
        return self.player_a if slot is Slot.A else self.player_b

    def with_move(self, slot: Slot, move: Move) -> SessionState:
        """Return new state with one slot's move written."""
        if slot is Slot.A:
            return replace(self, move_a=move)
        return replace(self, move_b=move)

    def emptied(self) -> SessionState:
        """Return the documented empty state, keeping configuration."""
        return SessionState(stake=self.stake, session_length=self.session_length)
