"""
State Encoder - Packs session fields into four fixed-width storage words.

Layout (byte 0 is the least significant byte of a 256-bit word):

    word 0  START    start_marker                      bytes 0-31
    word 1  STAKE    stake                             bytes 0-31
    word 2  SLOT_A   player_a                          bytes 0-19
                     move_a                            byte  20
    word 3  SHARED   player_b                          bytes 0-19
                     move_b                            byte  20
                     in_progress                       byte  21
                     locked                            byte  22
                     (reserved)                        byte  23
                     session_length                    bytes 24-31

Design principles:
- Pure: nothing here touches the ledger, the clock or the guard
- Every write masks exactly the bytes of the field being written
- decode(encode(state)) == state for every encodable state
"""

from __future__ import annotations
from dataclasses import dataclass, field

from .state import IDENTITY_SIZE, Move, SessionState


WORD_BYTES = 32
WORD_MASK = (1 << (WORD_BYTES * 8)) - 1

START = 0
STAKE = 1
SLOT_A = 2
SHARED = 3


@dataclass(frozen=True)
class Field:
    """A byte-aligned region of a word."""
    name: str
    offset: int  # in bytes
    width: int  # in bytes

    @property
    def shift(self) -> int:
        return self.offset * 8

    @property
    def mask(self) -> int:
        return ((1 << (self.width * 8)) - 1) << self.shift

    @property
    def max_value(self) -> int:
        return (1 << (self.width * 8)) - 1


FULL = Field("full", 0, WORD_BYTES)
PLAYER = Field("player", 0, IDENTITY_SIZE)
MOVE = Field("move", 20, 1)
IN_PROGRESS = Field("in_progress", 21, 1)
LOCKED = Field("locked", 22, 1)
SESSION_LENGTH = Field("session_length", 24, 8)

# Everything in the shared word that a session reset wipes.
SESSION_BYTES = PLAYER.mask | MOVE.mask | IN_PROGRESS.mask | LOCKED.mask


@dataclass
class Storage:
    """The raw words. Only the encoder and the guard write to these."""
    words: list[int] = field(default_factory=lambda: [0, 0, 0, 0])

    def __getitem__(self, index: int) -> int:
        return self.words[index]

    def __setitem__(self, index: int, value: int):
        if not 0 <= value <= WORD_MASK:
            raise ValueError(f"word {index} out of range: {value}")
        self.words[index] = value

    def snapshot(self) -> tuple[int, int, int, int]:
        return tuple(self.words)


def read_field(word: int, fld: Field) -> int:
    return (word & fld.mask) >> fld.shift


def write_field(word: int, fld: Field, value: int) -> int:
    """Return word with only fld's bytes replaced by value."""
    if not 0 <= value <= fld.max_value:
        raise ValueError(f"{fld.name} value {value} does not fit in {fld.width} bytes")
    return (word & ~fld.mask & WORD_MASK) | (value << fld.shift)


def _identity_to_int(who: bytes) -> int:
    if len(who) != IDENTITY_SIZE:
        raise ValueError(f"identity must be {IDENTITY_SIZE} bytes")
    return int.from_bytes(who, "big")


def _int_to_identity(value: int) -> bytes:
    return value.to_bytes(IDENTITY_SIZE, "big")


def encode_slot(who: bytes, move: int) -> int:
    word = write_field(0, PLAYER, _identity_to_int(who))
    return write_field(word, MOVE, int(move))


def decode_slot(word: int) -> tuple[bytes, Move]:
    return _int_to_identity(read_field(word, PLAYER)), Move(read_field(word, MOVE))


def encode_shared(
    who: bytes,
    move: int,
    in_progress: bool,
    locked: bool,
    session_length: int,
) -> int:
    word = encode_slot(who, move)
    word = write_field(word, IN_PROGRESS, int(in_progress))
    word = write_field(word, LOCKED, int(locked))
    return write_field(word, SESSION_LENGTH, session_length)


def decode_shared(word: int) -> tuple[bytes, Move, bool, bool, int]:
    who, move = decode_slot(word)
    return (
        who,
        move,
        bool(read_field(word, IN_PROGRESS)),
        bool(read_field(word, LOCKED)),
        read_field(word, SESSION_LENGTH),
    )


def encode(state: SessionState) -> Storage:
    """Pack a full snapshot into fresh storage."""
    storage = Storage()
    storage[START] = write_field(0, FULL, state.start_marker)
    storage[STAKE] = write_field(0, FULL, state.stake)
    storage[SLOT_A] = encode_slot(state.player_a, state.move_a)
    storage[SHARED] = encode_shared(
        state.player_b,
        state.move_b,
        state.in_progress,
        state.locked,
        state.session_length,
    )
    return storage


def decode(storage: Storage) -> SessionState:
    player_a, move_a = decode_slot(storage[SLOT_A])
    player_b, move_b, in_progress, locked, session_length = decode_shared(storage[SHARED])
    return SessionState(
        start_marker=storage[START],
        stake=storage[STAKE],
        player_a=player_a,
        move_a=move_a,
        player_b=player_b,
        move_b=move_b,
        in_progress=in_progress,
        locked=locked,
        session_length=session_length,
    )


def clear_shared(word: int) -> int:
    """Zero player_b, move_b, in_progress and locked; keep session_length."""
    return word & ~SESSION_BYTES & WORD_MASK


def set_move(storage: Storage, index: int, move: Move):
    """Write a move into slot word index (SLOT_A or SHARED)."""
    if index not in (SLOT_A, SHARED):
        raise ValueError(f"word {index} holds no move")
    storage[index] = write_field(storage[index], MOVE, int(move))


def set_flag(storage: Storage, fld: Field, value: bool):
    if fld not in (IN_PROGRESS, LOCKED):
        raise ValueError(f"{fld.name} is not a flag")
    storage[SHARED] = write_field(storage[SHARED], fld, int(value))


def open_session(storage: Storage, start_marker: int, player_a: bytes, player_b: bytes):
    """Populate a new session. Moves and lock stay at their sentinels."""
    storage[START] = write_field(0, FULL, start_marker)
    storage[SLOT_A] = write_field(storage[SLOT_A], PLAYER, _identity_to_int(player_a))
    shared = write_field(storage[SHARED], PLAYER, _identity_to_int(player_b))
    storage[SHARED] = write_field(shared, IN_PROGRESS, 1)


def configure(storage: Storage, stake: int, session_length: int):
    """One-time initialization of the long-lived configuration fields."""
    storage[STAKE] = write_field(0, FULL, stake)
    storage[SHARED] = write_field(storage[SHARED], SESSION_LENGTH, session_length)


def reset(storage: Storage):
    """Bulk reset to the empty session, keeping stake and session_length."""
    storage[START] = 0
    storage[SLOT_A] = 0
    storage[SHARED] = clear_shared(storage[SHARED])


__all__ = [
    "Field",
    "Storage",
    "START",
    "STAKE",
    "SLOT_A",
    "SHARED",
    "PLAYER",
    "MOVE",
    "IN_PROGRESS",
    "LOCKED",
    "SESSION_LENGTH",
    "read_field",
    "write_field",
    "encode_slot",
    "decode_slot",
    "encode_shared",
    "decode_shared",
    "encode",
    "decode",
    "clear_shared",
    "set_move",
    "set_flag",
    "open_session",
    "configure",
    "reset",
]
