"""
Engine Core - The wagered session and everything that touches its funds.

The engine is the runtime that:
1. Holds the packed session storage
2. Validates and applies create / submit_move / terminate
3. Scores the moves and pays out the pool
4. Resets the session so the next one can start
"""

from .state import EMPTY, Move, Phase, SessionState, Slot, identity, parse_identity, format_identity
from .errors import (
    SessionError,
    InvalidState,
    Unauthorized,
    InsufficientPayment,
    InvalidMove,
    Reentrant,
    TooEarly,
)
from .encoder import Storage, encode, decode
from .guard import ReentrancyGuard
from .ledger import BlockClock, Ledger, TransferReceipt
from .events import EventLog, SessionCreated, MoveSubmitted, SessionResolved, SessionTerminated, TransferFailed
from .payout import Outcome, PayoutEngine, Settlement, Transfer, outcome, plan
from .timeout import expired, deadline
from .machine import SessionMachine, SubmitResult
from .action import ActionResult, Command, CommandCode, Dispatcher, decode_call

__all__ = [
    "EMPTY",
    "Move",
    "Phase",
    "SessionState",
    "Slot",
    "identity",
    "parse_identity",
    "format_identity",
    "SessionError",
    "InvalidState",
    "Unauthorized",
    "InsufficientPayment",
    "InvalidMove",
    "Reentrant",
    "TooEarly",
    "Storage",
    "encode",
    "decode",
    "ReentrancyGuard",
    "BlockClock",
    "Ledger",
    "TransferReceipt",
    "EventLog",
    "SessionCreated",
    "MoveSubmitted",
    "SessionResolved",
    "SessionTerminated",
    "TransferFailed",
    "Outcome",
    "PayoutEngine",
    "Settlement",
    "Transfer",
    "outcome",
    "plan",
    "expired",
    "deadline",
    "SessionMachine",
    "SubmitResult",
    "ActionResult",
    "Command",
    "CommandCode",
    "Dispatcher",
    "decode_call",
]
