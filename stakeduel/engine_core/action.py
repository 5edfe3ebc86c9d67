"""
Command System - Commands, binary call decoding, and dispatch.

Three commands reach the session machine:
1. create(player_a, player_b)
2. submit_move(move) with an attached value
3. terminate()

Wire format of a call:
    4-byte selector | 32-byte argument words, big-endian
Identities are right-aligned in their word (12 zero bytes, then 20 bytes).
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
import hashlib

from .errors import SessionError
from .machine import SessionMachine, SubmitResult
from .payout import Settlement
from .state import EMPTY, IDENTITY_SIZE, SessionState


SELECTOR_SIZE = 4
ARG_WORD = 32


def selector(signature: str) -> bytes:
    """Opaque 4-byte command code derived from a signature string."""
    return hashlib.sha256(signature.encode("ascii")).digest()[:SELECTOR_SIZE]


class CommandCode(Enum):
    """Command codes and the number of argument words each one takes."""
    CREATE = (selector("create(address,address)"), 2)
    SUBMIT_MOVE = (selector("submitMove(uint8)"), 1)
    TERMINATE = (selector("terminate()"), 0)

    @property
    def selector(self) -> bytes:
        return self.value[0]

    @property
    def arity(self) -> int:
        return self.value[1]

    @classmethod
    def from_selector(cls, raw: bytes) -> CommandCode:
        for code in cls:
            if code.selector == raw:
                return code
        raise ValueError(f"unknown command selector 0x{raw.hex()}")


@dataclass
class Command:
    """
    A decoded call to the session machine.

    Commands are:
    - Built with the factories below or decoded from bytes
    - Applied by the Dispatcher, which reports errors as results
    """
    code: CommandCode
    player_a: bytes = EMPTY
    player_b: bytes = EMPTY
    move: int = 0

    @classmethod
    def create(cls, player_a: bytes, player_b: bytes) -> Command:
        return cls(code=CommandCode.CREATE, player_a=player_a, player_b=player_b)

    @classmethod
    def submit_move(cls, move: int) -> Command:
        return cls(code=CommandCode.SUBMIT_MOVE, move=move)

    @classmethod
    def terminate(cls) -> Command:
        return cls(code=CommandCode.TERMINATE)

    def encode(self) -> bytes:
        if self.code is CommandCode.CREATE:
            args = [_identity_word(self.player_a), _identity_word(self.player_b)]
        elif self.code is CommandCode.SUBMIT_MOVE:
            if not 0 <= self.move < 256:
                raise ValueError(f"move {self.move} does not fit in uint8")
            args = [self.move.to_bytes(ARG_WORD, "big")]
        else:
            args = []
        return self.code.selector + b"".join(args)


def _identity_word(who: bytes) -> bytes:
    if len(who) != IDENTITY_SIZE:
        raise ValueError(f"identity must be {IDENTITY_SIZE} bytes")
    return bytes(ARG_WORD - IDENTITY_SIZE) + who


def _word_to_identity(word: bytes) -> bytes:
    if any(word[: ARG_WORD - IDENTITY_SIZE]):
        raise ValueError("identity argument has dirty high bytes")
    return word[ARG_WORD - IDENTITY_SIZE:]


def decode_call(data: bytes) -> Command:
    """Decode selector and arguments. Raises ValueError on malformed input."""
    if len(data) < SELECTOR_SIZE:
        raise ValueError("call data shorter than a selector")
    code = CommandCode.from_selector(data[:SELECTOR_SIZE])
    body = data[SELECTOR_SIZE:]
    if len(body) != code.arity * ARG_WORD:
        raise ValueError(
            f"{code.name.lower()} takes {code.arity} argument words, got {len(body)} bytes"
        )
    words = [body[i:i + ARG_WORD] for i in range(0, len(body), ARG_WORD)]

    if code is CommandCode.CREATE:
        return Command.create(_word_to_identity(words[0]), _word_to_identity(words[1]))
    if code is CommandCode.SUBMIT_MOVE:
        move = int.from_bytes(words[0], "big")
        if move > 0xFF:
            raise ValueError("move argument does not fit in uint8")
        return Command.submit_move(move)
    return Command.terminate()


@dataclass
class ActionResult:
    """
    Result of dispatching a command.

    Contains:
    - Whether the command succeeded
    - The session state after the call
    - Error and error code (if it failed)
    - Settlement (if funds were paid out)
    """
    success: bool
    new_state: SessionState | None = None
    error: str | None = None
    error_code: str | None = None
    settlement: Settlement | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failure(cls, error: str, error_code: str | None = None) -> ActionResult:
        return cls(success=False, error=error, error_code=error_code)


@dataclass
class Dispatcher:
    """
    Routes commands to the machine.

    Session errors become failed results; the machine has already
    guaranteed that a failed call changed nothing.
    """
    machine: SessionMachine

    def dispatch(self, command: Command, caller: bytes, value: int = 0) -> ActionResult:
        handler = self._get_handler(command.code)
        try:
            return handler(command, caller, value)
        except SessionError as e:
            return ActionResult.failure(str(e), error_code=e.error_code)

    def dispatch_raw(self, data: bytes, caller: bytes, value: int = 0) -> ActionResult:
        try:
            command = decode_call(data)
        except ValueError as e:
            return ActionResult.failure(str(e), error_code="MALFORMED_CALL")
        return self.dispatch(command, caller, value)

    def _get_handler(self, code: CommandCode):
        handlers = {
            CommandCode.CREATE: self._handle_create,
            CommandCode.SUBMIT_MOVE: self._handle_submit_move,
            CommandCode.TERMINATE: self._handle_terminate,
        }
        return handlers[code]

    def _handle_create(self, command: Command, caller: bytes, value: int) -> ActionResult:
        state = self.machine.create(command.player_a, command.player_b)
        return ActionResult(success=True, new_state=state)

    def _handle_submit_move(self, command: Command, caller: bytes, value: int) -> ActionResult:
        result: SubmitResult = self.machine.submit_move(caller, command.move, value)
        return ActionResult(
            success=True,
            new_state=self.machine.state,
            settlement=result.settlement,
            details={"slot": result.slot.value, "resolved": result.resolved},
        )

    def _handle_terminate(self, command: Command, caller: bytes, value: int) -> ActionResult:
        settlement = self.machine.terminate()
        return ActionResult(success=True, new_state=self.machine.state, settlement=settlement)
