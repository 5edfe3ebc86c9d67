"""
API Service - Business logic layer between the HTTP app and the engine.

The service:
1. Translates API requests to dispatched commands
2. Owns the one session machine, its ledger and its clock
3. Formats snapshots, settlements and events for clients

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
from typing import Any
import logging

from .schemas import (
    # Requests
    CreateSessionRequest,
    SubmitMoveRequest,
    AdvanceRequest,
    FundRequest,
    # Responses
    SessionResponse,
    SettlementResponse,
    TransferInfo,
    MoveResponse,
    TerminateResponse,
    AccountResponse,
    ChainResponse,
    EventInfo,
    EventsResponse,
    ErrorResponse,
    # Enums
    ErrorCode,
    SessionPhase,
)
from ..config import StakeConfig
from ..engine_core import (
    ActionResult,
    BlockClock,
    Command,
    Dispatcher,
    EventLog,
    Ledger,
    Move,
    SessionMachine,
    Settlement,
    format_identity,
    parse_identity,
)
from ..engine_core.state import EMPTY


logger = logging.getLogger(__name__)


@dataclass
class APIService:
    """
    Main API service.

    Usage:
        service = APIService(config=StakeConfig(stake=10, session_length=5))
        service.fund(alice_hex, FundRequest(amount=100))
        service.create_session(CreateSessionRequest(player_a=alice_hex, player_b=bob_hex))
        service.submit_move(SubmitMoveRequest(caller=alice_hex, move=1, value=10))
    """
    config: StakeConfig = field(default_factory=StakeConfig.from_env)
    ledger: Ledger = field(default_factory=Ledger)
    clock: BlockClock = field(default_factory=BlockClock)
    events: EventLog = field(default_factory=EventLog)

    machine: SessionMachine = field(init=False)
    dispatcher: Dispatcher = field(init=False)

    def __post_init__(self):
        self.machine = SessionMachine(self.config, self.ledger, self.clock, events=self.events)
        self.dispatcher = Dispatcher(self.machine)

    def get_session(self) -> SessionResponse:
        state = self.machine.state
        return SessionResponse(
            phase=SessionPhase(state.phase.value),
            in_progress=state.in_progress,
            start_marker=state.start_marker,
            deadline=self.machine.deadline,
            stake=state.stake,
            session_length=state.session_length,
            player_a=format_identity(state.player_a) if state.player_a != EMPTY else None,
            player_b=format_identity(state.player_b) if state.player_b != EMPTY else None,
            move_a_submitted=state.move_a != Move.UNSET,
            move_b_submitted=state.move_b != Move.UNSET,
            pool=self.machine.pool,
            block_height=self.clock.now(),
        )

    def create_session(self, request: CreateSessionRequest) -> SessionResponse | ErrorResponse:
        try:
            player_a = parse_identity(request.player_a)
            player_b = parse_identity(request.player_b)
        except ValueError as e:
            return _validation_error(e)

        result = self.dispatcher.dispatch(Command.create(player_a, player_b), caller=EMPTY)
        if not result.success:
            return _error_from(result)
        return self.get_session()

    def submit_move(self, request: SubmitMoveRequest) -> MoveResponse | ErrorResponse:
        try:
            caller = parse_identity(request.caller)
        except ValueError as e:
            return _validation_error(e)

        result = self.dispatcher.dispatch(
            Command.submit_move(request.move), caller=caller, value=request.value
        )
        if not result.success:
            return _error_from(result)
        return MoveResponse(
            slot=result.details["slot"],
            resolved=result.details["resolved"],
            settlement=_settlement_to_response(result.settlement) if result.settlement else None,
            session=self.get_session(),
        )

    def terminate(self) -> TerminateResponse | ErrorResponse:
        result = self.dispatcher.dispatch(Command.terminate(), caller=EMPTY)
        if not result.success:
            return _error_from(result)
        return TerminateResponse(
            settlement=_settlement_to_response(result.settlement),
            session=self.get_session(),
        )

    def advance(self, request: AdvanceRequest) -> ChainResponse:
        height = self.clock.advance(request.blocks)
        return ChainResponse(block_height=height)

    def fund(self, account: str, request: FundRequest) -> AccountResponse | ErrorResponse:
        try:
            who = parse_identity(account)
        except ValueError as e:
            return _validation_error(e)
        balance = self.ledger.fund(who, request.amount)
        return AccountResponse(identity=format_identity(who), balance=balance)

    def get_account(self, account: str) -> AccountResponse | ErrorResponse:
        try:
            who = parse_identity(account)
        except ValueError as e:
            return _validation_error(e)
        return AccountResponse(identity=format_identity(who), balance=self.ledger.balance_of(who))

    def list_events(self) -> EventsResponse:
        events = [
            EventInfo(type=type(e).__name__, data=_jsonable(e))
            for e in self.events.events
        ]
        return EventsResponse(events=events, count=len(events))


def _error_from(result: ActionResult) -> ErrorResponse:
    logger.info("command rejected: %s (%s)", result.error, result.error_code)
    return ErrorResponse(error=result.error, error_code=ErrorCode(result.error_code))


def _validation_error(e: ValueError) -> ErrorResponse:
    return ErrorResponse(error=str(e), error_code=ErrorCode.VALIDATION_ERROR)


def _settlement_to_response(settlement: Settlement) -> SettlementResponse:
    return SettlementResponse(
        outcome=settlement.outcome.value,
        pool=settlement.pool,
        paid_total=settlement.paid_total,
        transfers=[
            TransferInfo(
                recipient=format_identity(t.recipient),
                amount=t.amount,
                success=t.success,
                reason=t.reason,
            )
            for t in settlement.transfers
        ],
    )


def _jsonable(value: Any) -> Any:
    """Event payloads: bytes become hex, enums their value."""
    if is_dataclass(value):
        return {f.name: _jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, bytes):
        return format_identity(value)
    if isinstance(value, Enum):
        return value.value
    return value
