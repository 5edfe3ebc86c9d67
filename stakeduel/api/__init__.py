"""
API Module - HTTP interface to the wagered session.

Clients:
1. Fund player accounts (simulated chain)
2. Create a session between two players
3. Submit moves with stakes
4. Force-terminate expired sessions
5. Read snapshots, balances and notifications
"""

from .schemas import (
    # Requests
    CreateSessionRequest,
    SubmitMoveRequest,
    AdvanceRequest,
    FundRequest,
    # Responses
    SessionResponse,
    MoveResponse,
    TerminateResponse,
    SettlementResponse,
    AccountResponse,
    EventsResponse,
    ErrorResponse,
    # Enums
    ErrorCode,
    SessionPhase,
)
from .service import APIService
from .app import create_app

__all__ = [
    # Requests
    "CreateSessionRequest",
    "SubmitMoveRequest",
    "AdvanceRequest",
    "FundRequest",
    # Responses
    "SessionResponse",
    "MoveResponse",
    "TerminateResponse",
    "SettlementResponse",
    "AccountResponse",
    "EventsResponse",
    "ErrorResponse",
    # Enums
    "ErrorCode",
    "SessionPhase",
    # Service
    "APIService",
    "create_app",
]
