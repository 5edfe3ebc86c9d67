"""
Pydantic Schemas for API - Request/response models for OpenAPI.

Identities travel as 0x-prefixed hex strings of 20 bytes.

Error Codes:
- INVALID_STATE: Wrong lifecycle phase for the operation
- UNAUTHORIZED: Caller is not a registered, not-yet-moved player
- INSUFFICIENT_PAYMENT: Attached value below the stake, or unfunded caller
- INVALID_MOVE: Move code outside 1-3
- REENTRANT: Session locked by an in-flight resolution
- TOO_EARLY: Termination before the deadline
- VALIDATION_ERROR: Malformed identity or request
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class SessionPhase(str, Enum):
    """Session lifecycle phases."""
    IDLE = "idle"
    AWAITING_MOVES = "awaiting_moves"
    RESOLVING = "resolving"


class ErrorCode(str, Enum):
    """Structured error codes."""
    INVALID_STATE = "INVALID_STATE"
    UNAUTHORIZED = "UNAUTHORIZED"
    INSUFFICIENT_PAYMENT = "INSUFFICIENT_PAYMENT"
    INVALID_MOVE = "INVALID_MOVE"
    REENTRANT = "REENTRANT"
    TOO_EARLY = "TOO_EARLY"
    MALFORMED_CALL = "MALFORMED_CALL"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# Requests
# =============================================================================

class CreateSessionRequest(BaseModel):
    """Open a session between two players."""
    player_a: str = Field(..., description="Identity of player A (hex)")
    player_b: str = Field(..., description="Identity of player B (hex)")


class SubmitMoveRequest(BaseModel):
    """Submit a move with the attached stake."""
    caller: str = Field(..., description="Identity of the submitting player (hex)")
    move: int = Field(..., description="1=rock, 2=paper, 3=scissors")
    value: int = Field(..., ge=0, description="Attached value; must cover the stake")


class AdvanceRequest(BaseModel):
    blocks: int = Field(1, ge=0, description="Blocks to advance the clock by")


class FundRequest(BaseModel):
    amount: int = Field(..., ge=0)


# =============================================================================
# Responses
# =============================================================================

class SessionResponse(BaseModel):
    """
    Current session snapshot.

    Moves are reported only as submitted/not submitted until resolution.
    """
    phase: SessionPhase
    in_progress: bool
    start_marker: int
    deadline: Optional[int] = None
    stake: int
    session_length: int
    player_a: Optional[str] = None
    player_b: Optional[str] = None
    move_a_submitted: bool = False
    move_b_submitted: bool = False
    pool: int = 0
    block_height: int
    api_version: str = "v1"


class TransferInfo(BaseModel):
    recipient: str
    amount: int
    success: bool
    reason: Optional[str] = None


class SettlementResponse(BaseModel):
    """Funds paid out by a resolution or forced termination."""
    outcome: str
    pool: int
    paid_total: int
    transfers: list[TransferInfo] = Field(default_factory=list)


class MoveResponse(BaseModel):
    slot: str
    resolved: bool
    settlement: Optional[SettlementResponse] = None
    session: SessionResponse


class TerminateResponse(BaseModel):
    settlement: SettlementResponse
    session: SessionResponse


class AccountResponse(BaseModel):
    identity: str
    balance: int


class ChainResponse(BaseModel):
    block_height: int


class EventInfo(BaseModel):
    """A notification emitted by the session machine."""
    type: str
    data: dict[str, Any] = Field(default_factory=dict)


class EventsResponse(BaseModel):
    events: list[EventInfo]
    count: int


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    error_code: ErrorCode
    details: Optional[dict[str, Any]] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
