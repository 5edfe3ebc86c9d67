"""
FastAPI Application - REST API over the wagered session.

Endpoints:
    GET    /api/v1/health                     Health check
    GET    /api/v1/session                    Current session snapshot
    POST   /api/v1/session                    Create session
    POST   /api/v1/session/moves              Submit move with stake
    POST   /api/v1/session/terminate          Force termination after deadline
    POST   /api/v1/chain/advance              Advance the block clock
    GET    /api/v1/accounts/{identity}        Account balance
    POST   /api/v1/accounts/{identity}/fund   Fund an account
    GET    /api/v1/events                     Emitted notifications

All responses are JSON with explicit Pydantic schemas.
"""

from typing import Union
import logging
import os

from .. import __version__

logger = logging.getLogger(__name__)

# Environment configuration
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")

STATUS_BY_ERROR = {
    "INVALID_STATE": 409,
    "TOO_EARLY": 409,
    "REENTRANT": 409,
    "UNAUTHORIZED": 403,
    "INSUFFICIENT_PAYMENT": 402,
    "INVALID_MOVE": 422,
    "MALFORMED_CALL": 400,
    "VALIDATION_ERROR": 400,
    "INTERNAL_ERROR": 500,
}


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    from fastapi import FastAPI, Request
    from fastapi.middleware.cors import CORSMiddleware
    from fastapi.responses import JSONResponse

    from .service import APIService
    from .schemas import (
        CreateSessionRequest,
        SubmitMoveRequest,
        AdvanceRequest,
        FundRequest,
        SessionResponse,
        MoveResponse,
        TerminateResponse,
        AccountResponse,
        ChainResponse,
        EventsResponse,
        ErrorResponse,
        ErrorCode,
        HealthResponse,
    )

    api_service = service or APIService()
    logging.getLogger().setLevel(api_service.config.log_level)

    app = FastAPI(
        title="Stakeduel API",
        description="""
Wagered Rock/Paper/Scissors between two players.

Each player submits a move with the configured stake. The second move
resolves the session and pays out the pool in the same request. A session
that outlives its deadline can be force-terminated by anyone.

## Error Codes

| Code | Status | Description |
|------|--------|-------------|
| `INVALID_STATE` | 409 | Wrong lifecycle phase |
| `TOO_EARLY` | 409 | Deadline not yet passed |
| `REENTRANT` | 409 | Resolution in flight |
| `UNAUTHORIZED` | 403 | Not a player, or already moved |
| `INSUFFICIENT_PAYMENT` | 402 | Value below stake |
| `INVALID_MOVE` | 422 | Move outside 1-3 |
| `VALIDATION_ERROR` | 400 | Malformed identity |
| `INTERNAL_ERROR` | 500 | Unexpected server error |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(error: ErrorResponse) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=STATUS_BY_ERROR.get(error.error_code.value, 500),
            content=error.model_dump(mode="json"),
        )

    def respond(response):
        if isinstance(response, ErrorResponse):
            return make_error_response(response)
        return response

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled error on %s", request.url.path, exc_info=exc)
        return make_error_response(ErrorResponse(
            error="internal error",
            error_code=ErrorCode.INTERNAL_ERROR,
        ))

    # =========================================================================
    # Health
    # =========================================================================

    @app.get("/api/v1/health", response_model=HealthResponse, tags=["Meta"])
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", service="stakeduel", version=__version__)

    # =========================================================================
    # Session Endpoints
    # =========================================================================

    @app.get(
        "/api/v1/session",
        response_model=SessionResponse,
        tags=["Session"],
        summary="Get the current session snapshot",
    )
    async def get_session() -> SessionResponse:
        return api_service.get_session()

    @app.post(
        "/api/v1/session",
        response_model=SessionResponse,
        responses={
            400: {"model": ErrorResponse},
            409: {"model": ErrorResponse, "description": "Session already in progress"},
        },
        tags=["Session"],
        summary="Create a session between two players",
    )
    async def create_session(body: CreateSessionRequest) -> Union[SessionResponse, JSONResponse]:
        return respond(api_service.create_session(body))

    @app.post(
        "/api/v1/session/moves",
        response_model=MoveResponse,
        responses={
            402: {"model": ErrorResponse},
            403: {"model": ErrorResponse},
            409: {"model": ErrorResponse},
            422: {"model": ErrorResponse},
        },
        tags=["Session"],
        summary="Submit a move with the stake",
    )
    async def submit_move(body: SubmitMoveRequest) -> Union[MoveResponse, JSONResponse]:
        """
        Submit a move.

        If this is the second move, the response includes the settlement
        and the session is already reset.
        """
        return respond(api_service.submit_move(body))

    @app.post(
        "/api/v1/session/terminate",
        response_model=TerminateResponse,
        responses={409: {"model": ErrorResponse}},
        tags=["Session"],
        summary="Force-terminate an expired session",
    )
    async def terminate() -> Union[TerminateResponse, JSONResponse]:
        return respond(api_service.terminate())

    # =========================================================================
    # Chain simulation
    # =========================================================================

    @app.post("/api/v1/chain/advance", response_model=ChainResponse, tags=["Chain"])
    async def advance(body: AdvanceRequest) -> ChainResponse:
        return api_service.advance(body)

    @app.get(
        "/api/v1/accounts/{identity}",
        response_model=AccountResponse,
        responses={400: {"model": ErrorResponse}},
        tags=["Chain"],
    )
    async def get_account(identity: str) -> Union[AccountResponse, JSONResponse]:
        return respond(api_service.get_account(identity))

    @app.post(
        "/api/v1/accounts/{identity}/fund",
        response_model=AccountResponse,
        responses={400: {"model": ErrorResponse}},
        tags=["Chain"],
    )
    async def fund(identity: str, body: FundRequest) -> Union[AccountResponse, JSONResponse]:
        return respond(api_service.fund(identity, body))

    @app.get("/api/v1/events", response_model=EventsResponse, tags=["Session"])
    async def list_events() -> EventsResponse:
        return api_service.list_events()

    return app
