"""Configuration for the wagered session: set once, immutable afterwards."""

from __future__ import annotations

from dataclasses import dataclass
import os


# session_length lives in an 8-byte field of the shared storage word
MAX_SESSION_LENGTH = (1 << 64) - 1

DEFAULT_STAKE = 1_000_000
DEFAULT_SESSION_LENGTH = 100


@dataclass(frozen=True)
class StakeConfig:
    """Static configuration of the game.

    Attributes
    ----------
    stake:
        Amount each player deposits with their move.  The pool of a fully
        played session is twice this value.
    session_length:
        Number of blocks after creation during which the session cannot be
        force-terminated.  Measured in the same units as the clock.
    log_level:
        Root log level applied by the CLI and the HTTP app.  Library code
        never configures logging itself.
    """

    stake: int = DEFAULT_STAKE
    session_length: int = DEFAULT_SESSION_LENGTH
    log_level: str = "INFO"

    def validate(self) -> None:
        if self.stake <= 0:
            raise ValueError("Stake must be positive")
        if self.session_length <= 0:
            raise ValueError("Session length must be positive")
        if self.session_length > MAX_SESSION_LENGTH:
            raise ValueError("Session length does not fit in 8 bytes")

    @classmethod
    def from_env(cls) -> StakeConfig:
        config = cls(
            stake=int(os.getenv("STAKEDUEL_STAKE", DEFAULT_STAKE)),
            session_length=int(os.getenv("STAKEDUEL_SESSION_LENGTH", DEFAULT_SESSION_LENGTH)),
            log_level=os.getenv("STAKEDUEL_LOG_LEVEL", "INFO").upper(),
        )
        config.validate()
        return config
