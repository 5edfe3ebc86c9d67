"""
Pytest fixtures for Stakeduel tests.
"""

import pytest

from ..config import StakeConfig
from ..engine_core import BlockClock, EventLog, Ledger, SessionMachine, identity


STAKE = 100
SESSION_LENGTH = 10
START_HEIGHT = 5
STARTING_BALANCE = 1000


@pytest.fixture
def config() -> StakeConfig:
    return StakeConfig(stake=STAKE, session_length=SESSION_LENGTH)


@pytest.fixture
def alice() -> bytes:
    return identity("alice")


@pytest.fixture
def bob() -> bytes:
    return identity("bob")


@pytest.fixture
def carol() -> bytes:
    """Not a player in any session."""
    return identity("carol")


@pytest.fixture
def clock() -> BlockClock:
    return BlockClock(height=START_HEIGHT)


@pytest.fixture
def ledger(alice, bob, carol) -> Ledger:
    ledger = Ledger()
    for who in (alice, bob, carol):
        ledger.fund(who, STARTING_BALANCE)
    return ledger


@pytest.fixture
def events() -> EventLog:
    return EventLog()


@pytest.fixture
def machine(config, ledger, clock, events) -> SessionMachine:
    return SessionMachine(config, ledger, clock, events=events)


@pytest.fixture
def session(machine, alice, bob) -> SessionMachine:
    """Machine with a session between alice (A) and bob (B)."""
    machine.create(alice, bob)
    return machine
