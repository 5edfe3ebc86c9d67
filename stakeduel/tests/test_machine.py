"""
Tests for the session state machine (state transitions).

Tests:
- create / submit_move / terminate validation
- Failed calls change nothing
- Scenario payouts and reset
- Forced termination timing and payout
- Reentrant calls from a transfer hook
"""

import itertools

import pytest

from ..engine_core import (
    InsufficientPayment,
    InvalidMove,
    InvalidState,
    Move,
    MoveSubmitted,
    Outcome,
    Phase,
    Reentrant,
    SessionCreated,
    SessionResolved,
    SessionTerminated,
    TooEarly,
    TransferFailed,
    Unauthorized,
)
from ..engine_core.state import EMPTY, Slot
from .conftest import SESSION_LENGTH, STAKE, START_HEIGHT, STARTING_BALANCE


PLAYABLE = [Move.ROCK, Move.PAPER, Move.SCISSORS]


def _total_funds(machine, *accounts) -> int:
    return machine.ledger.custody + sum(machine.ledger.balance_of(a) for a in accounts)


class TestCreate:

    def test_create_opens_session(self, machine, alice, bob, events):
        state = machine.create(alice, bob)

        assert state.in_progress
        assert state.phase is Phase.AWAITING_MOVES
        assert state.start_marker == START_HEIGHT
        assert state.player_a == alice
        assert state.player_b == bob
        assert state.moves_submitted == 0
        assert machine.deadline == START_HEIGHT + SESSION_LENGTH
        assert machine.pool == 0
        assert events.events == [SessionCreated(alice, bob, START_HEIGHT)]

    def test_second_create_fails(self, session, alice, carol):
        words = session.storage_words()

        with pytest.raises(InvalidState):
            session.create(alice, carol)

        assert session.storage_words() == words

    def test_same_player_twice_fails(self, machine, alice):
        with pytest.raises(InvalidState):
            machine.create(alice, alice)
        assert machine.state.phase is Phase.IDLE

    def test_empty_identity_fails(self, machine, alice):
        with pytest.raises(InvalidState):
            machine.create(alice, EMPTY)

    def test_configuration_is_stored(self, machine):
        state = machine.state
        assert state.stake == STAKE
        assert state.session_length == SESSION_LENGTH
        assert state.phase is Phase.IDLE
        assert machine.deadline is None


class TestSubmitMoveValidation:

    def test_no_session(self, machine, alice):
        with pytest.raises(InvalidState):
            machine.submit_move(alice, Move.ROCK, STAKE)

    def test_value_below_stake(self, session, alice):
        with pytest.raises(InsufficientPayment):
            session.submit_move(alice, Move.ROCK, STAKE - 1)

    @pytest.mark.parametrize("code", [0, 4, 255, -1])
    def test_invalid_move(self, session, alice, code):
        with pytest.raises(InvalidMove):
            session.submit_move(alice, code, STAKE)

    def test_payment_checked_before_move(self, session, alice):
        with pytest.raises(InsufficientPayment):
            session.submit_move(alice, 9, 0)

    def test_stranger_unauthorized(self, session, carol):
        with pytest.raises(Unauthorized):
            session.submit_move(carol, Move.ROCK, STAKE)

    def test_second_move_from_same_player(self, session, alice):
        session.submit_move(alice, Move.ROCK, STAKE)
        words = session.storage_words()

        with pytest.raises(Unauthorized):
            session.submit_move(alice, Move.PAPER, STAKE)

        assert session.storage_words() == words
        assert session.state.move_a is Move.ROCK
        assert session.pool == STAKE

    def test_unfunded_player_changes_nothing(self, session, alice):
        session.ledger.balances[alice] = STAKE - 1
        words = session.storage_words()

        with pytest.raises(InsufficientPayment):
            session.submit_move(alice, Move.ROCK, STAKE)

        assert session.storage_words() == words
        assert session.pool == 0
        assert session.ledger.balance_of(alice) == STAKE - 1

    def test_failed_calls_leave_guard_free(self, session, carol):
        with pytest.raises(Unauthorized):
            session.submit_move(carol, Move.ROCK, STAKE)
        assert not session.state.locked


class TestSubmitMove:

    def test_first_move_awaits_second(self, session, alice, events):
        result = session.submit_move(alice, Move.PAPER, STAKE)

        assert result.slot is Slot.A
        assert not result.resolved
        assert session.state.move_a is Move.PAPER
        assert session.state.move_b is Move.UNSET
        assert session.phase is Phase.AWAITING_MOVES
        assert session.pool == STAKE
        assert events.events[-1] == MoveSubmitted(alice)

    def test_only_stake_is_collected(self, session, bob):
        session.submit_move(bob, Move.ROCK, STAKE * 5)

        assert session.ledger.balance_of(bob) == STARTING_BALANCE - STAKE
        assert session.pool == STAKE

    def test_player_b_can_move_first(self, session, bob):
        result = session.submit_move(bob, Move.SCISSORS, STAKE)

        assert result.slot is Slot.B
        assert session.state.move_b is Move.SCISSORS
        assert session.state.player_a != EMPTY

    def test_tie_scenario(self, session, alice, bob):
        session.submit_move(alice, Move.ROCK, STAKE)
        result = session.submit_move(bob, Move.ROCK, STAKE)

        assert result.resolved
        assert result.settlement.outcome is Outcome.TIE
        assert result.settlement.pool == 2 * STAKE
        assert result.settlement.paid_to(alice) == STAKE
        assert result.settlement.paid_to(bob) == STAKE
        assert session.ledger.balance_of(alice) == STARTING_BALANCE
        assert session.ledger.balance_of(bob) == STARTING_BALANCE
        assert session.state.is_empty
        assert session.pool == 0

    def test_win_scenario(self, session, alice, bob):
        session.submit_move(alice, Move.ROCK, STAKE)
        result = session.submit_move(bob, Move.SCISSORS, STAKE)

        assert result.settlement.outcome is Outcome.A_WINS
        assert result.settlement.paid_to(alice) == 2 * STAKE
        assert result.settlement.paid_to(bob) == 0
        assert session.ledger.balance_of(alice) == STARTING_BALANCE + STAKE
        assert session.ledger.balance_of(bob) == STARTING_BALANCE - STAKE

    @pytest.mark.parametrize("move_a,move_b", list(itertools.product(PLAYABLE, PLAYABLE)))
    def test_funds_conserved(self, session, alice, bob, move_a, move_b):
        total = _total_funds(session, alice, bob)

        session.submit_move(alice, move_a, STAKE)
        result = session.submit_move(bob, move_b, STAKE)

        assert result.settlement.paid_total == 2 * STAKE
        assert session.pool == 0
        assert _total_funds(session, alice, bob) == total

    def test_resolution_resets_to_idle(self, session, alice, bob, config):
        session.submit_move(alice, Move.PAPER, STAKE)
        session.submit_move(bob, Move.ROCK, STAKE)

        state = session.state
        assert state.phase is Phase.IDLE
        assert state.is_empty
        assert state.stake == config.stake
        assert state.session_length == config.session_length

    def test_new_session_after_resolution(self, session, alice, bob, carol):
        session.submit_move(alice, Move.PAPER, STAKE)
        session.submit_move(bob, Move.ROCK, STAKE)

        state = session.create(carol, alice)

        assert state.player_a == carol
        assert state.moves_submitted == 0

    def test_resolved_event(self, session, alice, bob, events):
        session.submit_move(alice, Move.SCISSORS, STAKE)
        session.submit_move(bob, Move.ROCK, STAKE)

        resolved = events.of_type(SessionResolved)
        assert resolved == [SessionResolved(
            outcome="b_wins",
            move_a=Move.SCISSORS,
            move_b=Move.ROCK,
            winner=bob,
            loser=alice,
            pool=2 * STAKE,
        )]


class TestTerminate:

    def test_too_early_until_after_deadline(self, session, clock):
        deadline = START_HEIGHT + SESSION_LENGTH
        clock.height = deadline
        words = session.storage_words()

        with pytest.raises(TooEarly):
            session.terminate()
        assert session.storage_words() == words

        clock.advance()
        session.terminate()
        assert session.phase is Phase.IDLE

    def test_no_session(self, machine, clock):
        clock.advance(SESSION_LENGTH + 1)
        with pytest.raises(InvalidState):
            machine.terminate()

    def test_no_session_reported_at_any_height(self, machine, clock):
        assert clock.now() <= SESSION_LENGTH
        with pytest.raises(InvalidState):
            machine.terminate()

    def test_single_mover_a_takes_pool(self, session, alice, clock, events):
        session.submit_move(alice, Move.ROCK, STAKE)
        clock.advance(SESSION_LENGTH + 1)

        settlement = session.terminate()

        assert settlement.outcome is Outcome.FORFEIT
        assert settlement.paid_to(alice) == STAKE
        assert session.ledger.balance_of(alice) == STARTING_BALANCE
        assert session.state.is_empty
        assert session.pool == 0
        assert events.events[-1] == SessionTerminated(alice, STAKE)

    def test_single_mover_b_takes_pool(self, session, bob, clock):
        """The mover is found by its move, whichever slot it is in."""
        session.submit_move(bob, Move.PAPER, STAKE)
        clock.advance(SESSION_LENGTH + 1)

        settlement = session.terminate()

        assert settlement.paid_to(bob) == STAKE
        assert session.ledger.balance_of(bob) == STARTING_BALANCE

    def test_no_movers_no_transfer(self, session, clock, events):
        clock.advance(SESSION_LENGTH + 1)

        settlement = session.terminate()

        assert settlement.transfers == []
        assert settlement.paid_total == 0
        assert settlement.pool == 0
        assert session.state.is_empty
        assert events.events[-1] == SessionTerminated(None, 0)

    def test_no_movers_pool_excludes_stranded_custody(self, session, clock):
        session.ledger.custody = 70
        clock.advance(SESSION_LENGTH + 1)

        settlement = session.terminate()

        assert settlement.pool == 0
        assert settlement.transfers == []
        assert session.pool == 70

    def test_session_can_restart_after_termination(self, session, alice, bob, clock):
        clock.advance(SESSION_LENGTH + 1)
        session.terminate()

        state = session.create(bob, alice)

        assert state.start_marker == clock.now()
        assert session.deadline == clock.now() + SESSION_LENGTH


class TestReentrancy:
    """A transfer hook that calls back into the machine."""

    def test_reentrant_calls_fail_during_payout(self, session, alice, bob, carol):
        seen = {}

        def hook(recipient, amount):
            seen["phase"] = session.phase
            for name, call in [
                ("create", lambda: session.create(carol, bob)),
                ("submit_move", lambda: session.submit_move(alice, Move.ROCK, STAKE)),
                ("terminate", session.terminate),
            ]:
                try:
                    call()
                except Reentrant as e:
                    seen[name] = e

        session.ledger.register_receiver(alice, hook)
        session.submit_move(alice, Move.PAPER, STAKE)
        result = session.submit_move(bob, Move.ROCK, STAKE)

        assert seen["phase"] is Phase.RESOLVING
        assert isinstance(seen["create"], Reentrant)
        assert isinstance(seen["submit_move"], Reentrant)
        assert isinstance(seen["terminate"], Reentrant)
        assert result.settlement.paid_to(alice) == 2 * STAKE
        assert session.state.is_empty

    def test_refusing_winner_does_not_block_reset(self, session, alice, bob, events):
        def hostile(recipient, amount):
            session.submit_move(alice, Move.ROCK, STAKE)

        session.ledger.register_receiver(alice, hostile)
        session.submit_move(alice, Move.PAPER, STAKE)
        result = session.submit_move(bob, Move.ROCK, STAKE)

        assert result.settlement.paid_total == 0
        assert events.of_type(TransferFailed)[0].recipient == alice
        assert session.state.is_empty
        assert not session.state.locked
        # Stranded stakes stay in custody
        assert session.pool == 2 * STAKE

    def test_guard_released_after_resolution(self, session, alice, bob):
        session.submit_move(alice, Move.PAPER, STAKE)
        session.submit_move(bob, Move.ROCK, STAKE)

        assert not session.state.locked
        session.create(alice, bob)


class TestListeners:
    """Subscribers that raise never abort a transition."""

    @staticmethod
    def _raise_on(event_type):
        def listener(event):
            if isinstance(event, event_type):
                raise RuntimeError("listener failed")
        return listener

    def test_raising_move_listener_still_resolves(self, session, alice, bob, events):
        events.subscribe(self._raise_on(MoveSubmitted))
        session.submit_move(alice, Move.PAPER, STAKE)

        result = session.submit_move(bob, Move.ROCK, STAKE)

        assert result.resolved
        assert result.settlement.paid_to(alice) == 2 * STAKE
        assert session.state.is_empty
        assert not session.state.locked
        assert session.pool == 0
        assert events.of_type(SessionResolved)

    def test_raising_resolved_listener_still_resets(self, session, alice, bob, events):
        events.subscribe(self._raise_on(SessionResolved))
        session.submit_move(alice, Move.PAPER, STAKE)

        session.submit_move(bob, Move.ROCK, STAKE)

        assert session.state.is_empty
        assert not session.state.locked
        session.create(alice, bob)

    def test_raising_create_listener_keeps_session(self, machine, alice, bob, events):
        events.subscribe(self._raise_on(SessionCreated))

        state = machine.create(alice, bob)

        assert state.in_progress
        assert events.events == [SessionCreated(alice, bob, START_HEIGHT)]
        machine.submit_move(alice, Move.ROCK, STAKE)
        assert machine.pool == STAKE

    def test_later_listeners_still_notified(self, events):
        seen = []
        events.subscribe(self._raise_on(MoveSubmitted))
        events.subscribe(seen.append)

        events.emit(MoveSubmitted(b"\x01" * 20))

        assert seen == [MoveSubmitted(b"\x01" * 20)]
