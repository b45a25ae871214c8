"""Tests for the RequestStateMachine domain guard.

These tests verify that:
    1. Every transition out of PENDING is allowed.
    2. Final states reject every event.
    3. The convenience function validate_transition works.
"""

from __future__ import annotations

import pytest
from statemachine.exceptions import TransitionNotAllowed

from multisig_escrow.domain.state_machine import (
    TRANSITION_EVENTS,
    RequestStateMachine,
    validate_transition,
)

FINAL_STATES = ["EXECUTED", "CANCELLED", "EXPIRED"]


class TestPendingTransitions:
    def test_starts_pending(self) -> None:
        sm = RequestStateMachine()
        assert sm.status == "PENDING"
        assert sm.is_final is False

    def test_record_approval_stays_pending(self) -> None:
        sm = RequestStateMachine("PENDING")
        sm.record_approval()
        assert sm.status == "PENDING"

    def test_reach_quorum(self) -> None:
        sm = RequestStateMachine("PENDING")
        sm.reach_quorum()
        assert sm.status == "EXECUTED"
        assert sm.is_final is True

    def test_withdraw(self) -> None:
        sm = RequestStateMachine("PENDING")
        sm.withdraw()
        assert sm.status == "CANCELLED"

    def test_lapse(self) -> None:
        sm = RequestStateMachine("PENDING")
        sm.lapse()
        assert sm.status == "EXPIRED"


class TestIllegalTransitions:
    """Verify that final states raise TransitionNotAllowed."""

    @pytest.mark.parametrize("status", FINAL_STATES)
    @pytest.mark.parametrize("event", sorted(TRANSITION_EVENTS))
    def test_final_states_never_move(self, status: str, event: str) -> None:
        sm = RequestStateMachine(status)
        assert sm.is_final is True
        with pytest.raises(TransitionNotAllowed):
            getattr(sm, event)()

    def test_executed_cannot_be_cancelled(self) -> None:
        with pytest.raises(TransitionNotAllowed):
            validate_transition("EXECUTED", "withdraw")


class TestValidateTransitionFunction:
    """Test the convenience function."""

    def test_valid_transition(self) -> None:
        assert validate_transition("PENDING", "reach_quorum") == "EXECUTED"

    def test_invalid_event_name(self) -> None:
        with pytest.raises(ValueError, match="Unknown event"):
            validate_transition("PENDING", "nonexistent_event")

    def test_invalid_status(self) -> None:
        with pytest.raises(ValueError, match="Unknown status"):
            RequestStateMachine("INVALID_STATUS")
