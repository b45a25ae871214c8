"""Transfer Request State Machine Guard.

Uses python-statemachine to enforce legal request transitions at the domain
level. The services fire an event on a machine built from the request's
current status before touching the store, so a request that already left
PENDING can never be executed, cancelled or expired a second time.

Transition table:
    PENDING -> PENDING    (record_approval)  approval added, no quorum yet
    PENDING -> EXECUTED   (reach_quorum)     quorum reached, transfer done
    PENDING -> CANCELLED  (withdraw)         proposer withdrew it
    PENDING -> EXPIRED    (lapse)            pruned after its expiry
"""

from __future__ import annotations

from statemachine import State, StateMachine


class RequestStateMachine(StateMachine):
    """State machine that guards the transfer request lifecycle.

    Usage:
        sm = RequestStateMachine(current_status="PENDING")
        sm.reach_quorum()    # transitions to EXECUTED
        sm.status            # "EXECUTED"
    """

    # --- States ---
    PENDING = State("PENDING", initial=True)
    EXECUTED = State("EXECUTED", final=True)
    CANCELLED = State("CANCELLED", final=True)
    EXPIRED = State("EXPIRED", final=True)

    # --- Events / Transitions ---
    record_approval = PENDING.to.itself()
    reach_quorum = PENDING.to(EXECUTED)
    withdraw = PENDING.to(CANCELLED)
    lapse = PENDING.to(EXPIRED)

    def __init__(self, current_status: str = "PENDING") -> None:
        """Initialize the state machine at a given status.

        Args:
            current_status: A RequestStatus value (e.g., "PENDING").
        """
        valid_values = {s.value for s in self.states}
        if current_status not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(
                f"Unknown status '{current_status}'. Valid states: {valid}"
            )
        super().__init__(start_value=current_status)

    @property
    def status(self) -> str:
        """Return the current state value as a string (matches RequestStatus)."""
        return str(self.current_state.value)

    @property
    def is_final(self) -> bool:
        return self.current_state.final


def validate_transition(current_status: str, event_name: str) -> str:
    """Validate a request transition and return the new status.

    Raises:
        TransitionNotAllowed: If the transition is illegal.
        ValueError: If the status or event name is invalid.
    """
    if event_name not in TRANSITION_EVENTS:
        raise ValueError(
            f"Unknown event '{event_name}'. Known events: {sorted(TRANSITION_EVENTS)}"
        )
    sm = RequestStateMachine(current_status=current_status)
    getattr(sm, event_name)()
    return sm.status


TRANSITION_EVENTS = frozenset({"record_approval", "reach_quorum", "withdraw", "lapse"})
