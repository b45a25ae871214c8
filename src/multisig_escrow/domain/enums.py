"""Domain enumerations for the Multisig Escrow.

These enums define the canonical states and types used throughout the system.
They are framework-agnostic (no SQLAlchemy, no FastAPI imports).
"""

import enum


class RequestStatus(enum.StrEnum):
    """Lifecycle states of a transfer request.

    Transitions are enforced by RequestStateMachine.
    See domain/state_machine.py for the transition table.
    """

    PENDING = "PENDING"
    EXECUTED = "EXECUTED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class EventType(enum.StrEnum):
    """Types of audit events recorded in the vault_events table.

    Every state change of a vault or request produces exactly one event.
    """

    # Vault events
    VAULT_INITIALIZED = "VAULT_INITIALIZED"
    FUNDS_DEPOSITED = "FUNDS_DEPOSITED"

    # Request lifecycle events
    REQUEST_PROPOSED = "REQUEST_PROPOSED"
    REQUEST_APPROVED = "REQUEST_APPROVED"
    REQUEST_EXECUTED = "REQUEST_EXECUTED"
    REQUEST_CANCELLED = "REQUEST_CANCELLED"
    REQUEST_EXPIRED = "REQUEST_EXPIRED"


class CallerKind(enum.StrEnum):
    """Identity kinds the host ledger reports for the sender of an action."""

    ACCOUNT = "account"
    CONTRACT = "contract"


class TransferFailure(enum.StrEnum):
    """Reasons the ledger transfer primitive can reject a transfer."""

    AMOUNT_TOO_LARGE = "AMOUNT_TOO_LARGE"
    MISSING_ACCOUNT = "MISSING_ACCOUNT"
