"""Domain layer: pure business rules with zero framework dependencies."""

from multisig_escrow.domain.authorization import AuthorizationGuard
from multisig_escrow.domain.enums import (
    CallerKind,
    EventType,
    RequestStatus,
    TransferFailure,
)
from multisig_escrow.domain.exceptions import (
    ActionError,
    EscrowError,
    InitializationError,
)
from multisig_escrow.domain.ledger_protocol import TransferPrimitive
from multisig_escrow.domain.models import (
    Caller,
    ConfigurationParams,
    RequestSnapshot,
)
from multisig_escrow.domain.state_machine import (
    RequestStateMachine,
    validate_transition,
)

__all__ = [
    "ActionError",
    "AuthorizationGuard",
    "Caller",
    "CallerKind",
    "ConfigurationParams",
    "EscrowError",
    "EventType",
    "InitializationError",
    "RequestSnapshot",
    "RequestStateMachine",
    "RequestStatus",
    "TransferFailure",
    "TransferPrimitive",
    "validate_transition",
]
