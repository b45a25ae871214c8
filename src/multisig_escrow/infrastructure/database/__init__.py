"""Database infrastructure: engine, ORM models, and repositories."""

from multisig_escrow.infrastructure.database.engine import (
    close_db,
    get_async_session,
    init_db,
    session_scope,
)
from multisig_escrow.infrastructure.database.orm_models import (
    Base,
    LedgerTransfer,
    TransferRequest,
    Vault,
    VaultEvent,
)
from multisig_escrow.infrastructure.database.repositories import (
    EventRepository,
    RequestRepository,
    TransferRepository,
    VaultRepository,
)

__all__ = [
    "Base",
    "EventRepository",
    "LedgerTransfer",
    "RequestRepository",
    "TransferRepository",
    "TransferRequest",
    "Vault",
    "VaultEvent",
    "VaultRepository",
    "close_db",
    "get_async_session",
    "init_db",
    "session_scope",
]
