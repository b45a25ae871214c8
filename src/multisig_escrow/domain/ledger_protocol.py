"""Ledger Transfer Protocol.

Defines the interface of the external transfer primitive that moves funds
out of a vault once a request reaches quorum. This is a Protocol
(structural subtyping), so ledgers don't need to inherit from a base class.

Implementations raise LedgerTransferError with a TransferFailure reason:
    - AMOUNT_TOO_LARGE: the vault holds less than the amount.
    - MISSING_ACCOUNT:  the destination does not exist on the ledger.

Concrete implementations:
    - services/ledger_service.py (SimulatedLedger)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from multisig_escrow.infrastructure.database.orm_models import Vault


@runtime_checkable
class TransferPrimitive(Protocol):
    """Protocol that all ledger implementations must satisfy."""

    async def transfer(self, vault: Vault, destination: str, amount: int) -> str:
        """Move `amount` from the vault's held balance to `destination`.

        Returns:
            The ledger's transaction hash.

        Raises:
            LedgerTransferError: If the ledger rejects the transfer.
        """
        ...
