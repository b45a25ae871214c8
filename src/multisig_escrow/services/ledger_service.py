"""Ledger Service: simulated transfer primitive for vault payouts.

The real ledger is an external collaborator. SimulatedLedger stands in for
it with the same contract: it debits the vault's held balance, rejects
amounts the vault cannot cover and destinations it does not know, and
returns a fake transaction hash. Every executed transfer is stored in
ledger_transfers so payouts stay auditable.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from multisig_escrow.domain.enums import TransferFailure
from multisig_escrow.domain.exceptions import LedgerTransferError
from multisig_escrow.infrastructure.database.orm_models import LedgerTransfer
from multisig_escrow.infrastructure.database.repositories import (
    TransferRepository,
    VaultRepository,
)
from multisig_escrow.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Collection

    from sqlalchemy.ext.asyncio import AsyncSession

    from multisig_escrow.infrastructure.database.orm_models import Vault

logger = get_logger(__name__)


class SimulatedLedger:
    """Transfer primitive backed by the vault row's held balance."""

    def __init__(
        self,
        session: AsyncSession,
        known_accounts: Collection[str] | None = None,
    ) -> None:
        """Initialize the ledger.

        Args:
            session: Session of the action's unit of work.
            known_accounts: Accounts that exist on the ledger. None accepts
                any destination.
        """
        self._vault_repo = VaultRepository(session)
        self._transfer_repo = TransferRepository(session)
        self._known_accounts = frozenset(known_accounts) if known_accounts is not None else None

    async def transfer(self, vault: Vault, destination: str, amount: int) -> str:
        """Move `amount` out of the vault. Returns the transaction hash."""
        if amount > vault.held_balance:
            raise LedgerTransferError(TransferFailure.AMOUNT_TOO_LARGE, destination, amount)
        if self._known_accounts is not None and destination not in self._known_accounts:
            raise LedgerTransferError(TransferFailure.MISSING_ACCOUNT, destination, amount)

        tx_hash = "0x" + uuid.uuid4().hex + uuid.uuid4().hex
        await self._vault_repo.set_held_balance(vault, vault.held_balance - amount)
        await self._transfer_repo.record(
            LedgerTransfer(
                vault_id=vault.id,
                destination=destination,
                amount=amount,
                tx_hash=tx_hash,
            )
        )
        logger.info(
            "ledger.transfer_simulated",
            vault_id=str(vault.id),
            to_account=destination,
            amount=amount,
            tx_hash=tx_hash,
        )
        return tx_hash
