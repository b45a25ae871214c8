"""Vault Service: initialization, deposits and read-only queries.

Initialization validates the configuration once; it is never mutated
afterwards. Deposits are a thin pass-through that credits the held
balance. Queries never write, not even to prune.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from multisig_escrow.domain.enums import EventType
from multisig_escrow.domain.exceptions import InitParseParamsError
from multisig_escrow.domain.models import MAX_AMOUNT, ConfigurationParams, credit_balance
from multisig_escrow.infrastructure.database.orm_models import Vault
from multisig_escrow.infrastructure.database.repositories import TransferRepository
from multisig_escrow.logging_config import get_logger
from multisig_escrow.services.base import VaultScopedService, check_amount

if TYPE_CHECKING:
    import uuid
    from collections.abc import Iterable
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession

    from multisig_escrow.domain.models import RequestSnapshot
    from multisig_escrow.infrastructure.database.orm_models import (
        LedgerTransfer,
        VaultEvent,
    )

logger = get_logger(__name__)


@dataclass(frozen=True)
class VaultView:
    """Snapshot of a vault's configuration and active requests."""

    vault_id: uuid.UUID
    timeout_ms: int
    signers: tuple[str, ...]
    min_signers_required: int
    held_balance: int
    reserved_balance: int
    requests: tuple[RequestSnapshot, ...]
    created_at: datetime

    @property
    def free_balance(self) -> int:
        return max(self.held_balance - self.reserved_balance, 0)


class VaultService(VaultScopedService):
    """Creates vaults, accepts deposits, answers queries."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self._transfer_repo = TransferRepository(session)

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    async def initialize(
        self,
        timeout_ms: int,
        signers: Iterable[str],
        min_signers_required: int,
        initial_deposit: int = 0,
        created_by: str = "SYSTEM",
    ) -> Vault:
        """Validate the configuration and create a vault.

        Raises:
            InitParseParamsError: Malformed parameters.
            AccountsLessThanSupportNeededError: Quorum exceeds the signer count.
            IncompleteAccountsError: Fewer than three signers.
        """
        params = ConfigurationParams.create(
            timeout_ms=timeout_ms,
            signers=signers,
            min_signers_required=min_signers_required,
        )
        if not 0 <= initial_deposit <= MAX_AMOUNT:
            raise InitParseParamsError(f"initial deposit out of range: {initial_deposit}")

        vault = await self._vault_repo.create(
            Vault(
                timeout_ms=params.timeout_ms,
                signers=sorted(params.signers),
                min_signers_required=params.min_signers_required,
                held_balance=initial_deposit,
            )
        )

        await self._event_repo.record(
            vault_id=vault.id,
            event_type=EventType.VAULT_INITIALIZED,
            actor=created_by,
            metadata={
                "timeout_ms": params.timeout_ms,
                "signers": sorted(params.signers),
                "min_signers_required": params.min_signers_required,
                "initial_deposit": initial_deposit,
            },
        )

        logger.info(
            "vault.initialized",
            vault_id=str(vault.id),
            signers=len(params.signers),
            quorum=params.min_signers_required,
            timeout_ms=params.timeout_ms,
        )
        return vault

    # ------------------------------------------------------------------
    # Deposits
    # ------------------------------------------------------------------

    async def deposit(
        self,
        vault_id: uuid.UUID,
        amount: int,
        sender: str,
        now_ms: int | None = None,
    ) -> Vault:
        """Credit funds to the vault. Anyone may deposit."""
        check_amount(amount, allow_zero=True)
        vault = await self._get_vault_or_raise(vault_id, for_update=True)
        await self._vault_repo.set_held_balance(vault, credit_balance(vault.held_balance, amount))

        await self._event_repo.record(
            vault_id=vault_id,
            event_type=EventType.FUNDS_DEPOSITED,
            actor=sender,
            ledger_time_ms=now_ms,
            metadata={"amount": amount, "via": "deposit"},
        )

        logger.info(
            "vault.deposit",
            vault_id=str(vault_id),
            amount=amount,
            sender=sender,
            held_balance=vault.held_balance,
        )
        return vault

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    async def get_vault(self, vault_id: uuid.UUID) -> Vault:
        """Get a vault or raise."""
        return await self._get_vault_or_raise(vault_id)

    async def view(self, vault_id: uuid.UUID, now_ms: int) -> VaultView:
        """Configuration plus every request still live at `now_ms`."""
        vault = await self._get_vault_or_raise(vault_id)
        active = tuple(
            r.to_snapshot() for r in await self._request_repo.list_active(vault_id, now_ms)
        )
        return VaultView(
            vault_id=vault.id,
            timeout_ms=vault.timeout_ms,
            signers=tuple(vault.signers),
            min_signers_required=vault.min_signers_required,
            held_balance=vault.held_balance,
            reserved_balance=sum(r.amount for r in active),
            requests=active,
            created_at=vault.created_at,
        )

    async def get_events(self, vault_id: uuid.UUID) -> list[VaultEvent]:
        """Get the audit trail."""
        await self._get_vault_or_raise(vault_id)
        return await self._event_repo.get_by_vault(vault_id)

    async def get_transfers(self, vault_id: uuid.UUID) -> list[LedgerTransfer]:
        """Get the payouts the ledger executed for this vault."""
        await self._get_vault_or_raise(vault_id)
        return await self._transfer_repo.get_by_vault(vault_id)
