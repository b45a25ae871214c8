"""Repository classes for database access.

Repositories encapsulate all SQL queries and provide a clean interface
to the service layer. They accept an AsyncSession and never manage
their own transactions (that's the caller's responsibility).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select

from multisig_escrow.infrastructure.database.orm_models import (
    LedgerTransfer,
    TransferRequest,
    Vault,
    VaultEvent,
)

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from multisig_escrow.domain.enums import EventType, RequestStatus


class VaultRepository:
    """Data access for vaults (configuration and held balance)."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, vault: Vault) -> Vault:
        """Insert a new vault."""
        self._session.add(vault)
        await self._session.flush()
        return vault

    async def get_by_id(self, vault_id: uuid.UUID, for_update: bool = False) -> Vault | None:
        """Fetch a vault by its UUID.

        `for_update` locks the row until the transaction ends so actions
        against the same vault run one at a time.
        """
        stmt = select(Vault).where(Vault.id == vault_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def set_held_balance(self, vault: Vault, held_balance: int) -> Vault:
        vault.held_balance = held_balance
        await self._session.flush()
        return vault


class RequestRepository:
    """Data access for the RequestStore (active transfer requests)."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, request: TransferRequest) -> TransferRequest:
        """Insert a new transfer request."""
        self._session.add(request)
        await self._session.flush()
        return request

    async def get(self, vault_id: uuid.UUID, request_id: int) -> TransferRequest | None:
        """Fetch a request by vault and request ID."""
        return await self._session.get(TransferRequest, (vault_id, request_id))

    async def list_for_vault(self, vault_id: uuid.UUID) -> list[TransferRequest]:
        """Fetch every stored request of a vault, ascending by request ID."""
        result = await self._session.execute(
            select(TransferRequest)
            .where(TransferRequest.vault_id == vault_id)
            .order_by(TransferRequest.request_id.asc())
        )
        return list(result.scalars().all())

    async def list_expired(self, vault_id: uuid.UUID, now_ms: int) -> list[TransferRequest]:
        """Fetch requests whose expiry is at or before `now_ms`."""
        result = await self._session.execute(
            select(TransferRequest)
            .where(
                TransferRequest.vault_id == vault_id,
                TransferRequest.expiry_ms <= now_ms,
            )
            .order_by(TransferRequest.request_id.asc())
        )
        return list(result.scalars().all())

    async def list_active(self, vault_id: uuid.UUID, now_ms: int) -> list[TransferRequest]:
        """Fetch requests that have not expired at `now_ms`."""
        result = await self._session.execute(
            select(TransferRequest)
            .where(
                TransferRequest.vault_id == vault_id,
                TransferRequest.expiry_ms > now_ms,
            )
            .order_by(TransferRequest.request_id.asc())
        )
        return list(result.scalars().all())

    async def find_active_by_sender(
        self,
        vault_id: uuid.UUID,
        sender_account: str,
        now_ms: int,
        request_id: int | None = None,
    ) -> TransferRequest | None:
        """Fetch the lowest-ID unexpired request proposed by `sender_account`."""
        stmt = select(TransferRequest).where(
            TransferRequest.vault_id == vault_id,
            TransferRequest.sender_account == sender_account,
            TransferRequest.expiry_ms > now_ms,
        )
        if request_id is not None:
            stmt = stmt.where(TransferRequest.request_id == request_id)
        result = await self._session.execute(
            stmt.order_by(TransferRequest.request_id.asc()).limit(1)
        )
        return result.scalar_one_or_none()

    async def reserved_total(self, vault_id: uuid.UUID, now_ms: int) -> int:
        """Sum of amounts over the vault's unexpired requests."""
        result = await self._session.execute(
            select(func.coalesce(func.sum(TransferRequest.amount), 0)).where(
                TransferRequest.vault_id == vault_id,
                TransferRequest.expiry_ms > now_ms,
            )
        )
        return int(result.scalar_one())

    async def update_approvers(
        self,
        request: TransferRequest,
        approvers: frozenset[str],
    ) -> TransferRequest:
        """Replace the approver set (call AFTER state machine validation)."""
        request.approvers = sorted(approvers)
        await self._session.flush()
        return request

    async def delete(self, request: TransferRequest) -> None:
        """Remove a request from the store."""
        await self._session.delete(request)
        await self._session.flush()


class TransferRepository:
    """Data access for executed ledger transfers."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(self, transfer: LedgerTransfer) -> LedgerTransfer:
        self._session.add(transfer)
        await self._session.flush()
        return transfer

    async def get_by_vault(self, vault_id: uuid.UUID) -> list[LedgerTransfer]:
        result = await self._session.execute(
            select(LedgerTransfer)
            .where(LedgerTransfer.vault_id == vault_id)
            .order_by(LedgerTransfer.created_at.asc())
        )
        return list(result.scalars().all())


class EventRepository:
    """Data access for the append-only audit event log."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(
        self,
        vault_id: uuid.UUID,
        event_type: EventType,
        request_id: int | None = None,
        old_status: RequestStatus | None = None,
        new_status: RequestStatus | None = None,
        actor: str = "SYSTEM",
        ledger_time_ms: int | None = None,
        metadata: dict | None = None,
    ) -> VaultEvent:
        """Append a new audit event. This is the ONLY write operation allowed."""
        evt = VaultEvent(
            vault_id=vault_id,
            request_id=request_id,
            event_type=event_type.value,
            old_status=old_status.value if old_status else None,
            new_status=new_status.value if new_status else None,
            actor=actor,
            ledger_time_ms=ledger_time_ms,
            metadata_json=metadata,
        )
        self._session.add(evt)
        await self._session.flush()
        return evt

    async def get_by_vault(self, vault_id: uuid.UUID) -> list[VaultEvent]:
        """Fetch all events for a vault in chronological order."""
        result = await self._session.execute(
            select(VaultEvent)
            .where(VaultEvent.vault_id == vault_id)
            .order_by(VaultEvent.id.asc())
        )
        return list(result.scalars().all())

    async def get_by_request(
        self,
        vault_id: uuid.UUID,
        request_id: int,
    ) -> list[VaultEvent]:
        """Fetch the history of one request ID (IDs may be reused)."""
        result = await self._session.execute(
            select(VaultEvent)
            .where(VaultEvent.vault_id == vault_id, VaultEvent.request_id == request_id)
            .order_by(VaultEvent.id.asc())
        )
        return list(result.scalars().all())
