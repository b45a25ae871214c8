"""Request Lifecycle Service: propose and approve transfer requests.

This is the application layer that coordinates between:
    - AuthorizationGuard (who may act)
    - ExpiryPruner (stale reservations)
    - Domain state machine (transition guard)
    - Repositories (RequestStore, audit trail)
    - The ledger transfer primitive (payout on quorum)

Every method runs inside the caller's unit of work. Any exception aborts
the whole action: the session is rolled back and nothing is persisted.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import TYPE_CHECKING

from multisig_escrow.domain.authorization import AuthorizationGuard
from multisig_escrow.domain.enums import EventType, RequestStatus, TransferFailure
from multisig_escrow.domain.exceptions import (
    AlreadyExistsError,
    InsufficientBalanceError,
    InvalidRecipientError,
    LedgerTransferError,
    RequestMismatchError,
    RequestNotFoundError,
    TimedOutError,
)
from multisig_escrow.domain.models import (
    available_balance,
    compute_expiry,
    credit_balance,
    is_expired,
    quorum_reached,
)
from multisig_escrow.infrastructure.database.orm_models import TransferRequest
from multisig_escrow.logging_config import get_logger
from multisig_escrow.services.base import VaultScopedService, check_amount, check_request_id
from multisig_escrow.services.pruning_service import ExpiryPruner

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from multisig_escrow.domain.ledger_protocol import TransferPrimitive
    from multisig_escrow.domain.models import Caller, RequestSnapshot
    from multisig_escrow.infrastructure.database.orm_models import Vault

logger = get_logger(__name__)


@dataclass(frozen=True)
class ApprovalOutcome:
    """Result of an approve action.

    Attributes:
        request: The request after the approval (status EXECUTED when the
            approval completed the quorum).
        executed: Whether the transfer ran and the request was removed.
        tx_hash: Ledger transaction hash of the payout, if executed.
    """

    request: RequestSnapshot
    executed: bool
    tx_hash: str | None = None


class LifecycleService(VaultScopedService):
    """Runs the propose / approve actions of the request state machine."""

    def __init__(self, session: AsyncSession, ledger: TransferPrimitive) -> None:
        super().__init__(session)
        self._ledger = ledger
        self._pruner = ExpiryPruner(session)

    # ------------------------------------------------------------------
    # Propose
    # ------------------------------------------------------------------

    async def propose(
        self,
        vault_id: uuid.UUID,
        caller: Caller,
        amount: int,
        receiver_account: str,
        request_id: int,
        now_ms: int,
        attached_amount: int = 0,
    ) -> RequestSnapshot:
        """Open a new transfer request; the proposer is its first approver.

        Funds attached to the call are credited to the vault in the same
        transaction and count toward the balance check.
        """
        check_amount(amount)
        check_amount(attached_amount, allow_zero=True)
        check_request_id(request_id)

        vault = await self._get_vault_or_raise(vault_id, for_update=True)
        params = vault.params
        proposer = AuthorizationGuard(params.signers).authorize(caller)

        reserved = await self._pruner.prune(vault_id, now_ms)

        if await self._request_repo.get(vault_id, request_id) is not None:
            raise AlreadyExistsError(f"Transfer request {request_id} is already active")

        available = available_balance(attached_amount, vault.held_balance, reserved)
        if available < amount:
            raise InsufficientBalanceError(required=amount, available=max(available, 0))

        expiry_ms = compute_expiry(now_ms, params.timeout_ms)

        if attached_amount:
            await self._vault_repo.set_held_balance(
                vault, credit_balance(vault.held_balance, attached_amount)
            )
            await self._event_repo.record(
                vault_id=vault_id,
                event_type=EventType.FUNDS_DEPOSITED,
                actor=proposer,
                ledger_time_ms=now_ms,
                metadata={"amount": attached_amount, "via": "propose"},
            )

        request = await self._request_repo.create(
            TransferRequest(
                vault_id=vault_id,
                request_id=request_id,
                amount=amount,
                sender_account=proposer,
                receiver_account=receiver_account,
                approvers=[proposer],
                status=RequestStatus.PENDING.value,
                created_at_ms=now_ms,
                expiry_ms=expiry_ms,
            )
        )

        await self._event_repo.record(
            vault_id=vault_id,
            event_type=EventType.REQUEST_PROPOSED,
            request_id=request_id,
            old_status=None,
            new_status=RequestStatus.PENDING,
            actor=proposer,
            ledger_time_ms=now_ms,
            metadata={
                "amount": amount,
                "receiver": receiver_account,
                "expiry_ms": expiry_ms,
            },
        )

        logger.info(
            "request.proposed",
            vault_id=str(vault_id),
            request_id=request_id,
            amount=amount,
            proposer=proposer,
            expiry_ms=expiry_ms,
        )
        return request.to_snapshot()

    # ------------------------------------------------------------------
    # Approve
    # ------------------------------------------------------------------

    async def approve(
        self,
        vault_id: uuid.UUID,
        caller: Caller,
        amount: int,
        receiver_account: str,
        request_id: int,
        now_ms: int,
    ) -> ApprovalOutcome:
        """Add the caller's approval; execute the transfer on quorum.

        `amount` and `receiver_account` confirm what the signer approves
        and must equal the stored request. The payout always uses the
        stored values.
        """
        check_request_id(request_id)

        vault = await self._get_vault_or_raise(vault_id, for_update=True)
        params = vault.params
        approver = AuthorizationGuard(params.signers).authorize(caller)

        request = await self._request_repo.get(vault_id, request_id)
        if request is None:
            raise RequestNotFoundError(request_id)
        if is_expired(request.expiry_ms, now_ms):
            raise TimedOutError(request_id, request.expiry_ms)
        if amount != request.amount:
            raise RequestMismatchError(request_id, "amount")
        if receiver_account != request.receiver_account:
            raise RequestMismatchError(request_id, "receiver")
        if approver in request.approvers:
            raise AlreadyExistsError(
                f"Account {approver} already approved request {request_id}"
            )

        approvers = frozenset(request.approvers) | {approver}

        # Phase 1: decide. Nothing has been written yet.
        if not quorum_reached(approvers, params.min_signers_required):
            new_status = self._fire_transition(request, "record_approval")
            await self._request_repo.update_approvers(request, approvers)
            await self._event_repo.record(
                vault_id=vault_id,
                event_type=EventType.REQUEST_APPROVED,
                request_id=request_id,
                old_status=RequestStatus.PENDING,
                new_status=new_status,
                actor=approver,
                ledger_time_ms=now_ms,
                metadata={"approvals": len(approvers), "required": params.min_signers_required},
            )
            logger.info(
                "request.approved",
                vault_id=str(vault_id),
                request_id=request_id,
                approver=approver,
                approvals=len(approvers),
                required=params.min_signers_required,
            )
            return ApprovalOutcome(request=request.to_snapshot(), executed=False)

        # Phase 2: execute. Transfer first, then remove the request.
        new_status = self._fire_transition(request, "reach_quorum")
        tx_hash = await self._execute_transfer(vault, request)

        snapshot = dataclasses.replace(
            request.to_snapshot(), approvers=approvers, status=new_status.value
        )
        await self._request_repo.delete(request)
        await self._event_repo.record(
            vault_id=vault_id,
            event_type=EventType.REQUEST_EXECUTED,
            request_id=request_id,
            old_status=RequestStatus.PENDING,
            new_status=new_status,
            actor=approver,
            ledger_time_ms=now_ms,
            metadata={
                "amount": snapshot.amount,
                "receiver": snapshot.receiver_account,
                "approvers": sorted(approvers),
                "tx_hash": tx_hash,
            },
        )

        logger.info(
            "request.executed",
            vault_id=str(vault_id),
            request_id=request_id,
            amount=snapshot.amount,
            receiver=snapshot.receiver_account,
            tx_hash=tx_hash,
        )
        return ApprovalOutcome(request=snapshot, executed=True, tx_hash=tx_hash)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _execute_transfer(self, vault: Vault, request: TransferRequest) -> str:
        """Invoke the ledger, translating its failures into action errors."""
        try:
            return await self._ledger.transfer(vault, request.receiver_account, request.amount)
        except LedgerTransferError as err:
            logger.warning(
                "request.transfer_rejected",
                vault_id=str(vault.id),
                request_id=request.request_id,
                failure=err.failure,
            )
            if err.failure == TransferFailure.AMOUNT_TOO_LARGE:
                raise InsufficientBalanceError(
                    required=request.amount, available=vault.held_balance
                ) from err
            raise InvalidRecipientError(request.receiver_account) from err
