"""Cancellation Service: a proposer withdraws their own pending request."""

from __future__ import annotations

from typing import TYPE_CHECKING

from multisig_escrow.domain.authorization import AuthorizationGuard
from multisig_escrow.domain.enums import EventType, RequestStatus
from multisig_escrow.domain.exceptions import RequestNotFoundError
from multisig_escrow.logging_config import get_logger
from multisig_escrow.services.base import VaultScopedService, check_request_id

if TYPE_CHECKING:
    import uuid

    from multisig_escrow.domain.models import Caller, RequestSnapshot

logger = get_logger(__name__)


class CancellationService(VaultScopedService):
    """Deletes an unexpired request on behalf of the signer who proposed it.

    There is no quorum override: only the original proposer can cancel.
    """

    async def cancel(
        self,
        vault_id: uuid.UUID,
        caller: Caller,
        now_ms: int,
        request_id: int | None = None,
    ) -> RequestSnapshot:
        """Cancel the caller's lowest-ID active request, or `request_id` if given.

        Raises:
            RequestNotFoundError: The caller owns no matching unexpired request.
        """
        if request_id is not None:
            check_request_id(request_id)

        vault = await self._get_vault_or_raise(vault_id, for_update=True)
        account = AuthorizationGuard(vault.params.signers).authorize(caller)

        request = await self._request_repo.find_active_by_sender(
            vault_id, account, now_ms, request_id=request_id
        )
        if request is None:
            raise RequestNotFoundError(request_id, account=account)

        new_status = self._fire_transition(request, "withdraw")
        snapshot = request.to_snapshot()
        await self._request_repo.delete(request)
        await self._event_repo.record(
            vault_id=vault_id,
            event_type=EventType.REQUEST_CANCELLED,
            request_id=snapshot.request_id,
            old_status=RequestStatus.PENDING,
            new_status=new_status,
            actor=account,
            ledger_time_ms=now_ms,
            metadata={"amount": snapshot.amount, "approvers": sorted(snapshot.approvers)},
        )

        logger.info(
            "request.cancelled",
            vault_id=str(vault_id),
            request_id=snapshot.request_id,
            by=account,
        )
        return snapshot.with_status(new_status)
