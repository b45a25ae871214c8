"""Expiry Pruner: discards requests whose expiry has passed.

A full scan of one vault's requests: O(stored requests), fine for the
handful of outstanding requests a small signer group keeps. The sweep is
idempotent; running it twice at the same `now` leaves the same survivors.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from multisig_escrow.domain.enums import EventType, RequestStatus
from multisig_escrow.logging_config import get_logger
from multisig_escrow.services.base import VaultScopedService

if TYPE_CHECKING:
    import uuid

logger = get_logger(__name__)


class ExpiryPruner(VaultScopedService):
    """Removes expired requests and reports what is still reserved."""

    async def prune(self, vault_id: uuid.UUID, now_ms: int) -> int:
        """Delete every request with `expiry <= now_ms`.

        Returns:
            The reserved balance: the sum of amounts of the surviving requests.
        """
        pruned: list[int] = []
        for request in await self._request_repo.list_expired(vault_id, now_ms):
            new_status = self._fire_transition(request, "lapse")
            await self._event_repo.record(
                vault_id=vault_id,
                event_type=EventType.REQUEST_EXPIRED,
                request_id=request.request_id,
                old_status=RequestStatus.PENDING,
                new_status=new_status,
                ledger_time_ms=now_ms,
                metadata={
                    "amount": request.amount,
                    "expiry_ms": request.expiry_ms,
                    "approvers": list(request.approvers),
                },
            )
            pruned.append(request.request_id)
            await self._request_repo.delete(request)

        reserved = await self._request_repo.reserved_total(vault_id, now_ms)
        if pruned:
            logger.info(
                "requests.pruned",
                vault_id=str(vault_id),
                pruned=pruned,
                reserved=reserved,
            )
        return reserved
