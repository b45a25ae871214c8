"""Shared plumbing for services that act on one vault inside a session."""

from __future__ import annotations

from typing import TYPE_CHECKING

from statemachine.exceptions import TransitionNotAllowed

from multisig_escrow.domain.enums import RequestStatus
from multisig_escrow.domain.exceptions import (
    InvalidStateTransitionError,
    ParseParamsError,
    VaultNotFoundError,
)
from multisig_escrow.domain.models import MAX_AMOUNT, MAX_REQUEST_ID
from multisig_escrow.domain.state_machine import TRANSITION_EVENTS, RequestStateMachine
from multisig_escrow.infrastructure.database.repositories import (
    EventRepository,
    RequestRepository,
    VaultRepository,
)

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from multisig_escrow.infrastructure.database.orm_models import TransferRequest, Vault


class VaultScopedService:
    """Base class wiring the repositories every vault action needs.

    Services never commit; the caller's unit of work decides.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._vault_repo = VaultRepository(session)
        self._request_repo = RequestRepository(session)
        self._event_repo = EventRepository(session)

    async def _get_vault_or_raise(self, vault_id: uuid.UUID, for_update: bool = False) -> Vault:
        vault = await self._vault_repo.get_by_id(vault_id, for_update=for_update)
        if vault is None:
            raise VaultNotFoundError(str(vault_id))
        return vault

    def _fire_transition(self, request: TransferRequest, event_name: str) -> RequestStatus:
        """Validate a lifecycle transition and return the resulting status.

        Raises InvalidStateTransitionError if the transition is illegal.
        """
        if event_name not in TRANSITION_EVENTS:
            raise InvalidStateTransitionError(request.status, event_name)
        sm = RequestStateMachine(current_status=request.status)
        try:
            getattr(sm, event_name)()
        except TransitionNotAllowed as err:
            raise InvalidStateTransitionError(request.status, event_name) from err
        return RequestStatus(sm.status)


def check_amount(amount: int, allow_zero: bool = False) -> None:
    """Reject amounts the store cannot represent."""
    lower = 0 if allow_zero else 1
    if not lower <= amount <= MAX_AMOUNT:
        raise ParseParamsError(f"Amount out of range: {amount}")


def check_request_id(request_id: int) -> None:
    if not 0 <= request_id <= MAX_REQUEST_ID:
        raise ParseParamsError(f"Request ID out of range: {request_id}")
