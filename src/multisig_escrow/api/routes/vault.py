"""Vault REST API routes.

These endpoints are the host interface of the escrow: each POST is one
action executed inside one database transaction, committed on success and
rolled back on any error.

Routes:
    POST   /api/v1/vaults                     - Initialize a new vault
    GET    /api/v1/vaults/{id}                - Configuration and active requests
    GET    /api/v1/vaults/{id}/events         - Get audit trail
    POST   /api/v1/vaults/{id}/deposit        - Credit funds
    POST   /api/v1/vaults/{id}/propose        - Open a transfer request
    POST   /api/v1/vaults/{id}/approve        - Approve (and maybe execute)
    POST   /api/v1/vaults/{id}/cancel         - Withdraw the caller's request
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from multisig_escrow.api.deps import (
    get_app_settings,
    get_caller,
    get_clock,
    get_db_session,
    get_ledger,
)
from multisig_escrow.config import Settings
from multisig_escrow.domain.models import Caller
from multisig_escrow.infrastructure.clock import Clock
from multisig_escrow.logging_config import bind_action_context
from multisig_escrow.schemas.vault import (
    ApprovalResponse,
    ApproveRequest,
    CancelRequest,
    DepositRequest,
    InitializeVaultRequest,
    ProposeRequest,
    TransferRequestResponse,
    VaultEventResponse,
    VaultResponse,
)
from multisig_escrow.services.cancellation_service import CancellationService
from multisig_escrow.services.ledger_service import SimulatedLedger
from multisig_escrow.services.lifecycle_service import LifecycleService
from multisig_escrow.services.vault_service import VaultService

router = APIRouter(prefix="/api/v1/vaults", tags=["Vaults"])


# ---------------------------------------------------------------------------
# Initialize
# ---------------------------------------------------------------------------


@router.post(
    "",
    response_model=VaultResponse,
    status_code=201,
    summary="Initialize a new vault",
)
async def initialize_vault(
    request: InitializeVaultRequest,
    caller: Caller = Depends(get_caller),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_app_settings),
    session: AsyncSession = Depends(get_db_session),
) -> VaultResponse:
    """Create a vault with an immutable signer set, quorum and timeout."""
    bind_action_context("initialize", caller=caller.address)
    timeout_ms = request.timeout_ms
    if timeout_ms is None:
        timeout_ms = settings.default_timeout_ms
    svc = VaultService(session)
    vault = await svc.initialize(
        timeout_ms=timeout_ms,
        signers=request.signers,
        min_signers_required=request.min_signers_required,
        initial_deposit=request.initial_deposit,
        created_by=caller.address,
    )
    return VaultResponse.from_view(await svc.view(vault.id, clock.now_ms()))


# ---------------------------------------------------------------------------
# Deposit
# ---------------------------------------------------------------------------


@router.post(
    "/{vault_id}/deposit",
    response_model=VaultResponse,
    summary="Credit funds to a vault",
)
async def deposit(
    vault_id: uuid.UUID,
    request: DepositRequest,
    caller: Caller = Depends(get_caller),
    clock: Clock = Depends(get_clock),
    session: AsyncSession = Depends(get_db_session),
) -> VaultResponse:
    """Anyone may deposit; the funds join the held balance."""
    bind_action_context("deposit", vault_id, caller.address)
    svc = VaultService(session)
    now_ms = clock.now_ms()
    await svc.deposit(vault_id, amount=request.amount, sender=caller.address, now_ms=now_ms)
    return VaultResponse.from_view(await svc.view(vault_id, now_ms))


# ---------------------------------------------------------------------------
# Request lifecycle
# ---------------------------------------------------------------------------


@router.post(
    "/{vault_id}/propose",
    response_model=TransferRequestResponse,
    status_code=201,
    summary="Propose a transfer",
)
async def propose(
    vault_id: uuid.UUID,
    request: ProposeRequest,
    caller: Caller = Depends(get_caller),
    clock: Clock = Depends(get_clock),
    ledger: SimulatedLedger = Depends(get_ledger),
    session: AsyncSession = Depends(get_db_session),
) -> TransferRequestResponse:
    """Open a transfer request; the proposer counts as its first approval."""
    bind_action_context("propose", vault_id, caller.address)
    svc = LifecycleService(session, ledger)
    snapshot = await svc.propose(
        vault_id=vault_id,
        caller=caller,
        amount=request.amount,
        receiver_account=request.receiver_account,
        request_id=request.request_id,
        now_ms=clock.now_ms(),
        attached_amount=request.attached_amount,
    )
    return TransferRequestResponse.from_snapshot(snapshot)


@router.post(
    "/{vault_id}/approve",
    response_model=ApprovalResponse,
    summary="Approve a transfer",
)
async def approve(
    vault_id: uuid.UUID,
    request: ApproveRequest,
    caller: Caller = Depends(get_caller),
    clock: Clock = Depends(get_clock),
    ledger: SimulatedLedger = Depends(get_ledger),
    session: AsyncSession = Depends(get_db_session),
) -> ApprovalResponse:
    """Record an approval. Reaching the quorum executes the transfer."""
    bind_action_context("approve", vault_id, caller.address)
    svc = LifecycleService(session, ledger)
    outcome = await svc.approve(
        vault_id=vault_id,
        caller=caller,
        amount=request.amount,
        receiver_account=request.receiver_account,
        request_id=request.request_id,
        now_ms=clock.now_ms(),
    )
    return ApprovalResponse(
        request=TransferRequestResponse.from_snapshot(outcome.request),
        executed=outcome.executed,
        tx_hash=outcome.tx_hash,
    )


@router.post(
    "/{vault_id}/cancel",
    response_model=TransferRequestResponse,
    summary="Cancel the caller's request",
)
async def cancel(
    vault_id: uuid.UUID,
    request: CancelRequest,
    caller: Caller = Depends(get_caller),
    clock: Clock = Depends(get_clock),
    session: AsyncSession = Depends(get_db_session),
) -> TransferRequestResponse:
    """Withdraw an unexpired request the caller proposed."""
    bind_action_context("cancel", vault_id, caller.address)
    snapshot = await CancellationService(session).cancel(
        vault_id=vault_id,
        caller=caller,
        now_ms=clock.now_ms(),
        request_id=request.request_id,
    )
    return TransferRequestResponse.from_snapshot(snapshot)


# ---------------------------------------------------------------------------
# Read endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/{vault_id}",
    response_model=VaultResponse,
    summary="Get vault details",
)
async def get_vault(
    vault_id: uuid.UUID,
    clock: Clock = Depends(get_clock),
    session: AsyncSession = Depends(get_db_session),
) -> VaultResponse:
    """Configuration, balances and every request that has not expired."""
    view = await VaultService(session).view(vault_id, clock.now_ms())
    return VaultResponse.from_view(view)


@router.get(
    "/{vault_id}/events",
    response_model=list[VaultEventResponse],
    summary="Get audit trail",
)
async def get_events(
    vault_id: uuid.UUID,
    session: AsyncSession = Depends(get_db_session),
) -> list[VaultEventResponse]:
    """Return the full audit trail for a vault."""
    events = await VaultService(session).get_events(vault_id)
    return [VaultEventResponse.model_validate(e) for e in events]
