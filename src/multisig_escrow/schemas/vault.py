"""Pydantic schemas for the Vault API.

These schemas define the request/response shapes for the REST API. They
are separate from the ORM models to maintain clean boundaries between the
API and database layers. Range checks here only reject malformed input;
the domain layer owns the business rules.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from multisig_escrow.domain.models import (
    MAX_AMOUNT,
    MAX_REQUEST_ID,
    MAX_TIMESTAMP_MS,
    RequestSnapshot,
)

if TYPE_CHECKING:
    from multisig_escrow.services.vault_service import VaultView

# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class InitializeVaultRequest(BaseModel):
    """Request body for creating a new vault."""

    timeout_ms: int | None = Field(
        default=None,
        ge=0,
        le=MAX_TIMESTAMP_MS,
        description="Lifetime of every transfer request, in milliseconds "
        "(defaults to DEFAULT_TIMEOUT_MS)",
        examples=[86_400_000],
    )
    signers: list[str] = Field(
        ...,
        description="Accounts allowed to propose, approve and cancel (at least 3)",
        examples=[["alice.near", "bob.near", "carol.near"]],
    )
    min_signers_required: int = Field(
        ...,
        description="Distinct approvals needed to execute a request",
        examples=[2],
    )
    initial_deposit: int = Field(
        default=0,
        ge=0,
        le=MAX_AMOUNT,
        description="Funds attached to the initialization, in the smallest unit",
    )


class DepositRequest(BaseModel):
    """Request body for crediting funds to a vault."""

    amount: int = Field(..., ge=0, le=MAX_AMOUNT, description="Amount to credit")


class ProposeRequest(BaseModel):
    """Request body for opening a transfer request."""

    amount: int = Field(..., gt=0, le=MAX_AMOUNT, description="Amount to transfer")
    receiver_account: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="Destination account of the payout",
    )
    request_id: int = Field(
        ...,
        ge=0,
        le=MAX_REQUEST_ID,
        description="Proposer-chosen ID, unique among active requests",
    )
    attached_amount: int = Field(
        default=0,
        ge=0,
        le=MAX_AMOUNT,
        description="Funds attached to the proposal, credited to the vault",
    )


class ApproveRequest(BaseModel):
    """Request body for approving a transfer request.

    `amount` and `receiver_account` must match the stored request.
    """

    amount: int = Field(..., gt=0, le=MAX_AMOUNT)
    receiver_account: str = Field(..., min_length=1, max_length=128)
    request_id: int = Field(..., ge=0, le=MAX_REQUEST_ID)


class CancelRequest(BaseModel):
    """Request body for cancelling the caller's own request."""

    request_id: int | None = Field(
        default=None,
        ge=0,
        le=MAX_REQUEST_ID,
        description="Request to cancel; defaults to the caller's lowest-ID request",
    )


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class TransferRequestResponse(BaseModel):
    """Response schema for a transfer request."""

    model_config = ConfigDict(from_attributes=True)

    request_id: int
    amount: int
    sender_account: str
    receiver_account: str
    approvers: list[str]
    expiry_ms: int
    status: str

    @classmethod
    def from_snapshot(cls, snapshot: RequestSnapshot) -> TransferRequestResponse:
        return cls(
            request_id=snapshot.request_id,
            amount=snapshot.amount,
            sender_account=snapshot.sender_account,
            receiver_account=snapshot.receiver_account,
            approvers=sorted(snapshot.approvers),
            expiry_ms=snapshot.expiry_ms,
            status=snapshot.status,
        )


class VaultResponse(BaseModel):
    """Response schema for a vault."""

    model_config = ConfigDict(from_attributes=True)

    vault_id: uuid.UUID
    timeout_ms: int
    signers: list[str]
    min_signers_required: int
    held_balance: int
    reserved_balance: int = 0
    requests: list[TransferRequestResponse] = Field(default_factory=list)
    created_at: datetime

    @classmethod
    def from_view(cls, view: VaultView) -> VaultResponse:
        return cls(
            vault_id=view.vault_id,
            timeout_ms=view.timeout_ms,
            signers=list(view.signers),
            min_signers_required=view.min_signers_required,
            held_balance=view.held_balance,
            reserved_balance=view.reserved_balance,
            requests=[TransferRequestResponse.from_snapshot(r) for r in view.requests],
            created_at=view.created_at,
        )


class ApprovalResponse(BaseModel):
    """Response schema for an approval."""

    request: TransferRequestResponse
    executed: bool
    tx_hash: str | None = None


class VaultEventResponse(BaseModel):
    """Response schema for an audit event."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    vault_id: uuid.UUID
    request_id: int | None
    event_type: str
    old_status: str | None
    new_status: str | None
    actor: str
    ledger_time_ms: int | None
    metadata: dict | None = Field(default=None, validation_alias="metadata_json")
    created_at: datetime


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"
    database: str = "unknown"
