"""Pydantic API schemas."""

from multisig_escrow.schemas.vault import (
    ApprovalResponse,
    ApproveRequest,
    CancelRequest,
    DepositRequest,
    HealthResponse,
    InitializeVaultRequest,
    ProposeRequest,
    TransferRequestResponse,
    VaultEventResponse,
    VaultResponse,
)

__all__ = [
    "ApprovalResponse",
    "ApproveRequest",
    "CancelRequest",
    "DepositRequest",
    "HealthResponse",
    "InitializeVaultRequest",
    "ProposeRequest",
    "TransferRequestResponse",
    "VaultEventResponse",
    "VaultResponse",
]
