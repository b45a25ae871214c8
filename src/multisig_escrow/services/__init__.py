"""Application services: use case orchestration."""

from multisig_escrow.services.cancellation_service import CancellationService
from multisig_escrow.services.ledger_service import SimulatedLedger
from multisig_escrow.services.lifecycle_service import ApprovalOutcome, LifecycleService
from multisig_escrow.services.pruning_service import ExpiryPruner
from multisig_escrow.services.vault_service import VaultService, VaultView

__all__ = [
    "ApprovalOutcome",
    "CancellationService",
    "ExpiryPruner",
    "LifecycleService",
    "SimulatedLedger",
    "VaultService",
    "VaultView",
]
