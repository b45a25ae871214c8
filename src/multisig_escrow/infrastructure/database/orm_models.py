"""SQLAlchemy 2.0 ORM models for the Multisig Escrow.

Four tables:
    1. vaults             - One row per vault: immutable configuration plus
                            the held balance.
    2. transfer_requests  - The RequestStore: active transfer requests,
                            keyed by (vault_id, request_id).
    3. ledger_transfers   - Outgoing transfers executed by the ledger.
    4. vault_events       - Append-only audit log of every state change.

Design decisions:
    - Amounts are BigInteger in the smallest currency unit (no rounding).
    - Timestamps are BigInteger milliseconds of ledger slot time.
    - Request IDs are chosen by the proposer, so they form a composite
      primary key with the vault instead of a surrogate key.
    - Executed, cancelled and expired requests are deleted; the event log
      keeps their history.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from multisig_escrow.domain.models import ConfigurationParams, RequestSnapshot

# JSONB on PostgreSQL, plain JSON everywhere else (SQLite in tests).
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# ---------------------------------------------------------------------------
# 1. vaults
# ---------------------------------------------------------------------------
class Vault(Base):
    """A jointly custodied vault and its immutable configuration."""

    __tablename__ = "vaults"

    # --- Primary Key ---
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # --- Configuration (immutable after init) ---
    timeout_ms: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="Lifetime of every request in milliseconds",
    )
    signers: Mapped[list[str]] = mapped_column(
        JSONType,
        nullable=False,
        comment="Sorted list of signer account addresses",
    )
    min_signers_required: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Distinct approvals needed to execute a request",
    )

    # --- Financials ---
    held_balance: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        comment="Funds held by the vault, in the smallest currency unit",
    )

    # --- Timestamps ---
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    __table_args__ = (
        CheckConstraint("held_balance >= 0", name="ck_vault_non_negative_balance"),
        CheckConstraint("timeout_ms >= 0", name="ck_vault_non_negative_timeout"),
        CheckConstraint("min_signers_required >= 1", name="ck_vault_positive_quorum"),
    )

    @property
    def params(self) -> ConfigurationParams:
        """Configuration as a domain value (already validated at init)."""
        return ConfigurationParams(
            timeout_ms=self.timeout_ms,
            signers=frozenset(self.signers),
            min_signers_required=self.min_signers_required,
        )

    def __repr__(self) -> str:
        return (
            f"<Vault id={self.id} quorum={self.min_signers_required}/"
            f"{len(self.signers)} balance={self.held_balance}>"
        )


# ---------------------------------------------------------------------------
# 2. transfer_requests
# ---------------------------------------------------------------------------
class TransferRequest(Base):
    """A pending proposal to move vault funds to a receiver."""

    __tablename__ = "transfer_requests"

    # --- Composite Primary Key ---
    vault_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("vaults.id", ondelete="CASCADE"),
        primary_key=True,
    )
    request_id: Mapped[int] = mapped_column(
        BigInteger,
        primary_key=True,
        autoincrement=False,
        comment="Proposer-chosen ID, unique among the vault's active requests",
    )

    # --- Transfer ---
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    sender_account: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        comment="Signer who proposed the request (implicitly approves it)",
    )
    receiver_account: Mapped[str] = mapped_column(String(128), nullable=False)

    # --- Approval ---
    approvers: Mapped[list[str]] = mapped_column(
        JSONType,
        nullable=False,
        comment="Sorted list of signers who approved, proposer included",
    )
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="PENDING",
        comment="Lifecycle state (guarded by RequestStateMachine)",
    )

    # --- Timing ---
    created_at_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)
    expiry_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_request_positive_amount"),
        CheckConstraint("request_id >= 0", name="ck_request_non_negative_id"),
        Index("idx_request_expiry", "vault_id", "expiry_ms"),
        Index("idx_request_sender", "vault_id", "sender_account"),
    )

    def to_snapshot(self) -> RequestSnapshot:
        return RequestSnapshot(
            request_id=self.request_id,
            amount=self.amount,
            sender_account=self.sender_account,
            approvers=frozenset(self.approvers),
            receiver_account=self.receiver_account,
            expiry_ms=self.expiry_ms,
            status=self.status,
        )

    def __repr__(self) -> str:
        return (
            f"<TransferRequest vault={self.vault_id} id={self.request_id} "
            f"amount={self.amount} approvals={len(self.approvers)}>"
        )


# ---------------------------------------------------------------------------
# 3. ledger_transfers
# ---------------------------------------------------------------------------
class LedgerTransfer(Base):
    """An outgoing transfer the ledger executed on a vault's behalf."""

    __tablename__ = "ledger_transfers"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    vault_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("vaults.id", ondelete="CASCADE"),
        nullable=False,
    )
    destination: Mapped[str] = mapped_column(String(128), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    tx_hash: Mapped[str] = mapped_column(String(66), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    __table_args__ = (Index("idx_transfer_vault", "vault_id"),)

    def __repr__(self) -> str:
        return f"<LedgerTransfer {self.amount} -> {self.destination} tx={self.tx_hash[:10]}>"


# ---------------------------------------------------------------------------
# 4. vault_events (Append-Only Audit Log)
# ---------------------------------------------------------------------------
class VaultEvent(Base):
    """Immutable audit record of a vault or request state change.

    This table is APPEND-ONLY. No UPDATE or DELETE operations are permitted
    at the application level.
    """

    __tablename__ = "vault_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vault_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("vaults.id", ondelete="CASCADE"),
        nullable=False,
    )
    request_id: Mapped[int | None] = mapped_column(
        BigInteger,
        nullable=True,
        comment="Transfer request ID (null for vault-level events)",
    )
    event_type: Mapped[str] = mapped_column(String(40), nullable=False)
    old_status: Mapped[str | None] = mapped_column(String(16), nullable=True)
    new_status: Mapped[str | None] = mapped_column(String(16), nullable=True)
    actor: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        default="SYSTEM",
        comment="Account that triggered the event, or SYSTEM",
    )
    ledger_time_ms: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    metadata_json: Mapped[dict | None] = mapped_column(
        "metadata",
        JSONType,
        nullable=True,
        default=None,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    __table_args__ = (
        Index("idx_event_vault", "vault_id"),
        Index("idx_event_request", "vault_id", "request_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<VaultEvent id={self.id} type={self.event_type} "
            f"request={self.request_id} {self.old_status}->{self.new_status}>"
        )
