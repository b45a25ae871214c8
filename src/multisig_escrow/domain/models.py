"""Plain domain values and the pure rules that operate on them.

Everything here is framework-free: the services load ORM rows, convert them
to these values where a rule needs them, and persist the outcome.

Time is ledger slot time, in integer milliseconds since the Unix epoch.
Amounts are integers in the smallest currency unit.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable
from dataclasses import dataclass

from multisig_escrow.domain.enums import CallerKind
from multisig_escrow.domain.exceptions import (
    AccountsLessThanSupportNeededError,
    BalanceOverflowError,
    IncompleteAccountsError,
    InitParseParamsError,
    TimestampOverflowError,
)

MIN_SIGNERS = 3
# The signer set is size-prefixed with two bytes; the quorum is a u16.
MAX_SIGNERS = 0xFFFF
MAX_QUORUM = 0xFFFF
# Request IDs, amounts and timestamps are stored in signed 64-bit columns.
MAX_REQUEST_ID = 2**63 - 1
MAX_AMOUNT = 2**63 - 1
MAX_TIMESTAMP_MS = 2**63 - 1


@dataclass(frozen=True)
class Caller:
    """The sender of an action as reported by the host.

    A closed variant: `kind` is either an individual account or another
    programmable entity (contract). Only accounts may act on a vault.
    """

    kind: CallerKind
    address: str

    @classmethod
    def account(cls, address: str) -> Caller:
        return cls(kind=CallerKind.ACCOUNT, address=address)

    @classmethod
    def contract(cls, address: str) -> Caller:
        return cls(kind=CallerKind.CONTRACT, address=address)

    @property
    def is_account(self) -> bool:
        return self.kind is CallerKind.ACCOUNT


@dataclass(frozen=True)
class ConfigurationParams:
    """Immutable vault parameters, fixed at initialization.

    Attributes:
        timeout_ms: Lifetime of every request, from proposal to expiry.
        signers: Accounts allowed to propose, approve and cancel.
        min_signers_required: Distinct approvals needed to execute a request.
    """

    timeout_ms: int
    signers: frozenset[str]
    min_signers_required: int

    @classmethod
    def create(
        cls,
        timeout_ms: int,
        signers: Iterable[str],
        min_signers_required: int,
    ) -> ConfigurationParams:
        """Build and validate parameters, raising the initialization errors.

        The quorum bound is checked before the signer count. A signer list
        with repeated entries is not a set and fails to parse.
        """
        signer_list = list(signers)
        signer_set = frozenset(signer_list)
        if len(signer_set) != len(signer_list):
            raise InitParseParamsError("signers must not repeat")
        if timeout_ms < 0 or timeout_ms > MAX_TIMESTAMP_MS:
            raise InitParseParamsError(f"timeout out of range: {timeout_ms}")
        if not 1 <= min_signers_required <= MAX_QUORUM:
            raise InitParseParamsError(
                f"min_signers_required out of range: {min_signers_required}"
            )
        if len(signer_set) > MAX_SIGNERS:
            raise InitParseParamsError(f"too many signers: {len(signer_set)}")
        if any(not s for s in signer_set):
            raise InitParseParamsError("signer addresses must be non-empty")

        if min_signers_required > len(signer_set):
            raise AccountsLessThanSupportNeededError(min_signers_required, len(signer_set))
        if len(signer_set) < MIN_SIGNERS:
            raise IncompleteAccountsError(len(signer_set))

        return cls(
            timeout_ms=timeout_ms,
            signers=signer_set,
            min_signers_required=min_signers_required,
        )


@dataclass(frozen=True)
class RequestSnapshot:
    """Read-only copy of an active transfer request."""

    request_id: int
    amount: int
    sender_account: str
    approvers: frozenset[str]
    receiver_account: str
    expiry_ms: int
    status: str

    def is_expired(self, now_ms: int) -> bool:
        return is_expired(self.expiry_ms, now_ms)

    def with_status(self, status: str) -> RequestSnapshot:
        return dataclasses.replace(self, status=str(status))


def is_expired(expiry_ms: int, now_ms: int) -> bool:
    """A request is live strictly before its expiry timestamp."""
    return expiry_ms <= now_ms


def compute_expiry(now_ms: int, timeout_ms: int) -> int:
    """Return `now + timeout`, refusing results outside the timestamp range."""
    expiry_ms = now_ms + timeout_ms
    if expiry_ms > MAX_TIMESTAMP_MS:
        raise TimestampOverflowError(now_ms, timeout_ms)
    return expiry_ms


def available_balance(attached: int, held_balance: int, reserved: int) -> int:
    """Funds a new request may claim: attached + held minus what is reserved."""
    return attached + held_balance - reserved


def credit_balance(held_balance: int, credit: int) -> int:
    """Add a non-negative credit to the held balance."""
    balance = held_balance + credit
    if balance > MAX_AMOUNT:
        raise BalanceOverflowError(held_balance, credit)
    return balance


def quorum_reached(approvers: Iterable[str], min_signers_required: int) -> bool:
    return len(frozenset(approvers)) >= min_signers_required
