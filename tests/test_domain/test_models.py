"""Tests for the pure domain rules: configuration, expiry, balances, quorum."""

from __future__ import annotations

import pytest

from multisig_escrow.domain.enums import CallerKind
from multisig_escrow.domain.exceptions import (
    AccountsLessThanSupportNeededError,
    BalanceOverflowError,
    IncompleteAccountsError,
    InitParseParamsError,
    TimestampOverflowError,
)
from multisig_escrow.domain.models import (
    MAX_AMOUNT,
    MAX_TIMESTAMP_MS,
    Caller,
    ConfigurationParams,
    RequestSnapshot,
    available_balance,
    compute_expiry,
    credit_balance,
    is_expired,
    quorum_reached,
)


class TestConfigurationParams:
    def test_valid_configuration(self) -> None:
        params = ConfigurationParams.create(
            timeout_ms=100_000, signers=["a", "b", "c"], min_signers_required=2
        )
        assert params.signers == frozenset({"a", "b", "c"})
        assert params.min_signers_required == 2
        assert params.timeout_ms == 100_000

    def test_repeated_signer_is_malformed(self) -> None:
        with pytest.raises(InitParseParamsError) as exc_info:
            ConfigurationParams.create(
                timeout_ms=0, signers=["a", "b", "c", "a"], min_signers_required=3
            )
        assert exc_info.value.code == "PARSE_PARAMS"

    def test_repeated_signer_checked_before_signer_count(self) -> None:
        with pytest.raises(InitParseParamsError):
            ConfigurationParams.create(
                timeout_ms=0, signers=["a", "b", "b"], min_signers_required=2
            )

    def test_signers_accept_any_iterable(self) -> None:
        params = ConfigurationParams.create(
            timeout_ms=0, signers=(s for s in ("a", "b", "c")), min_signers_required=3
        )
        assert params.signers == frozenset({"a", "b", "c"})

    def test_two_signers_is_incomplete(self) -> None:
        with pytest.raises(IncompleteAccountsError) as exc_info:
            ConfigurationParams.create(timeout_ms=0, signers=["a", "b"], min_signers_required=2)
        assert exc_info.value.code == "INCOMPLETE_ACCOUNTS"

    def test_quorum_larger_than_signer_set(self) -> None:
        with pytest.raises(AccountsLessThanSupportNeededError) as exc_info:
            ConfigurationParams.create(
                timeout_ms=0, signers=["a", "b", "c"], min_signers_required=4
            )
        assert exc_info.value.code == "ACCOUNTS_LESS_THAN_SUPPORT_NEEDED"

    def test_quorum_check_runs_before_signer_count(self) -> None:
        with pytest.raises(AccountsLessThanSupportNeededError):
            ConfigurationParams.create(timeout_ms=0, signers=["a"], min_signers_required=2)

    @pytest.mark.parametrize("quorum", [0, -1, 0x10000])
    def test_quorum_out_of_range(self, quorum: int) -> None:
        with pytest.raises(InitParseParamsError):
            ConfigurationParams.create(
                timeout_ms=0, signers=["a", "b", "c"], min_signers_required=quorum
            )

    def test_quorum_lower_bound(self) -> None:
        params = ConfigurationParams.create(
            timeout_ms=0, signers=["a", "b", "c"], min_signers_required=1
        )
        assert params.min_signers_required == 1
        with pytest.raises(InitParseParamsError, match="min_signers_required"):
            ConfigurationParams.create(
                timeout_ms=0, signers=["a", "b", "c"], min_signers_required=0
            )

    def test_negative_timeout(self) -> None:
        with pytest.raises(InitParseParamsError):
            ConfigurationParams.create(
                timeout_ms=-1, signers=["a", "b", "c"], min_signers_required=2
            )

    def test_empty_signer_address(self) -> None:
        with pytest.raises(InitParseParamsError):
            ConfigurationParams.create(
                timeout_ms=0, signers=["a", "b", ""], min_signers_required=2
            )


class TestCaller:
    def test_account(self) -> None:
        caller = Caller.account("alice")
        assert caller.kind is CallerKind.ACCOUNT
        assert caller.is_account is True

    def test_contract(self) -> None:
        assert Caller.contract("dex.near").is_account is False


class TestExpiry:
    def test_live_strictly_before_expiry(self) -> None:
        assert is_expired(100, 99) is False
        assert is_expired(100, 100) is True
        assert is_expired(100, 101) is True

    def test_compute_expiry(self) -> None:
        assert compute_expiry(10, 100) == 110

    def test_compute_expiry_overflow(self) -> None:
        with pytest.raises(TimestampOverflowError) as exc_info:
            compute_expiry(MAX_TIMESTAMP_MS, 1)
        assert exc_info.value.code == "OVERFLOW"

    def test_zero_timeout_expires_immediately(self) -> None:
        assert is_expired(compute_expiry(50, 0), 50) is True

    def test_snapshot_expiry(self) -> None:
        snapshot = RequestSnapshot(
            request_id=1,
            amount=5,
            sender_account="a",
            approvers=frozenset({"a"}),
            receiver_account="d",
            expiry_ms=100,
            status="PENDING",
        )
        assert snapshot.is_expired(99) is False
        assert snapshot.is_expired(100) is True
        assert snapshot.with_status("CANCELLED").status == "CANCELLED"
        assert snapshot.status == "PENDING"


class TestBalances:
    def test_available_subtracts_reservations(self) -> None:
        assert available_balance(attached=0, held_balance=100, reserved=60) == 40

    def test_attached_funds_count(self) -> None:
        assert available_balance(attached=25, held_balance=100, reserved=100) == 25

    def test_credit(self) -> None:
        assert credit_balance(10, 5) == 15

    def test_credit_overflow(self) -> None:
        with pytest.raises(BalanceOverflowError):
            credit_balance(MAX_AMOUNT, 1)


class TestQuorum:
    def test_below_quorum(self) -> None:
        assert quorum_reached({"a"}, 2) is False

    def test_at_quorum(self) -> None:
        assert quorum_reached({"a", "b"}, 2) is True

    def test_counts_distinct_approvers(self) -> None:
        assert quorum_reached(["a", "a"], 2) is False
