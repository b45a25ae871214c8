"""Tests for the AuthorizationGuard."""

from __future__ import annotations

import pytest

from multisig_escrow.domain.authorization import AuthorizationGuard
from multisig_escrow.domain.exceptions import NotRegisteredAccountError, NotUserAccountError
from multisig_escrow.domain.models import Caller

SIGNERS = frozenset({"alice.near", "bob.near", "carol.near"})


class TestAuthorizationGuard:
    def test_signer_account_is_admitted(self) -> None:
        guard = AuthorizationGuard(SIGNERS)
        assert guard.authorize(Caller.account("bob.near")) == "bob.near"

    def test_unknown_account_is_rejected(self) -> None:
        guard = AuthorizationGuard(SIGNERS)
        with pytest.raises(NotRegisteredAccountError) as exc_info:
            guard.authorize(Caller.account("mallory.near"))
        assert exc_info.value.code == "NOT_REGISTERED_ACCOUNT"

    def test_contract_is_rejected_even_with_signer_address(self) -> None:
        guard = AuthorizationGuard(SIGNERS)
        with pytest.raises(NotUserAccountError) as exc_info:
            guard.authorize(Caller.contract("alice.near"))
        assert exc_info.value.code == "NOT_USER_ACCOUNT"
