"""Caller authorization for vault actions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from multisig_escrow.domain.exceptions import (
    NotRegisteredAccountError,
    NotUserAccountError,
)

if TYPE_CHECKING:
    from collections.abc import Collection

    from multisig_escrow.domain.models import Caller


class AuthorizationGuard:
    """Admits individual accounts that belong to the signer set.

    Usage:
        guard = AuthorizationGuard(params.signers)
        account = guard.authorize(Caller.account("alice"))
    """

    def __init__(self, signers: Collection[str]) -> None:
        self._signers = frozenset(signers)

    def authorize(self, caller: Caller) -> str:
        """Return the caller's account address.

        Raises:
            NotUserAccountError: The caller is a contract, not an account.
            NotRegisteredAccountError: The account is not a signer.
        """
        if not caller.is_account:
            raise NotUserAccountError(caller.address)
        if caller.address not in self._signers:
            raise NotRegisteredAccountError(caller.address)
        return caller.address
