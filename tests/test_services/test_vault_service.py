"""Tests for VaultService: initialization, deposits and queries."""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy import func, select

from multisig_escrow.domain.enums import EventType
from multisig_escrow.domain.exceptions import (
    AccountsLessThanSupportNeededError,
    BalanceOverflowError,
    IncompleteAccountsError,
    InitParseParamsError,
    ParseParamsError,
    VaultNotFoundError,
)
from multisig_escrow.domain.models import MAX_AMOUNT, Caller
from multisig_escrow.infrastructure.database.engine import session_scope
from multisig_escrow.infrastructure.database.orm_models import Vault
from multisig_escrow.services.lifecycle_service import LifecycleService
from multisig_escrow.services.ledger_service import SimulatedLedger
from multisig_escrow.services.vault_service import VaultService


async def _count_vaults(session_factory) -> int:
    async with session_factory() as session:
        result = await session.execute(select(func.count()).select_from(Vault))
        return result.scalar_one()


class TestInitialize:
    @pytest.mark.asyncio
    async def test_creates_vault(self, session_factory) -> None:
        async with session_scope(session_factory) as session:
            vault = await VaultService(session).initialize(
                timeout_ms=5_000,
                signers=["carol.near", "alice.near", "bob.near"],
                min_signers_required=3,
                initial_deposit=42,
                created_by="alice.near",
            )

        async with session_factory() as session:
            view = await VaultService(session).view(vault.id, now_ms=0)
            events = await VaultService(session).get_events(vault.id)

        assert view.signers == ("alice.near", "bob.near", "carol.near")
        assert view.min_signers_required == 3
        assert view.timeout_ms == 5_000
        assert view.held_balance == 42
        assert view.requests == ()
        assert [e.event_type for e in events] == [EventType.VAULT_INITIALIZED]
        assert events[0].actor == "alice.near"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("signers", "quorum", "error"),
        [
            (["a", "b"], 2, IncompleteAccountsError),
            (["a", "b", "c"], 4, AccountsLessThanSupportNeededError),
            (["a", "b", "c"], 0, InitParseParamsError),
        ],
    )
    async def test_invalid_configuration_creates_nothing(
        self, session_factory, signers, quorum, error
    ) -> None:
        with pytest.raises(error):
            async with session_scope(session_factory) as session:
                await VaultService(session).initialize(
                    timeout_ms=1_000, signers=signers, min_signers_required=quorum
                )
        assert await _count_vaults(session_factory) == 0

    @pytest.mark.asyncio
    async def test_negative_initial_deposit(self, session_factory) -> None:
        with pytest.raises(InitParseParamsError):
            async with session_scope(session_factory) as session:
                await VaultService(session).initialize(
                    timeout_ms=1_000,
                    signers=["a", "b", "c"],
                    min_signers_required=2,
                    initial_deposit=-1,
                )


class TestDeposit:
    @pytest.mark.asyncio
    async def test_deposit_credits_held_balance(self, session_factory, vault_id) -> None:
        async with session_scope(session_factory) as session:
            await VaultService(session).deposit(vault_id, amount=250, sender="zed.near", now_ms=7)

        async with session_factory() as session:
            svc = VaultService(session)
            vault = await svc.get_vault(vault_id)
            events = await svc.get_events(vault_id)

        assert vault.held_balance == 1_250
        assert events[-1].event_type == EventType.FUNDS_DEPOSITED
        assert events[-1].actor == "zed.near"
        assert events[-1].metadata_json == {"amount": 250, "via": "deposit"}

    @pytest.mark.asyncio
    async def test_zero_deposit_is_allowed(self, session_factory, vault_id) -> None:
        async with session_scope(session_factory) as session:
            vault = await VaultService(session).deposit(vault_id, amount=0, sender="x")
        assert vault.held_balance == 1_000

    @pytest.mark.asyncio
    async def test_negative_deposit(self, session_factory, vault_id) -> None:
        with pytest.raises(ParseParamsError):
            async with session_scope(session_factory) as session:
                await VaultService(session).deposit(vault_id, amount=-5, sender="x")

    @pytest.mark.asyncio
    async def test_overflowing_deposit(self, session_factory, vault_id) -> None:
        with pytest.raises(BalanceOverflowError):
            async with session_scope(session_factory) as session:
                await VaultService(session).deposit(vault_id, amount=MAX_AMOUNT, sender="x")

        async with session_factory() as session:
            vault = await VaultService(session).get_vault(vault_id)
        assert vault.held_balance == 1_000

    @pytest.mark.asyncio
    async def test_unknown_vault(self, session_factory) -> None:
        with pytest.raises(VaultNotFoundError):
            async with session_scope(session_factory) as session:
                await VaultService(session).deposit(uuid.uuid4(), amount=1, sender="x")


class TestView:
    @pytest.mark.asyncio
    async def test_view_lists_only_live_requests(self, session_factory, vault_id) -> None:
        async with session_scope(session_factory) as session:
            svc = LifecycleService(session, SimulatedLedger(session))
            await svc.propose(
                vault_id,
                Caller.account("alice.near"),
                amount=300,
                receiver_account="dave.near",
                request_id=1,
                now_ms=0,
            )

        async with session_factory() as session:
            before = await VaultService(session).view(vault_id, now_ms=99_999)
            after = await VaultService(session).view(vault_id, now_ms=100_000)

        assert [r.request_id for r in before.requests] == [1]
        assert before.reserved_balance == 300
        assert before.free_balance == 700
        assert after.requests == ()
        assert after.reserved_balance == 0

    @pytest.mark.asyncio
    async def test_unknown_vault(self, session_factory) -> None:
        async with session_factory() as session:
            with pytest.raises(VaultNotFoundError):
                await VaultService(session).view(uuid.uuid4(), now_ms=0)
