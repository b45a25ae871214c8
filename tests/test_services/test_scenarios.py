"""End-to-end scenarios: a 2-of-3 vault with a 100 second timeout.

Each step runs as its own action (one transaction), with time supplied by
a manual clock.
"""

from __future__ import annotations

import pytest

from multisig_escrow.domain.exceptions import RequestNotFoundError, TimedOutError
from multisig_escrow.infrastructure.database.engine import session_scope
from multisig_escrow.infrastructure.database.repositories import RequestRepository
from multisig_escrow.services.ledger_service import SimulatedLedger
from multisig_escrow.services.lifecycle_service import LifecycleService
from multisig_escrow.services.vault_service import VaultService

SECOND_MS = 1_000


class Harness:
    """Drives actions against one vault with a shared clock."""

    def __init__(self, session_factory, vault_id, clock) -> None:
        self.session_factory = session_factory
        self.vault_id = vault_id
        self.clock = clock

    async def propose(self, caller, request_id: int, amount: int = 50):
        async with session_scope(self.session_factory) as session:
            return await LifecycleService(session, SimulatedLedger(session)).propose(
                vault_id=self.vault_id,
                caller=caller,
                amount=amount,
                receiver_account="dave.near",
                request_id=request_id,
                now_ms=self.clock.now_ms(),
            )

    async def approve(self, caller, request_id: int, amount: int = 50):
        async with session_scope(self.session_factory) as session:
            return await LifecycleService(session, SimulatedLedger(session)).approve(
                vault_id=self.vault_id,
                caller=caller,
                amount=amount,
                receiver_account="dave.near",
                request_id=request_id,
                now_ms=self.clock.now_ms(),
            )

    async def stored_ids(self) -> list[int]:
        async with self.session_factory() as session:
            requests = await RequestRepository(session).list_for_vault(self.vault_id)
        return [r.request_id for r in requests]


@pytest.fixture
def harness(session_factory, vault_id, clock) -> Harness:
    return Harness(session_factory, vault_id, clock)


class TestQuorumScenario:
    @pytest.mark.asyncio
    async def test_second_approval_executes(self, harness, alice, bob, carol) -> None:
        snapshot = await harness.propose(alice, request_id=1)
        assert snapshot.expiry_ms == 100 * SECOND_MS
        assert await harness.stored_ids() == [1]

        harness.clock.set(10 * SECOND_MS)
        outcome = await harness.approve(bob, request_id=1)
        assert outcome.executed is True
        assert await harness.stored_ids() == []

        async with harness.session_factory() as session:
            transfers = await VaultService(session).get_transfers(harness.vault_id)
        assert [(t.destination, t.amount) for t in transfers] == [("dave.near", 50)]

        with pytest.raises(RequestNotFoundError):
            await harness.approve(carol, request_id=1)


class TestExpiryScenario:
    @pytest.mark.asyncio
    async def test_timed_out_until_pruned_then_not_found(self, harness, alice, bob) -> None:
        await harness.propose(alice, request_id=2)

        harness.clock.set(150 * SECOND_MS)
        with pytest.raises(TimedOutError):
            await harness.approve(bob, request_id=2)
        # Still stored: nothing has pruned yet.
        assert await harness.stored_ids() == [2]

        await harness.propose(alice, request_id=3)
        assert await harness.stored_ids() == [3]

        with pytest.raises(RequestNotFoundError):
            await harness.approve(bob, request_id=2)

    @pytest.mark.asyncio
    async def test_live_until_expiry(self, harness, alice, bob) -> None:
        await harness.propose(alice, request_id=2)
        harness.clock.set(100 * SECOND_MS - 1)
        outcome = await harness.approve(bob, request_id=2)
        assert outcome.executed is True
