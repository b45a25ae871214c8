"""Tests for ExpiryPruner."""

from __future__ import annotations

import pytest

from multisig_escrow.domain.enums import EventType
from multisig_escrow.infrastructure.database.engine import session_scope
from multisig_escrow.infrastructure.database.repositories import (
    EventRepository,
    RequestRepository,
)
from multisig_escrow.services.ledger_service import SimulatedLedger
from multisig_escrow.services.lifecycle_service import LifecycleService
from multisig_escrow.services.pruning_service import ExpiryPruner

TIMEOUT_MS = 100_000


async def _seed(session_factory, vault_id, caller, proposals) -> None:
    """Propose each (request_id, amount, now_ms) in its own transaction."""
    for request_id, amount, now_ms in proposals:
        async with session_scope(session_factory) as session:
            await LifecycleService(session, SimulatedLedger(session)).propose(
                vault_id=vault_id,
                caller=caller,
                amount=amount,
                receiver_account="dave.near",
                request_id=request_id,
                now_ms=now_ms,
            )


class TestExpiryPruner:
    @pytest.mark.asyncio
    async def test_removes_only_expired(self, session_factory, vault_id, alice) -> None:
        await _seed(session_factory, vault_id, alice, [(1, 10, 0), (3, 30, 0), (2, 20, 50_000)])

        async with session_scope(session_factory) as session:
            reserved = await ExpiryPruner(session).prune(vault_id, now_ms=TIMEOUT_MS)

        assert reserved == 20
        async with session_factory() as session:
            stored = await RequestRepository(session).list_for_vault(vault_id)
        assert [r.request_id for r in stored] == [2]

    @pytest.mark.asyncio
    async def test_expiry_boundary(self, session_factory, vault_id, alice) -> None:
        await _seed(session_factory, vault_id, alice, [(1, 10, 0)])

        async with session_scope(session_factory) as session:
            assert await ExpiryPruner(session).prune(vault_id, now_ms=TIMEOUT_MS - 1) == 10
        async with session_scope(session_factory) as session:
            assert await ExpiryPruner(session).prune(vault_id, now_ms=TIMEOUT_MS) == 0

    @pytest.mark.asyncio
    async def test_is_idempotent(self, session_factory, vault_id, alice) -> None:
        await _seed(session_factory, vault_id, alice, [(1, 10, 0), (2, 20, 60_000)])

        async with session_scope(session_factory) as session:
            pruner = ExpiryPruner(session)
            first = await pruner.prune(vault_id, now_ms=TIMEOUT_MS)
            second = await pruner.prune(vault_id, now_ms=TIMEOUT_MS)

        assert first == second == 20

    @pytest.mark.asyncio
    async def test_records_expired_events(self, session_factory, vault_id, alice) -> None:
        await _seed(session_factory, vault_id, alice, [(4, 10, 0)])

        async with session_scope(session_factory) as session:
            await ExpiryPruner(session).prune(vault_id, now_ms=TIMEOUT_MS)

        async with session_factory() as session:
            history = await EventRepository(session).get_by_request(vault_id, 4)
        assert [e.event_type for e in history] == [
            EventType.REQUEST_PROPOSED,
            EventType.REQUEST_EXPIRED,
        ]
        assert history[-1].new_status == "EXPIRED"
        assert history[-1].actor == "SYSTEM"
        assert history[-1].metadata_json["expiry_ms"] == TIMEOUT_MS

    @pytest.mark.asyncio
    async def test_empty_store(self, session_factory, vault_id) -> None:
        async with session_scope(session_factory) as session:
            assert await ExpiryPruner(session).prune(vault_id, now_ms=0) == 0
