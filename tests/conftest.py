"""Shared test fixtures for the Multisig Escrow test suite.

Provides:
    - An in-memory SQLite database (aiosqlite) per test
    - A session factory and a committed 2-of-3 vault to act on
    - A manual ledger clock
    - Async test support via pytest-asyncio
"""

from __future__ import annotations

import uuid

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from multisig_escrow.domain.models import Caller
from multisig_escrow.infrastructure.clock import ManualClock
from multisig_escrow.infrastructure.database.engine import (
    create_tables,
    make_session_factory,
    session_scope,
)
from multisig_escrow.services.vault_service import VaultService

ALICE = "alice.near"
BOB = "bob.near"
CAROL = "carol.near"
DAVE = "dave.near"
SIGNERS = (ALICE, BOB, CAROL)

TIMEOUT_MS = 100_000
INITIAL_DEPOSIT = 1_000


# ---------------------------------------------------------------------------
# Database Fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def engine():
    """A fresh in-memory database with the schema created."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest_asyncio.fixture
async def vault_id(session_factory) -> uuid.UUID:
    """A committed vault: signers A/B/C, quorum 2, 100s timeout, balance 1000."""
    async with session_scope(session_factory) as session:
        vault = await VaultService(session).initialize(
            timeout_ms=TIMEOUT_MS,
            signers=SIGNERS,
            min_signers_required=2,
            initial_deposit=INITIAL_DEPOSIT,
        )
    return vault.id


# ---------------------------------------------------------------------------
# Domain Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(start_ms=0)


@pytest.fixture
def alice() -> Caller:
    return Caller.account(ALICE)


@pytest.fixture
def bob() -> Caller:
    return Caller.account(BOB)


@pytest.fixture
def carol() -> Caller:
    return Caller.account(CAROL)
