#!/usr/bin/env python3
"""Multisig Escrow: End-to-End Simulation.

Replays three scenarios with three signer bots (A, B, C) against a vault
with a 2-of-3 quorum and a 100 second timeout. Time is driven by a manual
clock, so expiry is deterministic.

    Scenario 1: Quorum Execution
        - A proposes id=1, 50 -> D at t=0 (expiry t=100)
        - B approves at t=10 -> transfer executes, request removed
        - C approves id=1 -> not found

    Scenario 2: Expiry
        - A proposes id=2 at t=0, nobody approves
        - B approves id=2 at t=150 -> TimedOut (still stored)
        - A proposes id=3 at t=150 -> pruning removes id=2
        - B approves id=2 again -> not found

    Scenario 3: Rollback and Cancel
        - The ledger only knows account D
        - A proposes id=4 to an unknown account, B approves -> InvalidRecipient,
          nothing changes
        - A cancels id=4; the reservation is released

Usage:
    # SQLite in-memory (default, nothing to run first):
    python simulation.py

    # Against the configured DATABASE_URL (e.g. PostgreSQL):
    python simulation.py --configured-db

    # Run a specific scenario:
    python simulation.py --scenario 2
"""

from __future__ import annotations

import argparse
import asyncio
import uuid
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

# ---------------------------------------------------------------------------
# Configure structured logging BEFORE importing app modules
# ---------------------------------------------------------------------------
from multisig_escrow.logging_config import get_logger, setup_logging

setup_logging(log_level="INFO", json_logs=False)
logger = get_logger("simulation")

from multisig_escrow.domain.exceptions import EscrowError  # noqa: E402
from multisig_escrow.domain.models import Caller, RequestSnapshot  # noqa: E402
from multisig_escrow.infrastructure.clock import ManualClock  # noqa: E402
from multisig_escrow.infrastructure.database.engine import (  # noqa: E402
    _get_engine,
    close_db,
    create_tables,
    make_session_factory,
    session_scope,
)
from multisig_escrow.services import (  # noqa: E402
    ApprovalOutcome,
    CancellationService,
    LifecycleService,
    SimulatedLedger,
    VaultService,
)

SECOND_MS = 1_000
RECEIVER = "dave.near"

# Module-level state
_engine = None
_session_factory = None
_clock = ManualClock()
_known_accounts: frozenset[str] | None = None


# ---------------------------------------------------------------------------
# Database lifecycle helpers
# ---------------------------------------------------------------------------
async def init_database(use_sqlite: bool = True) -> None:
    """Initialize the database engine and create tables."""
    global _engine, _session_factory

    if use_sqlite:
        _engine = create_async_engine(
            "sqlite+aiosqlite:///:memory:",
            poolclass=StaticPool,
        )
        logger.info("database.sqlite_initialized")
    else:
        _engine = _get_engine()
    await create_tables(_engine)
    _session_factory = make_session_factory(_engine)


async def shutdown_database(use_sqlite: bool = True) -> None:
    """Close database connections."""
    global _engine, _session_factory

    if use_sqlite and _engine is not None:
        await _engine.dispose()
    else:
        await close_db()
    _engine = None
    _session_factory = None


# ---------------------------------------------------------------------------
# Signer Bots
# ---------------------------------------------------------------------------
@dataclass
class SignerBot:
    """Simulated signer; every call is one action in its own transaction."""

    address: str

    @property
    def caller(self) -> Caller:
        return Caller.account(self.address)

    async def propose(
        self, vault_id: uuid.UUID, request_id: int, amount: int, receiver: str = RECEIVER
    ) -> RequestSnapshot:
        async with session_scope(_session_factory) as session:
            svc = LifecycleService(session, SimulatedLedger(session, _known_accounts))
            snapshot = await svc.propose(
                vault_id=vault_id,
                caller=self.caller,
                amount=amount,
                receiver_account=receiver,
                request_id=request_id,
                now_ms=_clock.now_ms(),
            )
        print(f"  {self.address} proposed #{request_id}: {amount} -> {receiver}"
              f" (expires t={snapshot.expiry_ms // SECOND_MS}s)")
        return snapshot

    async def approve(
        self, vault_id: uuid.UUID, request_id: int, amount: int, receiver: str = RECEIVER
    ) -> ApprovalOutcome:
        async with session_scope(_session_factory) as session:
            svc = LifecycleService(session, SimulatedLedger(session, _known_accounts))
            outcome = await svc.approve(
                vault_id=vault_id,
                caller=self.caller,
                amount=amount,
                receiver_account=receiver,
                request_id=request_id,
                now_ms=_clock.now_ms(),
            )
        if outcome.executed:
            print(f"  {self.address} approved #{request_id} -> EXECUTED tx={outcome.tx_hash[:18]}...")
        else:
            print(f"  {self.address} approved #{request_id} "
                  f"({len(outcome.request.approvers)} approvals)")
        return outcome

    async def cancel(self, vault_id: uuid.UUID, request_id: int | None = None) -> RequestSnapshot:
        async with session_scope(_session_factory) as session:
            snapshot = await CancellationService(session).cancel(
                vault_id=vault_id,
                caller=self.caller,
                now_ms=_clock.now_ms(),
                request_id=request_id,
            )
        print(f"  {self.address} cancelled #{snapshot.request_id}")
        return snapshot


async def expect_error(action, code: str) -> None:
    """Run an action that must fail with the given error code."""
    try:
        await action
    except EscrowError as exc:
        assert exc.code == code, f"Expected {code}, got {exc.code}"
        print(f"  rejected as expected: [{exc.code}] {exc.message}")
        return
    raise AssertionError(f"Expected {code}, but the action succeeded")


# ---------------------------------------------------------------------------
# Print helpers
# ---------------------------------------------------------------------------
def banner(text: str) -> None:
    """Print a prominent banner."""
    width = 70
    print("\n" + "=" * width)
    print(f"  {text}")
    print("=" * width + "\n")


def section(text: str) -> None:
    """Print a section header."""
    print(f"\n--- [t={_clock.now_ms() // SECOND_MS}s] {text} ---\n")


async def create_vault(initial_deposit: int) -> uuid.UUID:
    _clock.set(0)
    async with session_scope(_session_factory) as session:
        vault = await VaultService(session).initialize(
            timeout_ms=100 * SECOND_MS,
            signers=["alice.near", "bob.near", "carol.near"],
            min_signers_required=2,
            initial_deposit=initial_deposit,
        )
    print(f"  vault {vault.id} created with balance {initial_deposit}")
    return vault.id


async def print_vault(vault_id: uuid.UUID) -> None:
    async with session_scope(_session_factory) as session:
        svc = VaultService(session)
        view = await svc.view(vault_id, _clock.now_ms())
        events = await svc.get_events(vault_id)
    print(f"\n  Balance: held={view.held_balance} reserved={view.reserved_balance}")
    print(f"  Active requests: {[r.request_id for r in view.requests] or 'none'}")
    print("\n  Audit Trail:")
    for i, evt in enumerate(events, 1):
        ref = f" #{evt.request_id}" if evt.request_id is not None else ""
        old = evt.old_status or "-"
        new = evt.new_status or "-"
        print(f"    {i}. [{evt.event_type}]{ref} {old} -> {new} (by {evt.actor})")
    print()


# ===========================================================================
# Scenario 1: Quorum Execution
# ===========================================================================
async def scenario_1_quorum_execution() -> None:
    banner("SCENARIO 1: Quorum Execution: 2 of 3 approve, transfer runs")

    a, b, c = SignerBot("alice.near"), SignerBot("bob.near"), SignerBot("carol.near")
    vault_id = await create_vault(initial_deposit=500)

    section("A proposes #1")
    await a.propose(vault_id, request_id=1, amount=50)

    _clock.advance(10 * SECOND_MS)
    section("B approves #1")
    outcome = await b.approve(vault_id, request_id=1, amount=50)
    assert outcome.executed

    section("C approves #1 after execution")
    await expect_error(c.approve(vault_id, request_id=1, amount=50), "PARSE_PARAMS")

    await print_vault(vault_id)


# ===========================================================================
# Scenario 2: Expiry
# ===========================================================================
async def scenario_2_expiry() -> None:
    banner("SCENARIO 2: Expiry: an unapproved request lapses")

    a, b = SignerBot("alice.near"), SignerBot("bob.near")
    vault_id = await create_vault(initial_deposit=500)

    section("A proposes #2")
    await a.propose(vault_id, request_id=2, amount=50)

    _clock.advance(150 * SECOND_MS)
    section("B approves #2 after expiry, before any pruning")
    await expect_error(b.approve(vault_id, request_id=2, amount=50), "TIMED_OUT")

    section("A proposes #3, which prunes #2")
    await a.propose(vault_id, request_id=3, amount=50)

    section("B approves #2 again")
    await expect_error(b.approve(vault_id, request_id=2, amount=50), "PARSE_PARAMS")

    await print_vault(vault_id)


# ===========================================================================
# Scenario 3: Rollback and Cancel
# ===========================================================================
async def scenario_3_rollback_and_cancel() -> None:
    banner("SCENARIO 3: Rollback and Cancel: failed transfer changes nothing")

    global _known_accounts
    _known_accounts = frozenset({RECEIVER})

    a, b = SignerBot("alice.near"), SignerBot("bob.near")
    vault_id = await create_vault(initial_deposit=500)

    try:
        section("A proposes #4 to an account the ledger does not know")
        await a.propose(vault_id, request_id=4, amount=80, receiver="nobody.near")

        section("B approves #4; the transfer fails and the action rolls back")
        await expect_error(
            b.approve(vault_id, request_id=4, amount=80, receiver="nobody.near"),
            "INVALID_RECIPIENT",
        )
        await print_vault(vault_id)

        section("A cancels their request")
        await a.cancel(vault_id)
        await print_vault(vault_id)
    finally:
        _known_accounts = None


# ===========================================================================
# Main
# ===========================================================================
SCENARIOS = {
    1: scenario_1_quorum_execution,
    2: scenario_2_expiry,
    3: scenario_3_rollback_and_cancel,
}


async def run(scenario: int = 0, use_sqlite: bool = True) -> None:
    """Run one scenario, or all of them when `scenario` is 0."""
    await init_database(use_sqlite=use_sqlite)

    try:
        if scenario == 0:
            for fn in SCENARIOS.values():
                await fn()
            print("\n" + "=" * 70)
            print("  ALL SCENARIOS COMPLETED SUCCESSFULLY")
            print("=" * 70 + "\n")
        elif scenario in SCENARIOS:
            await SCENARIOS[scenario]()
        else:
            print(f"Unknown scenario {scenario}. Available: 1, 2, 3")
    finally:
        await shutdown_database(use_sqlite=use_sqlite)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Multisig Escrow Simulation")
    parser.add_argument(
        "--scenario",
        type=int,
        default=0,
        help="Run a specific scenario (1, 2, or 3). Default: run all.",
    )
    parser.add_argument(
        "--configured-db",
        action="store_true",
        help="Use the configured DATABASE_URL instead of SQLite in-memory.",
    )
    args = parser.parse_args()

    asyncio.run(run(args.scenario, use_sqlite=not args.configured_db))
