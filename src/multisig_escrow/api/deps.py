"""FastAPI dependency injection providers.

These are used with Depends() in route handlers to inject database sessions,
the caller identity, the ledger clock, the transfer primitive and
configuration.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from multisig_escrow.config import Settings, get_settings
from multisig_escrow.domain.enums import CallerKind
from multisig_escrow.domain.models import Caller
from multisig_escrow.infrastructure.clock import Clock, SystemClock
from multisig_escrow.infrastructure.database.engine import get_async_session
from multisig_escrow.services.ledger_service import SimulatedLedger

_system_clock = SystemClock()


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session for a request."""
    async for session in get_async_session():
        yield session


def get_caller(
    address: str = Header(..., alias="X-Caller-Address", min_length=1, max_length=128),
    kind: CallerKind = Header(CallerKind.ACCOUNT, alias="X-Caller-Kind"),
) -> Caller:
    """Identify who is acting, as reported by the host."""
    return Caller(kind=kind, address=address)


def get_clock() -> Clock:
    """Provide the ledger clock."""
    return _system_clock


def get_app_settings() -> Settings:
    """Provide the application settings."""
    return get_settings()


def get_ledger(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> SimulatedLedger:
    """Provide the transfer primitive bound to the current session."""
    return SimulatedLedger(session, known_accounts=settings.ledger_known_account_set)
