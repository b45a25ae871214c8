"""Application configuration via pydantic-settings.

Reads from .env file or environment variables. All settings are validated
at startup, so a malformed value fails fast with a clear error message.

Usage:
    from multisig_escrow.config import get_settings
    settings = get_settings()
    print(settings.database_url)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for the Multisig Escrow service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = True
    app_log_level: str = "DEBUG"
    app_host: str = "0.0.0.0"
    app_port: int = 8000

    # --- Database ---
    # Any async SQLAlchemy URL; "sqlite+aiosqlite:///./escrow.db" works for local runs.
    database_url: str = (
        "postgresql+asyncpg://multisig:multisig_dev"
        "@localhost:5432/multisig_escrow"
    )
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_timeout: int = 30
    db_echo_sql: bool = False

    # --- Ledger ---
    # Comma-separated accounts the simulated ledger accepts as transfer
    # destinations. Empty means every destination exists.
    ledger_known_accounts: str = ""

    # --- Vault Defaults ---
    default_timeout_ms: int = 86_400_000  # 24 hours

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def ledger_known_account_set(self) -> frozenset[str] | None:
        """Parse the comma-separated account list; None when unrestricted."""
        accounts = {a.strip() for a in self.ledger_known_accounts.split(",") if a.strip()}
        return frozenset(accounts) if accounts else None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton of the application settings."""
    return Settings()
