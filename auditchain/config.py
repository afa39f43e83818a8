"""Settings for auditchain deployments."""

from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.ledger import Ledger
from .crypto.hashing import HashChain


class LedgerSettings(BaseSettings):
    """Ledger settings loaded from ``AUDITCHAIN_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="AUDITCHAIN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage
    database_url: str = "sqlite:///auditchain.db"
    table_name: str = "audit_logs"
    pool_size: int = 5
    max_overflow: int = 10

    # Hashing
    hash_algorithm: str = "sha256"
    sort_keys: bool = True  # False matches hashes written with insertion-ordered keys

    # Reject appends whose prev_hash is not the current chain tip
    guard_forks: bool = False

    # Logging
    log_level: str = "INFO"

    @field_validator("hash_algorithm")
    @classmethod
    def validate_hash_algorithm(cls, v):
        if v not in HashChain.SUPPORTED_ALGORITHMS:
            raise ValueError(f"unsupported hash algorithm {v!r}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        return v.upper()


@lru_cache()
def get_settings() -> LedgerSettings:
    """Get cached settings instance."""
    return LedgerSettings()


def build_ledger(settings: Optional[LedgerSettings] = None) -> Ledger:
    """Create a SQL-backed ledger from settings."""
    from .backends.sql import SQLLedgerStore

    settings = settings or get_settings()
    store = SQLLedgerStore(
        settings.database_url,
        table_name=settings.table_name,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        guard_forks=settings.guard_forks,
    )
    hash_chain = HashChain(algorithm=settings.hash_algorithm, sort_keys=settings.sort_keys)
    return Ledger(store, hash_chain=hash_chain)
