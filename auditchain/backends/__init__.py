"""Storage backend implementations for auditchain."""

from .base import LedgerStore
from .memory import InMemoryLedgerStore


# Lazy import keeps SQLAlchemy out of in-memory use
def __getattr__(name):
    if name == 'SQLLedgerStore':
        from .sql import SQLLedgerStore
        return SQLLedgerStore
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
    'LedgerStore',
    'InMemoryLedgerStore',
    'SQLLedgerStore',
]
