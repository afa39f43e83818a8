"""auditchain - Tamper-evident audit ledger.

Append-only, hash-chained audit trail for entity mutations in multi-tenant
applications. Each audited entity owns its own chain, and any modification,
deletion or reordering of stored entries is detectable with ``verify``.
"""

from auditchain.core.ledger import Ledger
from auditchain.core.entry import ChainReport, LedgerEntry, NewLedgerEntry
from auditchain.core.exceptions import (
    AuditChainError,
    ChainConflictError,
    DeserializationError,
    StorageError,
    ValidationError,
)
from auditchain.crypto.hashing import GENESIS_HASH, HashChain
from auditchain.backends import LedgerStore, InMemoryLedgerStore

__version__ = "1.0.0"

__all__ = [
    "Ledger",
    "LedgerEntry",
    "NewLedgerEntry",
    "ChainReport",
    "HashChain",
    "GENESIS_HASH",
    "LedgerStore",
    "InMemoryLedgerStore",
    "AuditChainError",
    "ChainConflictError",
    "DeserializationError",
    "StorageError",
    "ValidationError",
]
