"""Cryptographic components for auditchain."""

from .hashing import GENESIS_HASH, HashChain

__all__ = [
    'GENESIS_HASH',
    'HashChain',
]
