"""Core ledger implementation for auditchain."""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from .entry import ChainReport, LedgerEntry, NewLedgerEntry
from .exceptions import DeserializationError, ValidationError
from ..backends.base import LedgerStore, Row
from ..crypto.hashing import GENESIS_HASH, HashChain

logger = logging.getLogger(__name__)

DEFAULT_QUERY_LIMIT = 100
MAX_QUERY_LIMIT = 500

HASH_MISMATCH = "hash_mismatch"
LINK_MISMATCH = "link_mismatch"


class _EntityLock:
    """Writer lock of one entity plus the number of tasks holding or awaiting it."""

    def __init__(self):
        self.lock = asyncio.Lock()
        self.users = 0


class Ledger:
    """Append-only, hash-chained audit ledger.

    Every ``(entity_type, entity_id)`` pair owns an independent chain in which
    each entry stores the hash of its predecessor. The ledger itself holds no
    state beyond the injected store, so any number of instances may share one
    store.

    ``append`` trusts the caller-supplied ``prev_hash``. Callers that do not
    track chain tips themselves should use ``record``, which looks the tip up
    and serializes writers per entity within this process. Cross-process
    writers need a store created with ``guard_forks=True``.
    """

    def __init__(
        self,
        store: LedgerStore,
        hash_chain: Optional[HashChain] = None,
    ):
        self.store = store
        self.hash_chain = hash_chain or HashChain()
        self._entity_locks: Dict[Tuple[str, str], _EntityLock] = {}

    async def append(self, entry: Union[NewLedgerEntry, Mapping[str, Any]]) -> LedgerEntry:
        """Append a new entry to the ledger.

        Args:
            entry: Entry without id, hash and timestamp

        Returns:
            The stored entry

        Raises:
            ValidationError: If the entry is malformed
            StorageError: If the store rejects or fails the write
        """
        entry = self._coerce(entry)
        serialized = self.hash_chain.serialize(entry.data)
        digest = self.hash_chain.hash_serialized(serialized, entry.prev_hash)

        row = await self.store.insert({
            "tenant_id": entry.tenant_id,
            "entity_type": entry.entity_type,
            "entity_id": entry.entity_id,
            "action": entry.action,
            "data": serialized,
            "prev_hash": entry.prev_hash,
            "hash": digest,
        })

        logger.debug(
            f"Appended {entry.action} to {entry.entity_type}/{entry.entity_id}: {digest[:12]}"
        )
        return self._row_to_entry(row)

    async def get_history(self, entity_type: str, entity_id: str) -> List[LedgerEntry]:
        """Get every entry of an entity, oldest first."""
        rows = await self.store.select_by_entity(entity_type, entity_id)
        return [self._row_to_entry(row) for row in rows]

    async def latest(self, entity_type: str, entity_id: str) -> Optional[LedgerEntry]:
        """Get the chain tip of an entity, if it has any entries."""
        row = await self.store.select_tip(entity_type, entity_id)
        return self._row_to_entry(row) if row else None

    async def record(
        self,
        tenant_id: str,
        entity_type: str,
        entity_id: str,
        action: str,
        data: Optional[Mapping[str, Any]] = None,
    ) -> LedgerEntry:
        """Append an entry linked to the current chain tip."""
        async with self._lock_for(entity_type, entity_id):
            tip = await self.latest(entity_type, entity_id)
            return await self.append({
                "tenant_id": tenant_id,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "action": action,
                "data": dict(data or {}),
                "prev_hash": tip.hash if tip else GENESIS_HASH,
            })

    async def verify(self, entity_type: str, entity_id: str) -> bool:
        """Check the integrity of an entity's chain.

        Returns:
            True if every hash recomputes and every link holds
        """
        report = await self.verify_chain(entity_type, entity_id)
        return report.valid

    async def verify_chain(self, entity_type: str, entity_id: str) -> ChainReport:
        """Walk an entity's chain and report the first break found.

        All stored hashes are recomputed before linkage is checked, so a
        tampered payload is reported as a hash mismatch even when a link
        break appears earlier in the chain.
        """
        entries = await self.get_history(entity_type, entity_id)
        report = ChainReport(
            entity_type=entity_type,
            entity_id=entity_id,
            valid=True,
            total_entries=len(entries),
        )

        for entry in entries:
            expected_hash = self.hash_chain.calculate_hash(entry.data, entry.prev_hash)
            if entry.hash != expected_hash:
                return self._broken(report, entry, HASH_MISMATCH, expected_hash, entry.hash)

        for previous, entry in zip(entries, entries[1:]):
            if entry.prev_hash != previous.hash:
                return self._broken(report, entry, LINK_MISMATCH, previous.hash, entry.prev_hash)

        return report

    async def query(
        self,
        tenant_id: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        action: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[LedgerEntry]:
        """List a tenant's entries, newest first.

        Args:
            tenant_id: Owning tenant
            entity_type: Only this kind of object
            entity_id: Only this object
            action: Only this mutation kind
            date_from: Inclusive lower time bound
            date_to: Inclusive upper time bound
            limit: Maximum number of results, capped at 500

        Returns:
            Matching entries
        """
        if limit is None:
            limit = DEFAULT_QUERY_LIMIT
        if limit < 1:
            raise ValidationError("limit must be positive", "limit", limit)

        rows = await self.store.select_by_tenant(
            tenant_id,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            date_from=_as_utc(date_from),
            date_to=_as_utc(date_to),
            limit=min(limit, MAX_QUERY_LIMIT),
        )
        return [self._row_to_entry(row) for row in rows]

    async def close(self) -> None:
        """Close the underlying store."""
        await self.store.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    def _coerce(self, entry: Union[NewLedgerEntry, Mapping[str, Any]]) -> NewLedgerEntry:
        if isinstance(entry, NewLedgerEntry):
            return entry
        try:
            return NewLedgerEntry(**entry)
        except PydanticValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(part) for part in error["loc"])
            raise ValidationError(
                f"Invalid ledger entry: {field}: {error['msg']}",
                field,
                error.get("input"),
            ) from e

    @asynccontextmanager
    async def _lock_for(self, entity_type: str, entity_id: str):
        """Hold the entity's writer lock; the lock is dropped once unused."""
        key = (entity_type, entity_id)
        slot = self._entity_locks.get(key)
        if slot is None:
            slot = self._entity_locks[key] = _EntityLock()
        slot.users += 1
        try:
            async with slot.lock:
                yield
        finally:
            slot.users -= 1
            if not slot.users:
                del self._entity_locks[key]

    def _broken(
        self,
        report: ChainReport,
        entry: LedgerEntry,
        reason: str,
        expected: str,
        actual: str,
    ) -> ChainReport:
        logger.warning(
            f"Chain {entry.entity_type}/{entry.entity_id} broken at entry {entry.id}: {reason}"
        )
        return report.model_copy(update={
            "valid": False,
            "broken_at": entry.id,
            "reason": reason,
            "expected_hash": expected,
            "actual_hash": actual,
        })

    def _row_to_entry(self, row: Row) -> LedgerEntry:
        """Convert a stored row to an entry, decoding its payload."""
        data = row["data"]
        if isinstance(data, (str, bytes)):
            try:
                data = json.loads(data)
            except ValueError as e:
                raise DeserializationError(
                    f"Stored data of entry {row.get('id')} is not valid JSON: {e}",
                    row.get("id"),
                ) from e
        if not isinstance(data, dict):
            raise DeserializationError(
                f"Stored data of entry {row.get('id')} is not a mapping",
                row.get("id"),
            )

        return LedgerEntry(
            id=str(row["id"]),
            tenant_id=row["tenant_id"],
            entity_type=row["entity_type"],
            entity_id=row["entity_id"],
            action=row["action"],
            data=data,
            prev_hash=row.get("prev_hash") or GENESIS_HASH,
            hash=row["hash"],
            timestamp=row["created_at"],
        )


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive bounds as UTC, matching store timestamps."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
