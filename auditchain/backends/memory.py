"""In-memory storage backend for auditchain."""

from datetime import datetime
from typing import List, Optional
import threading

from .base import LedgerStore, Row


class InMemoryLedgerStore(LedgerStore):
    """Simple in-memory storage backend for testing and development."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._rows: List[Row] = []
        self._lock = threading.RLock()

    async def insert(self, row: Row) -> Row:
        """Append a row to memory storage."""
        with self._lock:
            if self.guard_forks:
                self._check_tip(self._tip(row["entity_type"], row["entity_id"]), row)
            stored = self._stamp(row)
            self._rows.append(stored)
            return dict(stored)

    async def select_by_entity(self, entity_type: str, entity_id: str) -> List[Row]:
        with self._lock:
            return [dict(row) for row in self._ordered(entity_type, entity_id)]

    async def select_tip(self, entity_type: str, entity_id: str) -> Optional[Row]:
        with self._lock:
            tip = self._tip(entity_type, entity_id)
            return dict(tip) if tip else None

    async def select_by_tenant(
        self,
        tenant_id: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        action: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[Row]:
        with self._lock:
            # Newest first; insertion order breaks timestamp ties.
            indexed = sorted(
                enumerate(self._rows),
                key=lambda pair: (pair[1]["created_at"], pair[0]),
                reverse=True,
            )
            results = []
            for _, row in indexed:
                if row["tenant_id"] != tenant_id:
                    continue
                if entity_type and row["entity_type"] != entity_type:
                    continue
                if entity_id and row["entity_id"] != entity_id:
                    continue
                if action and row["action"] != action:
                    continue
                if date_from and row["created_at"] < date_from:
                    continue
                if date_to and row["created_at"] > date_to:
                    continue
                results.append(dict(row))
                if limit and len(results) >= limit:
                    break
            return results

    def clear(self) -> None:
        """Clear all rows (for testing)."""
        with self._lock:
            self._rows.clear()

    def _ordered(self, entity_type: str, entity_id: str) -> List[Row]:
        matching = [
            (index, row) for index, row in enumerate(self._rows)
            if row["entity_type"] == entity_type and row["entity_id"] == entity_id
        ]
        matching.sort(key=lambda pair: (pair[1]["created_at"], pair[0]))
        return [row for _, row in matching]

    def _tip(self, entity_type: str, entity_id: str) -> Optional[Row]:
        rows = self._ordered(entity_type, entity_id)
        return rows[-1] if rows else None
