"""Storage port for auditchain ledgers."""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from ..core.exceptions import ChainConflictError
from ..crypto.hashing import GENESIS_HASH

Row = Dict[str, Any]

COLUMNS = (
    "id",
    "tenant_id",
    "entity_type",
    "entity_id",
    "action",
    "data",
    "prev_hash",
    "hash",
    "created_at",
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LedgerStore(ABC):
    """Abstract base class for ledger storage backends.

    Stores work on plain rows keyed by ``COLUMNS``. The ``data`` column holds
    the serialized payload text exactly as it was hashed; decoding it is the
    ledger's job. Stores assign ``id`` and ``created_at`` on insert.

    With ``guard_forks`` enabled, ``insert`` only succeeds when the supplied
    ``prev_hash`` matches the entity's current chain tip, and raises
    ``ChainConflictError`` otherwise.
    """

    def __init__(
        self,
        guard_forks: bool = False,
        clock: Optional[Callable[[], datetime]] = None,
        **kwargs
    ):
        self.name = self.__class__.__name__
        self.guard_forks = guard_forks
        self._clock = clock or utcnow
        self._config = kwargs

    @abstractmethod
    async def insert(self, row: Row) -> Row:
        """Persist a new row.

        Args:
            row: Row without ``id`` and ``created_at``

        Returns:
            The stored row, including store-assigned fields

        Raises:
            StorageError: If the write fails
            ChainConflictError: If the fork guard rejects the row
        """

    @abstractmethod
    async def select_by_entity(self, entity_type: str, entity_id: str) -> List[Row]:
        """Get every row of one entity, oldest first."""

    @abstractmethod
    async def select_tip(self, entity_type: str, entity_id: str) -> Optional[Row]:
        """Get the newest row of one entity."""

    @abstractmethod
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
        """Get rows of one tenant, newest first."""

    async def close(self) -> None:
        """Close storage connection."""
        pass

    def _stamp(self, row: Row) -> Row:
        """Return a copy of ``row`` with store-assigned fields."""
        stored = {column: row.get(column) for column in COLUMNS}
        stored["id"] = str(uuid.uuid4())
        stored["created_at"] = self._clock()
        stored["prev_hash"] = row.get("prev_hash") or GENESIS_HASH
        return stored

    def _check_tip(self, tip: Optional[Row], row: Row) -> None:
        """Reject a row whose prev_hash is not the current chain tip."""
        expected = tip["hash"] if tip else GENESIS_HASH
        actual = row.get("prev_hash") or GENESIS_HASH
        if actual != expected:
            raise ChainConflictError(
                row["entity_type"],
                row["entity_id"],
                expected,
                actual,
                self.name,
            )
