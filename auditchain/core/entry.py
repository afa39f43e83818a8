"""Ledger entry models for auditchain."""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from ..crypto.hashing import GENESIS_HASH


class NewLedgerEntry(BaseModel):
    """Caller-supplied part of an entry; the ledger adds id, hash and timestamp."""

    tenant_id: str
    entity_type: str
    entity_id: str
    action: str
    data: Dict[str, Any] = Field(default_factory=dict)
    prev_hash: str = GENESIS_HASH

    @field_validator("tenant_id", "entity_type", "entity_id", "action")
    @classmethod
    def validate_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v

    @field_validator("prev_hash", mode="before")
    @classmethod
    def validate_prev_hash(cls, v):
        """A missing predecessor is stored as the sentinel."""
        return GENESIS_HASH if v is None else v


class LedgerEntry(BaseModel):
    """Immutable ledger entry."""

    model_config = {"frozen": True}

    id: str
    tenant_id: str
    entity_type: str
    entity_id: str
    action: str
    data: Dict[str, Any]
    prev_hash: str = GENESIS_HASH
    hash: str
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v):
        """Naive timestamps coming back from the store are UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def is_genesis(self) -> bool:
        return self.prev_hash == GENESIS_HASH

    def to_dict(self) -> Dict[str, Any]:
        """Convert entry to dictionary."""
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action,
            "data": self.data,
            "prev_hash": self.prev_hash,
            "hash": self.hash,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_json(self) -> str:
        """Convert entry to JSON string."""
        return json.dumps(self.to_dict(), sort_keys=True)


class ChainReport(BaseModel):
    """Outcome of walking one entity's chain."""

    entity_type: str
    entity_id: str
    valid: bool
    total_entries: int = 0
    broken_at: Optional[str] = None
    reason: Optional[str] = None
    expected_hash: Optional[str] = None
    actual_hash: Optional[str] = None
