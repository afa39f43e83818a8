"""Exception classes for auditchain."""

from typing import Optional, Any


class AuditChainError(Exception):
    """Base exception for all auditchain errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(AuditChainError):
    """Raised when a new entry is malformed."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        details = {"field": field, "value": value}
        super().__init__(message, details)
        self.field = field
        self.value = value


class StorageError(AuditChainError):
    """Raised when storage operations fail."""

    def __init__(self, message: str, operation: str, backend: Optional[str] = None):
        details = {"operation": operation, "backend": backend}
        super().__init__(message, details)
        self.operation = operation
        self.backend = backend


class ChainConflictError(StorageError):
    """Raised by a guarded store when an append would fork a chain."""

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        expected_prev_hash: Optional[str],
        actual_prev_hash: str,
        backend: Optional[str] = None,
    ):
        super().__init__(
            f"Chain tip for {entity_type}/{entity_id} has moved: "
            f"expected prev_hash {expected_prev_hash!r}, got {actual_prev_hash!r}",
            "insert",
            backend,
        )
        self.details.update({
            "entity_type": entity_type,
            "entity_id": entity_id,
            "expected_prev_hash": expected_prev_hash,
            "actual_prev_hash": actual_prev_hash,
        })
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_prev_hash = expected_prev_hash
        self.actual_prev_hash = actual_prev_hash


class DeserializationError(AuditChainError):
    """Raised when a stored payload cannot be decoded."""

    def __init__(self, message: str, entry_id: Optional[str] = None):
        super().__init__(message, {"entry_id": entry_id})
        self.entry_id = entry_id
