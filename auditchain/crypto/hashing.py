"""Cryptographic hashing for auditchain."""

import hashlib
import json
from datetime import date, datetime
from typing import Any, Dict, Mapping

from ..core.exceptions import ValidationError

GENESIS_HASH = ""


class HashChain:
    """Computes and checks the per-entry digest of an entity hash chain.

    The digest of an entry is ``H(serialize(data) + prev_hash)`` where
    ``serialize`` is a compact JSON encoding of the payload. Keys are sorted
    by default so that logically equal payloads always produce the same
    bytes. ``sort_keys=False`` keeps insertion order instead, which matches
    hashes produced by a plain ``JSON.stringify`` of the same mapping.
    """

    # Only 256-bit digests fit the 64 character hash column.
    SUPPORTED_ALGORITHMS = {
        "sha256": hashlib.sha256,
        "sha3_256": hashlib.sha3_256,
    }

    def __init__(self, algorithm: str = "sha256", sort_keys: bool = True):
        if algorithm not in self.SUPPORTED_ALGORITHMS:
            raise ValueError(
                f"Unsupported algorithm: {algorithm}. "
                f"Supported: {list(self.SUPPORTED_ALGORITHMS.keys())}"
            )

        self.algorithm = algorithm
        self.sort_keys = sort_keys
        self._hash_func = self.SUPPORTED_ALGORITHMS[algorithm]

    def serialize(self, data: Mapping[str, Any]) -> str:
        """Return the canonical text form of a payload."""
        return json.dumps(
            self._prepare_for_hashing(data),
            sort_keys=self.sort_keys,
            separators=(",", ":"),
            ensure_ascii=False,
            default=str,
        )

    def normalize(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Return the payload exactly as it reads back after storage."""
        return json.loads(self.serialize(data))

    def calculate_hash(self, data: Mapping[str, Any], prev_hash: str) -> str:
        """Calculate the digest of a payload linked to its predecessor.

        Args:
            data: Entry payload
            prev_hash: Hash of the previous entry, or the genesis sentinel

        Returns:
            Hex-encoded hash string
        """
        return self.hash_serialized(self.serialize(data), prev_hash)

    def hash_serialized(self, serialized: str, prev_hash: str) -> str:
        """Digest an already serialized payload."""
        hasher = self._hash_func()
        hasher.update((serialized + (prev_hash or GENESIS_HASH)).encode("utf-8"))
        return hasher.hexdigest()

    def verify_hash(self, data: Mapping[str, Any], prev_hash: str, expected_hash: str) -> bool:
        """Check a stored digest against a recomputed one."""
        return self.calculate_hash(data, prev_hash) == expected_hash

    def _prepare_for_hashing(self, data: Any) -> Any:
        """Prepare data for hashing by converting special types."""
        if isinstance(data, (datetime, date)):
            return data.isoformat()
        elif isinstance(data, Mapping):
            prepared = {}
            for k, v in data.items():
                key = str(k)
                if key in prepared:
                    raise ValidationError(
                        f"Payload key {k!r} collides with another key once converted to text",
                        "data",
                        k,
                    )
                prepared[key] = self._prepare_for_hashing(v)
            return prepared
        elif isinstance(data, (list, tuple)):
            return [self._prepare_for_hashing(item) for item in data]
        else:
            return data
