"""Tests for payload serialization and chain digests."""

import hashlib
from datetime import date, datetime, timezone

import pytest

from auditchain import GENESIS_HASH, HashChain, ValidationError


def sha256(text):
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class TestSerialize:

    def test_compact_json(self):
        assert HashChain().serialize({"status": "pending"}) == '{"status":"pending"}'

    def test_keys_sorted_by_default(self):
        chain = HashChain()
        assert chain.serialize({"b": 1, "a": {"d": 2, "c": 3}}) == '{"a":{"c":3,"d":2},"b":1}'

    def test_insertion_order_kept_without_sorting(self):
        chain = HashChain(sort_keys=False)
        assert chain.serialize({"b": 1, "a": 2}) == '{"b":1,"a":2}'

    def test_non_ascii_kept_verbatim(self):
        assert HashChain().serialize({"customer": "Zoë"}) == '{"customer":"Zoë"}'

    def test_dates_become_iso_strings(self):
        moment = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)
        payload = {"at": moment, "due": date(2026, 3, 2), "parts": ("a", "b")}
        assert HashChain().normalize(payload) == {
            "at": "2026-03-01T09:30:00+00:00",
            "due": "2026-03-02",
            "parts": ["a", "b"],
        }

    def test_numeric_keys_become_strings(self):
        assert HashChain().serialize({"bins": {1: "a", 2: "b"}}) == '{"bins":{"1":"a","2":"b"}}'

    def test_colliding_keys_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            HashChain().serialize({"parts": {1: "a", "1": "b"}})
        assert exc_info.value.field == "data"


class TestCalculateHash:

    def test_first_entry_digest(self):
        digest = HashChain().calculate_hash({"status": "pending"}, GENESIS_HASH)
        assert digest == sha256('{"status":"pending"}')

    def test_prev_hash_is_appended(self):
        prev = sha256("previous")
        digest = HashChain().calculate_hash({"status": "in_progress"}, prev)
        assert digest == sha256('{"status":"in_progress"}' + prev)

    def test_none_prev_hash_is_sentinel(self):
        chain = HashChain()
        assert chain.calculate_hash({"a": 1}, None) == chain.calculate_hash({"a": 1}, GENESIS_HASH)

    def test_deterministic(self):
        chain = HashChain()
        data = {"status": "pending", "items": [1, 2, 3]}
        assert chain.calculate_hash(data, "x") == chain.calculate_hash(data, "x")

    def test_key_order_irrelevant_when_sorted(self):
        chain = HashChain()
        assert chain.calculate_hash({"a": 1, "b": 2}, "") == chain.calculate_hash({"b": 2, "a": 1}, "")

    def test_key_order_matters_without_sorting(self):
        chain = HashChain(sort_keys=False)
        assert chain.calculate_hash({"a": 1, "b": 2}, "") != chain.calculate_hash({"b": 2, "a": 1}, "")

    def test_verify_hash(self):
        chain = HashChain()
        digest = chain.calculate_hash({"a": 1}, "")
        assert chain.verify_hash({"a": 1}, "", digest)
        assert not chain.verify_hash({"a": 2}, "", digest)

    def test_sha3_digest_length(self):
        digest = HashChain(algorithm="sha3_256").calculate_hash({"a": 1}, "")
        assert len(digest) == 64
        assert digest != HashChain().calculate_hash({"a": 1}, "")

    def test_unsupported_algorithm(self):
        with pytest.raises(ValueError, match="Unsupported algorithm"):
            HashChain(algorithm="md5")
