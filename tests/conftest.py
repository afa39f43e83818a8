"""Shared fixtures for auditchain tests."""

import pytest

from auditchain import InMemoryLedgerStore, Ledger
from auditchain.backends.sql import SQLLedgerStore

from helpers import TickingClock


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def store(clock):
    return InMemoryLedgerStore(clock=clock)


@pytest.fixture
def guarded_store(clock):
    return InMemoryLedgerStore(guard_forks=True, clock=clock)


@pytest.fixture
def ledger(store):
    return Ledger(store)


@pytest.fixture
def sqlite_url(tmp_path):
    return f"sqlite:///{tmp_path / 'ledger.db'}"


@pytest.fixture
def sql_store(sqlite_url, clock):
    store = SQLLedgerStore(sqlite_url, clock=clock)
    yield store
    store.engine.dispose()


@pytest.fixture
def sql_ledger(sql_store):
    return Ledger(sql_store)
