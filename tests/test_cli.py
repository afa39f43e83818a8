"""Tests for the auditchain command-line interface."""

import asyncio
import csv
import json

import pytest

from auditchain import GENESIS_HASH, Ledger
from auditchain.backends.sql import SQLLedgerStore
from auditchain.cli import main

from helpers import build_chain


@pytest.fixture
def populated(sqlite_url, clock):
    """A SQLite ledger holding a three-entry work order chain."""

    async def populate():
        store = SQLLedgerStore(sqlite_url, clock=clock)
        async with Ledger(store) as ledger:
            entries = await build_chain(ledger, ["pending", "in_progress", "done"])
            await ledger.record("tenant-1", "invoice", "inv-1", "create", {"total": 99})
            return entries

    return asyncio.run(populate())


def run(sqlite_url, *args):
    return main(["--url", sqlite_url, "--log-level", "WARNING", *args])


def test_no_command_prints_help(capsys):
    assert main([]) == 1
    assert "usage" in capsys.readouterr().out


def test_verify_intact(sqlite_url, populated, capsys):
    assert run(sqlite_url, "verify", "work_order", "wo-1") == 0
    assert "Chain intact (3 entries)" in capsys.readouterr().out


def test_verify_tampered(sqlite_url, populated, capsys):
    store = SQLLedgerStore(sqlite_url)
    with store.engine.begin() as conn:
        conn.execute(
            store.table.update()
            .where(store.table.c.id == populated[1].id)
            .values(data='{"status":"cancelled"}')
        )
    store.engine.dispose()

    assert run(sqlite_url, "verify", "work_order", "wo-1") == 1

    out = capsys.readouterr().out
    assert f"broken at entry {populated[1].id}: hash_mismatch" in out


def test_tip(sqlite_url, populated, capsys):
    assert run(sqlite_url, "tip", "work_order", "wo-1") == 0
    assert capsys.readouterr().out.strip() == populated[-1].hash


def test_tip_of_new_entity(sqlite_url, populated, capsys):
    assert run(sqlite_url, "tip", "work_order", "wo-404") == 0
    assert capsys.readouterr().out.strip() == GENESIS_HASH


def test_history_json(sqlite_url, populated, tmp_path):
    output = tmp_path / "history.json"

    assert run(sqlite_url, "history", "work_order", "wo-1", "-o", str(output)) == 0

    exported = json.loads(output.read_text())
    assert [e["hash"] for e in exported] == [e.hash for e in populated]
    assert exported[0]["data"] == {"status": "pending"}


def test_history_csv(sqlite_url, populated, tmp_path):
    output = tmp_path / "history.csv"

    assert run(sqlite_url, "history", "work_order", "wo-1", "-f", "csv", "-o", str(output)) == 0

    with output.open(newline="") as fh:
        rows = list(csv.DictReader(fh))
    assert [r["prev_hash"] for r in rows] == [GENESIS_HASH] + [e.hash for e in populated[:-1]]
    assert json.loads(rows[2]["data"]) == {"status": "done"}


def test_query(sqlite_url, populated, capsys):
    assert run(sqlite_url, "query", "tenant-1", "--entity-type", "invoice") == 0

    out = capsys.readouterr().out
    assert "invoice/inv-1" in out
    assert "work_order" not in out
    assert "1 entries" in out


def test_query_since(sqlite_url, populated, capsys):
    # Entries are stamped 09:00:00 through 09:00:03 UTC.
    assert run(sqlite_url, "query", "tenant-1", "--since", "2026-03-01T09:00:02Z") == 0

    assert "2 entries" in capsys.readouterr().out


def test_errors_reported(tmp_path, capsys):
    url = f"sqlite:///{tmp_path / 'missing' / 'ledger.db'}"

    assert run(url, "verify", "work_order", "wo-1") == 1
    assert "Error:" in capsys.readouterr().err
