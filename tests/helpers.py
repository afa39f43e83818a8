"""Chain-building helpers shared by the ledger tests."""

from datetime import datetime, timedelta, timezone

from auditchain import GENESIS_HASH

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


class TickingClock:
    """Clock that advances one second on every read."""

    def __init__(self, start=T0, step=timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self):
        current = self.now
        self.now += self.step
        return current


def new_entry(prev_hash=GENESIS_HASH, **overrides):
    entry = {
        "tenant_id": "tenant-1",
        "entity_type": "work_order",
        "entity_id": "wo-1",
        "action": "update",
        "data": {"status": "pending"},
        "prev_hash": prev_hash,
    }
    entry.update(overrides)
    return entry


async def build_chain(ledger, statuses, **overrides):
    """Append one entry per status, each linked to the previous one."""
    entries = []
    prev_hash = GENESIS_HASH
    for status in statuses:
        entry = await ledger.append(new_entry(prev_hash, data={"status": status}, **overrides))
        entries.append(entry)
        prev_hash = entry.hash
    return entries
