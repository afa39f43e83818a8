#!/usr/bin/env python
"""Command-line interface for auditchain."""

import argparse
import asyncio
import csv
import io
import json
import logging
import sys
from pathlib import Path

from dateutil import parser as date_parser

from auditchain import GENESIS_HASH, Ledger, __version__
from auditchain.config import build_ledger, get_settings

logger = logging.getLogger(__name__)

CSV_FIELDS = ["id", "timestamp", "tenant_id", "entity_type", "entity_id", "action", "prev_hash", "hash", "data"]


def main(argv=None):
    """Main CLI entry point."""
    settings = get_settings()

    parser = argparse.ArgumentParser(
        description="auditchain - Tamper-evident audit ledger",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"auditchain {__version__}",
    )
    parser.add_argument("-u", "--url", default=settings.database_url, help="Database URL")
    parser.add_argument("-t", "--table", default=settings.table_name, help="Ledger table name")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Verify command
    verify_parser = subparsers.add_parser("verify", help="Verify an entity's hash chain")
    _add_entity_arguments(verify_parser)

    # History command
    history_parser = subparsers.add_parser("history", help="Export an entity's history")
    _add_entity_arguments(history_parser)
    history_parser.add_argument("-o", "--output", help="Output file (default: stdout)")
    history_parser.add_argument("-f", "--format", default="json", choices=["json", "csv"], help="Export format")

    # Tip command
    tip_parser = subparsers.add_parser("tip", help="Print the hash to use as the next prev_hash")
    _add_entity_arguments(tip_parser)

    # Query command
    query_parser = subparsers.add_parser("query", help="List a tenant's entries, newest first")
    query_parser.add_argument("tenant_id", help="Tenant identifier")
    query_parser.add_argument("--entity-type", help="Filter by entity type")
    query_parser.add_argument("--entity-id", help="Filter by entity id")
    query_parser.add_argument("--action", help="Filter by action")
    query_parser.add_argument("--since", help="Only entries at or after this time (ISO 8601)")
    query_parser.add_argument("--until", help="Only entries at or before this time (ISO 8601)")
    query_parser.add_argument("--limit", type=int, default=100, help="Maximum entries (capped at 500)")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        ledger = build_ledger(settings.model_copy(update={
            "database_url": args.url,
            "table_name": args.table,
        }))
        return asyncio.run(_dispatch(ledger, args))
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


def _add_entity_arguments(subparser):
    subparser.add_argument("entity_type", help="Entity type, e.g. work_order")
    subparser.add_argument("entity_id", help="Entity identifier")


async def _dispatch(ledger: Ledger, args) -> int:
    async with ledger:
        if args.command == "verify":
            return await _verify(ledger, args)
        elif args.command == "history":
            return await _history(ledger, args)
        elif args.command == "tip":
            tip = await ledger.latest(args.entity_type, args.entity_id)
            print(tip.hash if tip else GENESIS_HASH)
            return 0
        elif args.command == "query":
            return await _query(ledger, args)
    return 1


async def _verify(ledger: Ledger, args) -> int:
    print(f"Verifying {args.entity_type}/{args.entity_id}...")
    report = await ledger.verify_chain(args.entity_type, args.entity_id)
    if report.valid:
        print(f"✓ Chain intact ({report.total_entries} entries)")
        return 0

    print(f"✗ Chain broken at entry {report.broken_at}: {report.reason}")
    print(f"  expected: {report.expected_hash}")
    print(f"  actual:   {report.actual_hash}")
    return 1


async def _history(ledger: Ledger, args) -> int:
    entries = await ledger.get_history(args.entity_type, args.entity_id)

    if args.format == "json":
        output = json.dumps([e.to_dict() for e in entries], indent=2)
    else:
        output_buffer = io.StringIO()
        writer = csv.DictWriter(output_buffer, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for entry in entries:
            row = entry.to_dict()
            row["data"] = json.dumps(row["data"], sort_keys=True)
            writer.writerow({k: row.get(k) for k in CSV_FIELDS})
        output = output_buffer.getvalue()

    if args.output:
        Path(args.output).write_text(output)
        print(f"Exported {len(entries)} entries to {args.output}")
    else:
        print(output)
    return 0


async def _query(ledger: Ledger, args) -> int:
    entries = await ledger.query(
        args.tenant_id,
        entity_type=args.entity_type,
        entity_id=args.entity_id,
        action=args.action,
        date_from=date_parser.isoparse(args.since) if args.since else None,
        date_to=date_parser.isoparse(args.until) if args.until else None,
        limit=args.limit,
    )
    for entry in entries:
        print(
            f"{entry.timestamp.isoformat()}  {entry.entity_type}/{entry.entity_id}  "
            f"{entry.action:<14} {entry.hash[:16]}"
        )
    print(f"{len(entries)} entries")
    return 0


if __name__ == "__main__":
    sys.exit(main())
