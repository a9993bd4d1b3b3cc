#!/usr/bin/env python3
"""
Operator commands for the inventory ledger database.

Subcommands:
  init-db   Create tables and install the append-only triggers.
  stats     Print overview and transaction statistics as JSON.
  verify    Replay every item's ledger and report mismatches.

Usage:
  python3 scripts/ledger_admin.py [--config PATH] [--db-url URL] init-db
  python3 scripts/ledger_admin.py stats
  python3 scripts/ledger_admin.py verify

Settings come from inventory_config (packaged defaults, INVENTORY_CONFIG,
DATABASE_URL).  --db-url overrides the configured database.
"""

import argparse
import json
import sys
from dataclasses import asdict, replace
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Inventory ledger administration")
    p.add_argument("--config", type=Path, default=None, help="YAML settings override file")
    p.add_argument("--db-url", default=None, help="Database URL (overrides settings)")
    sub = p.add_subparsers(dest="command", required=True)
    sub.add_parser("init-db", help="Create tables and install triggers")
    sub.add_parser("stats", help="Print inventory and ledger statistics")
    sub.add_parser("verify", help="Replay the ledger and compare with stored availability")
    return p.parse_args(argv)


def _print_json(payload) -> None:
    print(json.dumps(payload, indent=2, default=str))


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    from inventory_config import get_active_config
    from inventory_config.bridges import build_ledger
    from inventory_kernel.db.engine import create_tables

    settings = get_active_config(args.config)
    if args.db_url:
        settings = replace(settings, database_url=args.db_url)

    try:
        ledger = build_ledger(settings)
    except Exception as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1

    if args.command == "init-db":
        create_tables(install_triggers=True)
        print("  Done. Tables created and append-only triggers installed.")
        return 0

    if args.command == "stats":
        _print_json(
            {
                "overview": asdict(ledger.overview_stats()),
                "transactions": asdict(ledger.transaction_stats()),
            }
        )
        return 0

    result = ledger.verify_ledger()
    _print_json(asdict(result))
    if not result.is_consistent:
        print(f"  {len(result.mismatches)} item(s) disagree with their ledger.", file=sys.stderr)
        return 2
    print(
        f"  Ledger consistent: {result.items_checked} items, "
        f"{result.transactions_replayed} transactions replayed."
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
