#!/usr/bin/env python3
"""
Period status from the command line.

Reconciles one ledger for the month containing a date, or applies manual
adjustments to snapshots, and prints the status table.

Usage:
    DATABASE_URL=postgresql://... python3 scripts/period_status.py \\
        reconcile --ledger stock --date 2024-03-15
    python3 scripts/period_status.py reconcile --ledger production \\
        --date 2024-03-15 --dimension Roasting
    python3 scripts/period_status.py adjust --ledger stock <snapshot_id>=-50
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from datetime import date
from pathlib import Path

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from balance_config import get_active_profiles  # noqa: E402
from balance_kernel.domain.dtos import PeriodReport  # noqa: E402

DEFAULT_DB_URL = "sqlite:///spice_erp.db"

_COLUMNS = ("Entity", "Dim", "Opening", "In", "Out", "Adj", "Closing", "Min", "Status")


def hline(char: str = "=", width: int = 100) -> str:
    return char * width


def _fmt(value) -> str:
    return "" if value is None else f"{value:,}"


def format_report(report: PeriodReport) -> str:
    """Render a report as a fixed-width text table with a summary line."""
    period = str(report.period) if report.period is not None else "-"
    lines = [
        hline(),
        f"  {report.ledger.upper()} STATUS  {period}",
        hline(),
        "  " + "".join(f"{c:<14}" if i < 2 else f"{c:>10}" for i, c in enumerate(_COLUMNS)),
        hline("-"),
    ]

    for row in report.rows:
        name = row.entity.name if row.entity is not None else (row.entity_id or row.snapshot_id or "?")
        if not row.ok:
            lines.append(f"  {name:<14}{row.dimension:<14}FAILED [{row.error_code}] {row.error}")
            continue
        snap = row.snapshot
        cells = (
            snap.opening_balance,
            snap.inflow,
            snap.outflow,
            snap.adjustment,
            snap.closing_balance,
            snap.min_level,
        )
        lines.append(
            f"  {name:<14}{row.dimension:<14}"
            + "".join(f"{_fmt(c):>10}" for c in cells)
            + f"{snap.status.label:>14}"
            + f"   {snap.id}"
        )

    summary = report.summary
    lines.append(hline("-"))
    lines.append(
        "  "
        + "  ".join(f"{key}={count}" for key, count in summary.items())
        + f"  created={report.created_count}"
    )
    return "\n".join(lines)


def parse_assignments(pairs: list[str]) -> dict[str, str]:
    """Parse ``<snapshot_id>=<value>`` arguments; the value is kept raw."""
    adjustments: dict[str, str] = {}
    for pair in pairs:
        snapshot_id, sep, value = pair.partition("=")
        if not sep or not snapshot_id.strip():
            raise argparse.ArgumentTypeError(f"expected <snapshot_id>=<value>, got {pair!r}")
        adjustments[snapshot_id.strip()] = value
    return adjustments


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Reconcile period balances and apply manual adjustments.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--db-url", type=str, default=os.environ.get("DATABASE_URL", DEFAULT_DB_URL),
        help="Database URL (default: $DATABASE_URL or %(default)s)",
    )
    parser.add_argument(
        "--config", type=Path, default=None,
        help="Ledger profile YAML (default: bundled profiles)",
    )
    parser.add_argument(
        "--create-tables", action="store_true",
        help="Create missing tables before running",
    )
    parser.add_argument(
        "--verbose", action="store_true",
        help="Emit JSON logs to stderr",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    rec = sub.add_parser("reconcile", help="Get or create snapshots for a period")
    rec.add_argument("--ledger", required=True, help="stock, production or inventory")
    rec.add_argument(
        "--date", type=date.fromisoformat, default=None,
        help="Any date in the target month, YYYY-MM-DD (default: today)",
    )
    rec.add_argument("--dimension", default=None, help="Single dimension value")
    rec.add_argument("--entity", action="append", dest="entity_ids", help="Restrict to entity id")

    adj = sub.add_parser("adjust", help="Apply manual adjustments")
    adj.add_argument("--ledger", required=True)
    adj.add_argument("assignments", nargs="+", metavar="SNAPSHOT_ID=VALUE")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    adjustments: dict[str, str] = {}
    if args.command == "adjust":
        try:
            adjustments = parse_assignments(args.assignments)
        except argparse.ArgumentTypeError as exc:
            parser.error(str(exc))

    if args.verbose:
        from balance_kernel.logging_config import configure_logging

        configure_logging(level=logging.DEBUG)
    else:
        # Keep JSON logs off the table output
        logging.disable(logging.CRITICAL)

    try:
        return _run(args, adjustments)
    finally:
        if not args.verbose:
            logging.disable(logging.NOTSET)


def _run(args: argparse.Namespace, adjustments: dict[str, str]) -> int:
    from balance_kernel.db.engine import create_tables, init_engine_from_url, session_scope
    from balance_kernel.domain.clock import SystemClock
    from balance_kernel.exceptions import BalanceKernelError
    from balance_kernel.services.reconciliation_service import ReconciliationService
    from balance_kernel.store.sql import SqlBalanceStore

    try:
        profiles = get_active_profiles(args.config)
        init_engine_from_url(args.db_url, echo=False)
        if args.create_tables:
            create_tables()
    except Exception as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1

    clock = SystemClock()
    try:
        with session_scope() as session:
            service = ReconciliationService(SqlBalanceStore(session), profiles, clock)
            if args.command == "reconcile":
                report = service.reconcile_period(
                    args.ledger,
                    args.date or clock.today(),
                    entity_ids=args.entity_ids,
                    dimension=args.dimension,
                )
            else:
                report = service.apply_adjustments(args.ledger, adjustments)
    except BalanceKernelError as exc:
        print(f"  ERROR [{exc.code}]: {exc}", file=sys.stderr)
        return 1

    print(format_report(report))
    return 2 if report.failed_rows else 0


if __name__ == "__main__":
    sys.exit(main())
