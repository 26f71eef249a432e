"""
Command-line entry points.

    store-credit-migrate [--dry-run] [--batch-size N] [--db-url URL]
                         [--config PATH] [--report-dir DIR] [--start-delay S]
    store-credit-init-settings [--force] [--db-url URL] [--config PATH]

The database URL comes from ``--db-url`` or the ``DATABASE_URL``
environment variable.  Exit status is 0 on success (per-user migration
errors are reported, not fatal) and 1 on a fatal error.
"""

from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Sequence

from sqlalchemy.exc import SQLAlchemyError

from credit_batch.orchestrator import MigrationOrchestrator, write_report
from credit_config import default_settings_from_config, get_active_config
from credit_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from credit_kernel.domain.values import format_cents
from credit_kernel.exceptions import InvalidConfigError, MigrationFatalError
from credit_kernel.logging_config import configure_logging, get_logger
from credit_kernel.services.settings_service import SettingsService
from credit_kernel.services.user_store import SqlUserStore

logger = get_logger("batch.cli")

DATABASE_URL_ENV = "DATABASE_URL"


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {value}")
    return number


def _non_negative_float(value: str) -> float:
    number = float(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {value}")
    return number


def _add_common_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--db-url",
        default=None,
        help=f"Database URL (default: ${DATABASE_URL_ENV})",
    )
    p.add_argument(
        "--config",
        default=None,
        help="YAML file merged over the packaged defaults",
    )


def _resolve_db_url(args: argparse.Namespace) -> str | None:
    return args.db_url or os.environ.get(DATABASE_URL_ENV)


def _parse_migrate_args(argv: Sequence[str] | None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="store-credit-migrate",
        description="Convert legacy points balances to store credit",
    )
    p.add_argument("--dry-run", action="store_true", help="Compute and log, write nothing")
    p.add_argument(
        "--batch-size",
        type=_positive_int,
        default=None,
        help="Users processed concurrently per group (default: from config)",
    )
    p.add_argument("--report-dir", default=None, help="Directory for the JSON report")
    p.add_argument(
        "--start-delay",
        type=_non_negative_float,
        default=None,
        help="Seconds to wait before a live run starts writing (default: from config)",
    )
    _add_common_args(p)
    return p.parse_args(argv)


def migrate_main(argv: Sequence[str] | None = None) -> int:
    args = _parse_migrate_args(argv)
    configure_logging()

    try:
        config = get_active_config(args.config)
    except (InvalidConfigError, FileNotFoundError) as exc:
        logger.error("migration_fatal", exc_info=True)
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1

    db_url = _resolve_db_url(args)
    if not db_url:
        logger.error("migration_fatal", extra={"reason": "missing_database_url"})
        print(
            f"  ERROR: no database URL. Pass --db-url or set {DATABASE_URL_ENV}.",
            file=sys.stderr,
        )
        return 1

    batch_size = args.batch_size or config.migration.batch_size
    start_delay = (
        args.start_delay if args.start_delay is not None
        else config.migration.start_delay_seconds
    )
    report_dir = args.report_dir or config.migration.report_dir

    print()
    print(f"  Points -> store credit migration ({'DRY RUN' if args.dry_run else 'LIVE'})")
    print(f"  Conversion rate: {config.conversion_rate} points = $1.00")
    print(f"  Batch size: {batch_size}")
    if not args.dry_run and start_delay > 0:
        print(f"  Writing starts in {start_delay:g}s. Press Ctrl+C to cancel.")

    try:
        init_engine_from_url(db_url)
        store = SqlUserStore(get_session_factory())
        orchestrator = MigrationOrchestrator.from_config(store, config)
        report = orchestrator.run(
            dry_run=args.dry_run,
            batch_size=batch_size,
            start_delay_seconds=start_delay,
        )
    except (MigrationFatalError, SQLAlchemyError) as exc:
        logger.error("migration_fatal", exc_info=True)
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1
    finally:
        reset_engine()

    path = write_report(report, report_dir)

    print()
    print(f"  Total users:    {report.total_users}")
    print(f"  Migrated:       {report.migrated}")
    print(f"  Skipped:        {report.skipped}")
    print(f"  Errors:         {report.failed}")
    print(f"  Credit issued:  {format_cents(report.total_credit_cents)}")
    for error in report.errors:
        print(f"    - {error.user_id}: {error.error}")
    print(f"  Report: {path}")
    return 0


def _parse_init_settings_args(argv: Sequence[str] | None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="store-credit-init-settings",
        description="Create the default store-credit settings record",
    )
    p.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing record with the configured defaults",
    )
    _add_common_args(p)
    return p.parse_args(argv)


def init_settings_main(argv: Sequence[str] | None = None) -> int:
    args = _parse_init_settings_args(argv)
    configure_logging()

    try:
        config = get_active_config(args.config)
    except (InvalidConfigError, FileNotFoundError) as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1

    db_url = _resolve_db_url(args)
    if not db_url:
        print(
            f"  ERROR: no database URL. Pass --db-url or set {DATABASE_URL_ENV}.",
            file=sys.stderr,
        )
        return 1

    defaults = default_settings_from_config(config)
    try:
        init_engine_from_url(db_url)
        create_tables()
        with session_scope() as session:
            written = SettingsService(session, defaults).initialize_defaults(force=args.force)
    finally:
        reset_engine()

    if written:
        print("  Store credit settings initialized:")
        print(f"    Per-item cap:      {defaults.per_item_discount_cap_percent}%")
        print(f"    Per-order cap:     {format_cents(defaults.per_order_discount_cap_cents)}")
        print(f"    Monthly earn cap:  {format_cents(defaults.monthly_earning_cap_cents)}")
        for activity, cents in sorted(defaults.earning_values.items()):
            print(f"    {activity}: {format_cents(cents)}")
    else:
        print("  Settings already exist. Use --force to overwrite.")
    return 0


if __name__ == "__main__":
    sys.exit(migrate_main())
