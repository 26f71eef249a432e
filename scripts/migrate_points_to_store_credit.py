#!/usr/bin/env python3
"""
One-time migration of legacy points balances to store credit.

Usage:
  python3 scripts/migrate_points_to_store_credit.py --dry-run
  python3 scripts/migrate_points_to_store_credit.py --db-url postgresql://... --batch-size 25

Same as the installed ``store-credit-migrate`` command.
"""

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from credit_batch.cli import migrate_main  # noqa: E402

if __name__ == "__main__":
    sys.exit(migrate_main())
