#!/usr/bin/env python3
"""
Create the "default" store-credit settings record from configuration.

Usage:
  python3 scripts/initialize_store_credit_settings.py [--force]

Same as the installed ``store-credit-init-settings`` command.
"""

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from credit_batch.cli import init_settings_main  # noqa: E402

if __name__ == "__main__":
    sys.exit(init_settings_main())
