#!/usr/bin/env python3
"""Write a user's expense history to CSV from the local database."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from smartspend import config, db
from smartspend.export import export_filename, expenses_to_csv
from smartspend.logging_setup import configure_logging
from smartspend.reconciliation import Reconciler
from smartspend.shared_sidebar import user_from_name

logger = logging.getLogger("smartspend.scripts.export_expenses")


def main(user_name: str, output: Optional[Path] = None, db_path: Optional[Path] = None) -> int:
    user = user_from_name(user_name)
    store = db.RecordStore(db_path) if db_path else db.get_store()
    state = Reconciler(store, lambda: user).fetch_all()

    if not state.expenses:
        print(f"No expenses recorded for {user.name}.")
        return 1

    target = output or config.EXPORTS_DIR / export_filename()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(expenses_to_csv(state.expenses, user.name), encoding='utf-8')
    logger.info("Exported %d expenses to %s", len(state.expenses), target)
    print(f"Wrote {len(state.expenses)} expenses to {target}")
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Export a user\'s expenses as CSV.')
    parser.add_argument('--user-name', required=True, help='Display name used to sign in')
    parser.add_argument('--output', type=Path, default=None, help='Destination CSV path')
    parser.add_argument('--db-path', type=Path, default=None, help='Database file (defaults to config)')
    args = parser.parse_args()
    configure_logging()
    raise SystemExit(main(args.user_name, output=args.output, db_path=args.db_path))
