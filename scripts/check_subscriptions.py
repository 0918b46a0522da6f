"""
Run the daily subscription check outside HTTP (host cron, one-off jobs).

Usage:
  python scripts/check_subscriptions.py [--date YYYY-MM-DD]
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import date
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Send expiry notices and reminders for owner and member subscriptions.")
    parser.add_argument("--date", help="Treat this day as today (YYYY-MM-DD).")
    args = parser.parse_args(argv)

    today = None
    if args.date:
        try:
            today = date.fromisoformat(args.date)
        except ValueError:
            print(f"ERROR: invalid --date '{args.date}' (expected YYYY-MM-DD)", flush=True)
            return 2

    from app.gymsaas import create_app
    from app.gymsaas.db import session_scope
    from app.gymsaas.modules.notifications.service import check_subscriptions

    app = create_app()
    with app.app_context(), session_scope(app) as s:
        result = check_subscriptions(s, today=today)

    print(json.dumps(result, indent=2), flush=True)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
