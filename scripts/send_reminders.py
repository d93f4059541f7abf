"""Run the daily reminder sweep outside the web process.

Intended for cron, e.g. ``0 8 * * * python scripts/send_reminders.py``.
"""

from __future__ import annotations

import argparse
from datetime import date
from typing import List, Optional

from subscription_reminders.core.config import Settings
from subscription_reminders.core.container import build_container, build_email_service
from subscription_reminders.core.logging import configure_logging
from subscription_reminders.domain.ports.notifications import ReminderNotifier
from subscription_reminders.infrastructure.persistence.sqlite import SQLitePersistence


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Send reminders for upcoming subscription deliveries")
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        help="Treat this day (YYYY-MM-DD) as today instead of the current UTC date",
    )
    parser.add_argument(
        "--purge-days",
        type=int,
        help="Also delete unanswered confirmations that expired more than N days ago",
    )
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    return parser.parse_args(argv)


def main(
    argv: Optional[List[str]] = None,
    *,
    settings: Optional[Settings] = None,
    notifier: Optional[ReminderNotifier] = None,
) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    settings = settings or Settings()

    persistence = SQLitePersistence(settings.database_path)
    try:
        container = build_container(settings, persistence, notifier or build_email_service(settings))
        sent = container.reminder_scheduler.send_pending_reminders(args.date)
        print(f"Sent {sent} reminder(s).")
        if args.purge_days is not None:
            purged = container.reminder_scheduler.purge_expired_confirmations(args.purge_days)
            print(f"Purged {purged} expired confirmation(s).")
    finally:
        persistence.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
