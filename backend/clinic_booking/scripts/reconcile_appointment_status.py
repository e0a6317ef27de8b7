from __future__ import annotations

import argparse
import logging
from datetime import datetime, timezone

from clinic_booking.core.settings import settings
from clinic_booking.db.session import build_engine, build_session_factory
from clinic_booking.services.reconcile import count_pending, reconcile_past_appointments


def main() -> int:
    parser = argparse.ArgumentParser(description="Mark past Upcoming appointments as Completed.")
    parser.add_argument("--apply", action="store_true", help="Write changes to the database.")
    parser.add_argument(
        "--batch-size",
        type=int,
        default=settings.reconcile_batch_size,
        help="Rows updated per transaction.",
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")

    session = build_session_factory(build_engine(settings.database_url))()
    now = datetime.now(timezone.utc)
    try:
        if not args.apply:
            pending = count_pending(session, now)
            print("Appointment status reconcile")
            print(f"Pending: {pending}")
            print("Dry run only. Use --apply to persist changes.")
            return 0
        updated = reconcile_past_appointments(session, now=now, batch_size=args.batch_size)
        print("Appointment status reconcile")
        print(f"Updated: {updated}")
        return 0
    finally:
        session.close()


if __name__ == "__main__":
    raise SystemExit(main())
