from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from clinic_booking.models.appointment import Appointment, AppointmentStatus
from clinic_booking.services.schedule import as_utc

logger = logging.getLogger("clinic_booking.reconcile")


def count_pending(db: Session, now: datetime) -> int:
    stmt = select(func.count(Appointment.id)).where(
        Appointment.appointment_time < as_utc(now),
        Appointment.status == AppointmentStatus.upcoming,
    )
    return int(db.scalar(stmt) or 0)


def reconcile_past_appointments(
    db: Session,
    *,
    now: datetime | None = None,
    batch_size: int = 500,
) -> int:
    """Mark past Upcoming appointments as Completed.

    Each chunk of at most ``batch_size`` rows commits on its own, so a failure
    part way leaves earlier chunks applied and the rest for the next run.
    Running twice in a row updates nothing the second time.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be positive")
    cutoff = as_utc(now or datetime.now(timezone.utc))
    updated = 0
    while True:
        ids = list(
            db.scalars(
                select(Appointment.id)
                .where(
                    Appointment.appointment_time < cutoff,
                    Appointment.status == AppointmentStatus.upcoming,
                )
                .order_by(Appointment.id.asc())
                .limit(batch_size)
            )
        )
        if not ids:
            break
        try:
            result = db.execute(
                update(Appointment)
                .where(Appointment.id.in_(ids), Appointment.status == AppointmentStatus.upcoming)
                .values(status=AppointmentStatus.completed, updated_at=datetime.now(timezone.utc))
                .execution_options(synchronize_session=False)
            )
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Reconcile chunk failed after %s updates", updated)
            raise
        updated += result.rowcount
        logger.info("Reconciled %s appointments (%s so far)", result.rowcount, updated)

    logger.info("Reconcile finished: %s appointments marked completed", updated)
    return updated
