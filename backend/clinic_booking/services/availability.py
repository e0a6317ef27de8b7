from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from clinic_booking.core.settings import MissingCapacityPolicy
from clinic_booking.models.appointment import Appointment, ServiceType
from clinic_booking.models.clinic import CapacityRecord, Clinic
from clinic_booking.schemas.clinic import AvailabilityOut
from clinic_booking.services.clinics import clinic_tz
from clinic_booking.services.schedule import day_bounds, is_bookable_day, month_days


@dataclass(frozen=True)
class BookedCounts:
    tnvr: int = 0
    foster: int = 0


def capacity_query(clinic_id: int, day: date, *, lock: bool = False):
    stmt = select(CapacityRecord).where(CapacityRecord.clinic_id == clinic_id, CapacityRecord.day == day)
    if lock:
        stmt = stmt.with_for_update()
    return stmt


def load_capacity(db: Session, clinic_id: int, day: date, *, lock: bool = False) -> CapacityRecord | None:
    """Fetch the capacity row for a clinic day.

    With ``lock`` the caller holds the row until its transaction ends. SQLite
    ignores ``FOR UPDATE``, so there a no-op write takes the database write
    lock instead, which serialises bookers the same way.
    """
    if lock and db.get_bind().dialect.name == "sqlite":
        db.execute(
            update(CapacityRecord)
            .where(CapacityRecord.clinic_id == clinic_id, CapacityRecord.day == day)
            .values(version=CapacityRecord.version, updated_at=CapacityRecord.updated_at)
            .execution_options(synchronize_session=False)
        )
    return db.scalar(capacity_query(clinic_id, day, lock=lock))


def count_booked(
    db: Session,
    clinic: Clinic,
    day: date,
    *,
    exclude_appointment_id: int | None = None,
) -> BookedCounts:
    start, end = day_bounds(day, clinic_tz(clinic))
    stmt = (
        select(Appointment.service_type, func.count(Appointment.id))
        .where(
            Appointment.clinic_id == clinic.id,
            Appointment.appointment_time >= start,
            Appointment.appointment_time < end,
        )
        .group_by(Appointment.service_type)
    )
    if exclude_appointment_id is not None:
        stmt = stmt.where(Appointment.id != exclude_appointment_id)
    counts = {service_type: int(total) for service_type, total in db.execute(stmt).all()}
    return BookedCounts(
        tnvr=counts.get(ServiceType.tnvr, 0),
        foster=counts.get(ServiceType.foster, 0),
    )


def build_availability(
    clinic: Clinic,
    day: date,
    record: CapacityRecord | None,
    booked: BookedCounts,
    *,
    policy: MissingCapacityPolicy = "zero",
    is_open: bool = True,
) -> AvailabilityOut:
    if record is not None:
        tnvr_capacity: int | None = record.tnvr_capacity
        foster_capacity: int | None = record.foster_capacity
    elif policy == "unbounded":
        tnvr_capacity = foster_capacity = None
    else:
        tnvr_capacity = foster_capacity = 0

    # Remaining goes negative when an admin has overbooked the day.
    return AvailabilityOut(
        clinic_id=clinic.id,
        date=day,
        has_capacity_record=record is not None,
        tnvr_capacity=tnvr_capacity,
        foster_capacity=foster_capacity,
        booked_tnvr=booked.tnvr,
        booked_foster=booked.foster,
        remaining_tnvr=None if tnvr_capacity is None else tnvr_capacity - booked.tnvr,
        remaining_foster=None if foster_capacity is None else foster_capacity - booked.foster,
        is_open=is_open,
    )


def compute_availability(
    db: Session,
    clinic: Clinic,
    day: date,
    *,
    exclude_appointment_id: int | None = None,
    policy: MissingCapacityPolicy = "zero",
    today: date | None = None,
    closed_weekdays: Iterable[int] = (),
) -> AvailabilityOut:
    record = load_capacity(db, clinic.id, day)
    booked = count_booked(db, clinic, day, exclude_appointment_id=exclude_appointment_id)
    is_open = True if today is None else is_bookable_day(day, today, closed_weekdays)
    return build_availability(clinic, day, record, booked, policy=policy, is_open=is_open)


def month_availability(
    db: Session,
    clinic: Clinic,
    year: int,
    month: int,
    *,
    today: date,
    closed_weekdays: Iterable[int],
    policy: MissingCapacityPolicy = "zero",
) -> list[AvailabilityOut]:
    days = month_days(year, month)
    closed = list(closed_weekdays)
    records = {
        record.day: record
        for record in db.scalars(
            select(CapacityRecord).where(
                CapacityRecord.clinic_id == clinic.id,
                CapacityRecord.day >= days[0],
                CapacityRecord.day <= days[-1],
            )
        )
    }
    results = []
    for day in days:
        booked = count_booked(db, clinic, day)
        results.append(
            build_availability(
                clinic,
                day,
                records.get(day),
                booked,
                policy=policy,
                is_open=is_bookable_day(day, today, closed),
            )
        )
    return results
