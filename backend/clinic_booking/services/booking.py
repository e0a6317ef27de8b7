from __future__ import annotations

import logging
from datetime import date, datetime

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_booking.core.errors import Internal, InvalidArgument, ResourceExhausted
from clinic_booking.models.account import Account, PerformanceMetrics
from clinic_booking.models.appointment import Appointment, AppointmentStatus, ServiceType
from clinic_booking.models.clinic import Clinic
from clinic_booking.schemas.clinic import AvailabilityOut
from clinic_booking.services.accounts import ensure_metrics
from clinic_booking.services.audit import log_event
from clinic_booking.services.availability import build_availability, count_booked, load_capacity
from clinic_booking.services.clinics import clinic_tz
from clinic_booking.services.schedule import appointment_instant, is_bookable_day, today_in

logger = logging.getLogger("clinic_booking.booking")


def validate_counts(tnvr_count: int, foster_count: int) -> None:
    errors: dict[str, str] = {}
    if tnvr_count < 0:
        errors["tnvr_count"] = "Count cannot be negative."
    if foster_count < 0:
        errors["foster_count"] = "Count cannot be negative."
    if not errors and tnvr_count + foster_count == 0:
        errors["tnvr_count"] = "Request at least one slot."
    if errors:
        raise InvalidArgument("Please correct the highlighted fields.", errors=errors)


def trapper_snapshot(trapper: Account, overrides: dict | None = None) -> dict[str, str]:
    snapshot = {
        "trapper_first_name": trapper.first_name or "",
        "trapper_last_name": trapper.last_name or "",
        "trapper_phone": trapper.phone or "",
        "trapper_number": trapper.trapper_number or "",
    }
    for key, value in (overrides or {}).items():
        if key in snapshot and value is not None:
            snapshot[key] = value.strip()
    return snapshot


def create_slot_records(
    db: Session,
    *,
    actor: Account,
    trapper: Account,
    clinic: Clinic,
    day: date,
    tnvr_count: int,
    foster_count: int,
    notes: str | None,
    overrides: dict | None = None,
) -> list[Appointment]:
    """Add one appointment per slot and bump the trapper's booked total.

    Nothing is committed here; the caller owns the transaction.
    """
    snapshot = trapper_snapshot(trapper, overrides)
    instant = appointment_instant(day, clinic_tz(clinic))
    notes = notes.strip() if notes and notes.strip() else None
    created: list[Appointment] = []
    for service_type, count in ((ServiceType.tnvr, tnvr_count), (ServiceType.foster, foster_count)):
        for _ in range(count):
            appointment = Appointment(
                user_id=trapper.id,
                service_type=service_type,
                clinic_id=clinic.id,
                clinic_address=clinic.address,
                appointment_time=instant,
                status=AppointmentStatus.upcoming,
                notes=notes,
                created_by_user_id=actor.id,
                last_modified_by_user_id=actor.id,
                **snapshot,
            )
            db.add(appointment)
            created.append(appointment)

    ensure_metrics(db, trapper)
    db.flush()
    db.execute(
        update(PerformanceMetrics)
        .where(PerformanceMetrics.account_id == trapper.id)
        .values(
            total_appointments_booked=PerformanceMetrics.total_appointments_booked + tnvr_count + foster_count
        )
    )
    return created


def book_slots(
    db: Session,
    *,
    caller: Account,
    clinic: Clinic,
    day: date,
    tnvr_count: int,
    foster_count: int,
    notes: str | None = None,
    closed_weekdays: list[int],
    now: datetime | None = None,
    request_id: str | None = None,
) -> tuple[list[Appointment], AvailabilityOut]:
    validate_counts(tnvr_count, foster_count)
    if not caller.has_booking_identity:
        raise InvalidArgument(
            "Add your first name, last name and phone number to your profile before booking.",
            errors={"profile": "First name, last name and phone are required."},
        )
    if not is_bookable_day(day, today_in(clinic_tz(clinic), now), closed_weekdays):
        raise InvalidArgument("This date is not open for booking.", errors={"date": "Pick an open date."})

    try:
        # The capacity row lock serialises concurrent bookers for this clinic day.
        record = load_capacity(db, clinic.id, day, lock=True)
        booked = count_booked(db, clinic, day)
        before = build_availability(clinic, day, record, booked, policy="zero")
        if tnvr_count > before.remaining_tnvr or foster_count > before.remaining_foster:
            raise ResourceExhausted(
                "Not enough slots remaining for this date. Refresh availability and try again.",
                errors={
                    "tnvr_count": f"{max(before.remaining_tnvr, 0)} remaining",
                    "foster_count": f"{max(before.remaining_foster, 0)} remaining",
                },
            )

        created = create_slot_records(
            db,
            actor=caller,
            trapper=caller,
            clinic=clinic,
            day=day,
            tnvr_count=tnvr_count,
            foster_count=foster_count,
            notes=notes,
        )
        log_event(
            db,
            actor=caller,
            action="booking.created",
            entity_type="appointment",
            entity_id=f"{clinic.id}:{day.isoformat()}",
            after_data={
                "appointment_ids": [appointment.id for appointment in created],
                "tnvr_count": tnvr_count,
                "foster_count": foster_count,
            },
            request_id=request_id,
        )
        db.commit()
    except ResourceExhausted:
        db.rollback()
        logger.info("Booking rejected for %s on %s: capacity exhausted", caller.id, day)
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Booking transaction failed for %s on %s", caller.id, day)
        raise Internal("Your booking could not be saved. Please try again.") from exc
    except Exception:
        db.rollback()
        raise

    for appointment in created:
        db.refresh(appointment)
    after = build_availability(
        clinic, day, load_capacity(db, clinic.id, day), count_booked(db, clinic, day), policy="zero"
    )
    logger.info("Booked %s TNVR and %s Foster for %s on %s", tnvr_count, foster_count, caller.id, day)
    return created, after
