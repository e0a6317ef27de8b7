from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Literal

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_booking.core.errors import Conflict, Internal, InvalidArgument, NotFound
from clinic_booking.models.account import Account
from clinic_booking.models.appointment import Appointment, ServiceType
from clinic_booking.models.clinic import CapacityRecord, Clinic
from clinic_booking.schemas.appointment import (
    AdminAppointmentUpdate,
    AppointmentOut,
    RosterGroupOut,
    TrapperAppointmentGroupOut,
)
from clinic_booking.services.audit import log_event, snapshot_model
from clinic_booking.services.availability import load_capacity
from clinic_booking.services.booking import create_slot_records, trapper_snapshot, validate_counts
from clinic_booking.services.clinics import clinic_tz
from clinic_booking.services.phone import format_phone_number
from clinic_booking.services.schedule import appointment_instant, as_utc, day_bounds, local_day

logger = logging.getLogger("clinic_booking.appointments")

TrapperView = Literal["upcoming", "history"]


def get_appointment(db: Session, appointment_id: int) -> Appointment | None:
    return db.get(Appointment, appointment_id)


def appointments_for_day(db: Session, clinic: Clinic, day: date) -> list[Appointment]:
    start, end = day_bounds(day, clinic_tz(clinic))
    stmt = (
        select(Appointment)
        .where(
            Appointment.clinic_id == clinic.id,
            Appointment.appointment_time >= start,
            Appointment.appointment_time < end,
        )
        .order_by(Appointment.id.asc())
    )
    return list(db.scalars(stmt).unique())


def admin_create_appointments(
    db: Session,
    *,
    actor: Account,
    trapper: Account,
    clinic: Clinic,
    day: date,
    tnvr_count: int,
    foster_count: int,
    notes: str | None = None,
    overrides: dict | None = None,
) -> list[Appointment]:
    # Admins may overbook; capacity is not checked here.
    validate_counts(tnvr_count, foster_count)
    try:
        created = create_slot_records(
            db,
            actor=actor,
            trapper=trapper,
            clinic=clinic,
            day=day,
            tnvr_count=tnvr_count,
            foster_count=foster_count,
            notes=notes,
            overrides=overrides,
        )
        log_event(
            db,
            actor=actor,
            action="appointment.admin_created",
            entity_type="appointment",
            entity_id=f"{clinic.id}:{day.isoformat()}",
            after_data={
                "user_id": trapper.id,
                "appointment_ids": [appointment.id for appointment in created],
                "tnvr_count": tnvr_count,
                "foster_count": foster_count,
            },
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Admin create failed for %s on %s", trapper.id, day)
        raise Internal("The appointments could not be saved. Please try again.") from exc
    for appointment in created:
        db.refresh(appointment)
    return created


def admin_update_appointment(
    db: Session,
    *,
    actor: Account,
    appointment: Appointment,
    payload: AdminAppointmentUpdate,
) -> Appointment:
    changes = payload.model_dump(exclude_unset=True)
    before = snapshot_model(appointment)

    if changes.get("user_id"):
        trapper = db.get(Account, changes["user_id"])
        if not trapper:
            raise NotFound("Trapper not found")
        appointment.user_id = trapper.id
        for key, value in trapper_snapshot(trapper).items():
            setattr(appointment, key, value)

    for key in ("trapper_first_name", "trapper_last_name", "trapper_phone", "trapper_number"):
        if changes.get(key) is not None:
            setattr(appointment, key, changes[key].strip())

    if changes.get("appointment_date") is not None:
        clinic = db.get(Clinic, appointment.clinic_id)
        appointment.appointment_time = appointment_instant(changes["appointment_date"], clinic_tz(clinic))
    if changes.get("service_type") is not None:
        appointment.service_type = changes["service_type"]
    if "notes" in changes:
        notes = changes["notes"]
        appointment.notes = notes.strip() if notes and notes.strip() else None

    appointment.last_modified_by_user_id = actor.id
    log_event(
        db,
        actor=actor,
        action="appointment.updated",
        entity_type="appointment",
        entity_id=str(appointment.id),
        before_data=before,
        after_obj=appointment,
    )
    db.commit()
    db.refresh(appointment)
    return appointment


def release_appointment(db: Session, *, actor: Account, appointment: Appointment) -> None:
    before = snapshot_model(appointment)
    db.delete(appointment)
    log_event(
        db,
        actor=actor,
        action="appointment.released",
        entity_type="appointment",
        entity_id=str(before["id"]),
        before_data=before,
    )
    db.commit()


def release_group(
    db: Session,
    *,
    actor: Account,
    clinic: Clinic,
    day: date,
    service_type: ServiceType | None = None,
    user_id: str | None = None,
) -> int:
    """Hard-delete every appointment in a group as one transaction.

    The group is the whole clinic day, or one trapper's slots of one service
    type on that day. Returns the number of rows removed.
    """
    if (service_type is None) != (user_id is None):
        raise InvalidArgument(
            "Pass both service_type and user_id, or neither.",
            errors={"service_type": "Required together with user_id."},
        )
    start, end = day_bounds(day, clinic_tz(clinic))
    conditions = [
        Appointment.clinic_id == clinic.id,
        Appointment.appointment_time >= start,
        Appointment.appointment_time < end,
    ]
    if service_type is not None:
        conditions.extend([Appointment.service_type == service_type, Appointment.user_id == user_id])

    ids = list(db.scalars(select(Appointment.id).where(*conditions)))
    if not ids:
        raise NotFound("No appointments found for this group")

    try:
        db.execute(delete(Appointment).where(Appointment.id.in_(ids)).execution_options(synchronize_session=False))
        log_event(
            db,
            actor=actor,
            action="appointment.group_released",
            entity_type="appointment",
            entity_id=f"{clinic.id}:{day.isoformat()}",
            before_data={
                "appointment_ids": ids,
                "service_type": service_type.value if service_type else None,
                "user_id": user_id,
            },
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Group release failed for clinic %s on %s", clinic.id, day)
        raise Internal("The appointments could not be released. Please try again.") from exc
    except Exception:
        db.rollback()
        raise
    logger.info("Released %s appointments for clinic %s on %s", len(ids), clinic.id, day)
    return len(ids)


def set_capacity(
    db: Session,
    *,
    actor: Account,
    clinic: Clinic,
    day: date,
    tnvr_capacity: int | None,
    foster_capacity: int | None,
    expected_version: int | None = None,
) -> CapacityRecord:
    errors: dict[str, str] = {}
    if tnvr_capacity is not None and tnvr_capacity < 0:
        errors["tnvr_capacity"] = "Capacity cannot be negative."
    if foster_capacity is not None and foster_capacity < 0:
        errors["foster_capacity"] = "Capacity cannot be negative."
    if errors:
        raise InvalidArgument("Please correct the highlighted fields.", errors=errors)

    record = load_capacity(db, clinic.id, day)
    before = snapshot_model(record)
    if record is None:
        if expected_version is not None:
            raise Conflict()
        record = CapacityRecord(
            clinic_id=clinic.id,
            day=day,
            tnvr_capacity=tnvr_capacity or 0,
            foster_capacity=foster_capacity or 0,
            version=1,
            updated_by_user_id=actor.id,
        )
        db.add(record)
    else:
        if expected_version is not None and expected_version != record.version:
            raise Conflict()
        if tnvr_capacity is not None:
            record.tnvr_capacity = tnvr_capacity
        if foster_capacity is not None:
            record.foster_capacity = foster_capacity
        record.version += 1
        record.updated_at = datetime.now(timezone.utc)
        record.updated_by_user_id = actor.id

    try:
        db.flush()
        log_event(
            db,
            actor=actor,
            action="capacity.updated",
            entity_type="capacity",
            entity_id=f"{clinic.id}:{day.isoformat()}",
            before_data=before,
            after_obj=record,
        )
        db.commit()
    except IntegrityError as exc:
        # Another admin created the same day first.
        db.rollback()
        raise Conflict() from exc
    db.refresh(record)
    return record


def _roster_sort_key(group: RosterGroupOut) -> tuple[int, str]:
    return (0 if group.service_type == ServiceType.tnvr else 1, group.trapper_number)


def build_roster_groups(appointments: list[Appointment]) -> list[RosterGroupOut]:
    groups: dict[str, RosterGroupOut] = {}
    for appointment in appointments:
        key = "-".join(
            [
                appointment.service_type.value,
                appointment.trapper_number,
                appointment.trapper_first_name,
                appointment.trapper_last_name,
            ]
        )
        group = groups.get(key)
        if group is None:
            group = RosterGroupOut(
                group_key=key,
                service_type=appointment.service_type,
                user_id=appointment.user_id,
                trapper_number=appointment.trapper_number,
                trapper_first_name=appointment.trapper_first_name,
                trapper_last_name=appointment.trapper_last_name,
                trapper_phone_display=format_phone_number(appointment.trapper_phone),
                appointments=[],
            )
            groups[key] = group
        group.appointments.append(AppointmentOut.model_validate(appointment))
    return sorted(groups.values(), key=_roster_sort_key)


def trapper_appointment_groups(
    db: Session,
    *,
    account: Account,
    view: TrapperView,
    now: datetime | None = None,
) -> list[TrapperAppointmentGroupOut]:
    now = as_utc(now or datetime.now(timezone.utc))
    stmt = select(Appointment).where(Appointment.user_id == account.id)
    if view == "upcoming":
        stmt = stmt.where(Appointment.appointment_time >= now).order_by(Appointment.appointment_time.asc())
    else:
        stmt = stmt.where(Appointment.appointment_time < now).order_by(Appointment.appointment_time.desc())

    groups: dict[tuple[date, int], TrapperAppointmentGroupOut] = {}
    for appointment in db.scalars(stmt.order_by(Appointment.id.asc())).unique():
        clinic = appointment.clinic
        day = local_day(appointment.appointment_time, clinic_tz(clinic))
        key = (day, clinic.id)
        group = groups.get(key)
        if group is None:
            group = TrapperAppointmentGroupOut(
                date=day,
                clinic_id=clinic.id,
                clinic_name=clinic.name,
                clinic_address=appointment.clinic_address,
                tnvr_count=0,
                foster_count=0,
                appointments=[],
            )
            groups[key] = group
        if appointment.service_type == ServiceType.tnvr:
            group.tnvr_count += 1
        else:
            group.foster_count += 1
        group.appointments.append(AppointmentOut.model_validate(appointment))
    return list(groups.values())
