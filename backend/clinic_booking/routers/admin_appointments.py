from datetime import date

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from clinic_booking.core.errors import NotFound
from clinic_booking.core.settings import Settings
from clinic_booking.db.session import get_db
from clinic_booking.deps import get_settings, require_admin
from clinic_booking.models.account import Account
from clinic_booking.models.appointment import ServiceType
from clinic_booking.schemas.appointment import (
    AdminAppointmentCreate,
    AdminAppointmentUpdate,
    AppointmentOut,
    DayRosterOut,
    ReleaseGroupOut,
    ReleaseGroupRequest,
)
from clinic_booking.schemas.clinic import CapacityOut
from clinic_booking.services.accounts import get_account
from clinic_booking.services.appointments import (
    admin_create_appointments,
    admin_update_appointment,
    appointments_for_day,
    build_roster_groups,
    get_appointment,
    release_appointment,
    release_group,
)
from clinic_booking.services.availability import build_availability, count_booked, load_capacity
from clinic_booking.services.clinics import clinic_tz, resolve_clinic
from clinic_booking.services.schedule import is_bookable_day, today_in

router = APIRouter(prefix="/admin/appointments", tags=["admin"])

SNAPSHOT_FIELDS = ("trapper_first_name", "trapper_last_name", "trapper_phone", "trapper_number")


@router.post("", response_model=list[AppointmentOut], status_code=status.HTTP_201_CREATED)
def create_appointments(
    payload: AdminAppointmentCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    admin: Account = Depends(require_admin),
):
    trapper = get_account(db, payload.user_id)
    if not trapper:
        raise NotFound("Trapper not found")
    clinic = resolve_clinic(db, payload.clinic_id, settings)
    return admin_create_appointments(
        db,
        actor=admin,
        trapper=trapper,
        clinic=clinic,
        day=payload.date,
        tnvr_count=payload.tnvr_count,
        foster_count=payload.foster_count,
        notes=payload.notes,
        overrides={key: getattr(payload, key) for key in SNAPSHOT_FIELDS},
    )


@router.get("/day", response_model=DayRosterOut)
def day_roster(
    day: date = Query(alias="date"),
    clinic_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    _admin: Account = Depends(require_admin),
):
    clinic = resolve_clinic(db, clinic_id, settings)
    record = load_capacity(db, clinic.id, day)
    booked = count_booked(db, clinic, day)
    availability = build_availability(
        clinic,
        day,
        record,
        booked,
        policy=settings.missing_capacity_policy,
        is_open=is_bookable_day(day, today_in(clinic_tz(clinic)), settings.closed_weekdays),
    )
    groups = build_roster_groups(appointments_for_day(db, clinic, day))
    return DayRosterOut(
        date=day,
        clinic_id=clinic.id,
        availability=availability,
        capacity=CapacityOut.model_validate(record) if record else None,
        tnvr_count=booked.tnvr,
        foster_count=booked.foster,
        tnvr_groups=[group for group in groups if group.service_type == ServiceType.tnvr],
        foster_groups=[group for group in groups if group.service_type == ServiceType.foster],
    )


@router.post("/release-group", response_model=ReleaseGroupOut)
def release_appointment_group(
    payload: ReleaseGroupRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    admin: Account = Depends(require_admin),
):
    clinic = resolve_clinic(db, payload.clinic_id, settings)
    deleted = release_group(
        db,
        actor=admin,
        clinic=clinic,
        day=payload.date,
        service_type=payload.service_type,
        user_id=payload.user_id,
    )
    return ReleaseGroupOut(deleted=deleted)


@router.patch("/{appointment_id}", response_model=AppointmentOut)
def update_appointment(
    appointment_id: int,
    payload: AdminAppointmentUpdate,
    db: Session = Depends(get_db),
    admin: Account = Depends(require_admin),
):
    appointment = get_appointment(db, appointment_id)
    if not appointment:
        raise NotFound("Appointment not found")
    return admin_update_appointment(db, actor=admin, appointment=appointment, payload=payload)


@router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    admin: Account = Depends(require_admin),
):
    appointment = get_appointment(db, appointment_id)
    if not appointment:
        raise NotFound("Appointment not found")
    release_appointment(db, actor=admin, appointment=appointment)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
