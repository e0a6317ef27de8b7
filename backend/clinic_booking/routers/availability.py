from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clinic_booking.core.errors import InvalidArgument
from clinic_booking.core.settings import Settings
from clinic_booking.db.session import get_db
from clinic_booking.deps import get_current_account, get_settings
from clinic_booking.models.account import Account, Role
from clinic_booking.schemas.clinic import AvailabilityMonthOut, AvailabilityOut, ClinicOut
from clinic_booking.services.availability import compute_availability, month_availability
from clinic_booking.services.clinics import clinic_tz, list_clinics, resolve_clinic
from clinic_booking.services.schedule import today_in

router = APIRouter(tags=["availability"])


def _policy_for(account: Account, settings: Settings):
    # Trappers always see a missing record as zero capacity.
    return settings.missing_capacity_policy if account.role == Role.admin else "zero"


@router.get("/clinics", response_model=list[ClinicOut])
def clinics(
    db: Session = Depends(get_db),
    _account: Account = Depends(get_current_account),
):
    return list_clinics(db)


@router.get("/availability", response_model=AvailabilityOut)
def availability_for_day(
    day: date = Query(alias="date"),
    clinic_id: int | None = Query(default=None),
    exclude_appointment_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    account: Account = Depends(get_current_account),
):
    clinic = resolve_clinic(db, clinic_id, settings)
    return compute_availability(
        db,
        clinic,
        day,
        exclude_appointment_id=exclude_appointment_id,
        policy=_policy_for(account, settings),
        today=today_in(clinic_tz(clinic)),
        closed_weekdays=settings.closed_weekdays,
    )


@router.get("/availability/month", response_model=AvailabilityMonthOut)
def availability_for_month(
    year: int = Query(ge=2000, le=2100),
    month: int = Query(ge=1, le=12),
    clinic_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    account: Account = Depends(get_current_account),
):
    clinic = resolve_clinic(db, clinic_id, settings)
    if len(settings.closed_weekdays) >= 7:
        raise InvalidArgument("The clinic has no open weekdays configured")
    days = month_availability(
        db,
        clinic,
        year,
        month,
        today=today_in(clinic_tz(clinic)),
        closed_weekdays=settings.closed_weekdays,
        policy=_policy_for(account, settings),
    )
    return AvailabilityMonthOut(clinic_id=clinic.id, year=year, month=month, days=days)
