from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from clinic_booking.core.errors import NotFound
from clinic_booking.core.settings import Settings
from clinic_booking.db.session import get_db
from clinic_booking.deps import get_settings, require_admin
from clinic_booking.models.account import Account
from clinic_booking.schemas.clinic import CapacityOut, CapacityUpdate
from clinic_booking.services.appointments import set_capacity
from clinic_booking.services.availability import load_capacity
from clinic_booking.services.clinics import resolve_clinic

router = APIRouter(prefix="/admin/capacity", tags=["admin"])


@router.get("/{clinic_id}/{day}", response_model=CapacityOut)
def get_capacity(
    clinic_id: int,
    day: date,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    _admin: Account = Depends(require_admin),
):
    clinic = resolve_clinic(db, clinic_id, settings)
    record = load_capacity(db, clinic.id, day)
    if not record:
        raise NotFound("No capacity set for this date")
    return record


@router.put("/{clinic_id}/{day}", response_model=CapacityOut)
def put_capacity(
    clinic_id: int,
    day: date,
    payload: CapacityUpdate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    admin: Account = Depends(require_admin),
):
    clinic = resolve_clinic(db, clinic_id, settings)
    return set_capacity(
        db,
        actor=admin,
        clinic=clinic,
        day=day,
        tnvr_capacity=payload.tnvr_capacity,
        foster_capacity=payload.foster_capacity,
        expected_version=payload.expected_version,
    )
