from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from clinic_booking.core.settings import Settings
from clinic_booking.db.session import get_db
from clinic_booking.deps import get_current_account, get_settings
from clinic_booking.models.account import Account
from clinic_booking.schemas.appointment import AppointmentOut, BookingCreate, BookingOut
from clinic_booking.services.booking import book_slots
from clinic_booking.services.clinics import resolve_clinic

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=BookingOut, status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: BookingCreate,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    account: Account = Depends(get_current_account),
):
    clinic = resolve_clinic(db, payload.clinic_id, settings)
    created, availability = book_slots(
        db,
        caller=account,
        clinic=clinic,
        day=payload.date,
        tnvr_count=payload.tnvr_count,
        foster_count=payload.foster_count,
        notes=payload.notes,
        closed_weekdays=settings.closed_weekdays,
        request_id=request.headers.get("x-request-id"),
    )
    return BookingOut(
        appointments=[AppointmentOut.model_validate(appointment) for appointment in created],
        availability=availability,
    )
