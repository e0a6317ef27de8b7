from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from clinic_booking.db.session import get_db
from clinic_booking.deps import get_current_account
from clinic_booking.models.account import Account
from clinic_booking.schemas.account import AccountOut, NotificationTokenIn, ProfileUpdate
from clinic_booking.schemas.appointment import TrapperAppointmentsOut
from clinic_booking.services.accounts import (
    disable_notifications,
    register_notification_token,
    remove_notification_token,
    update_profile,
)
from clinic_booking.services.appointments import trapper_appointment_groups

router = APIRouter(prefix="/me", tags=["me"])


@router.get("", response_model=AccountOut)
def get_me(account: Account = Depends(get_current_account)):
    return account


@router.patch("", response_model=AccountOut)
def patch_me(
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    account: Account = Depends(get_current_account),
):
    return update_profile(db, account=account, payload=payload)


@router.get("/appointments", response_model=TrapperAppointmentsOut)
def my_appointments(
    view: Literal["upcoming", "history"] = Query(default="upcoming"),
    db: Session = Depends(get_db),
    account: Account = Depends(get_current_account),
):
    groups = trapper_appointment_groups(db, account=account, view=view)
    return TrapperAppointmentsOut(view=view, groups=groups)


@router.post("/notification-tokens", response_model=AccountOut, status_code=status.HTTP_201_CREATED)
def add_notification_token(
    payload: NotificationTokenIn,
    db: Session = Depends(get_db),
    account: Account = Depends(get_current_account),
):
    return register_notification_token(db, account=account, token=payload.token)


@router.delete("/notification-tokens/{token}", response_model=AccountOut)
def delete_notification_token(
    token: str,
    db: Session = Depends(get_db),
    account: Account = Depends(get_current_account),
):
    return remove_notification_token(db, account=account, token=token)


@router.post("/notifications/disable", response_model=AccountOut)
def turn_off_notifications(
    db: Session = Depends(get_db),
    account: Account = Depends(get_current_account),
):
    return disable_notifications(db, account=account)
