from __future__ import annotations

from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.orm import Session

from clinic_booking.core.errors import NotFound
from clinic_booking.core.settings import Settings
from clinic_booking.models.clinic import Clinic


def ensure_default_clinic(db: Session, settings: Settings) -> Clinic:
    clinic = db.scalar(select(Clinic).where(Clinic.slug == settings.default_clinic_slug))
    if clinic:
        return clinic
    clinic = Clinic(
        slug=settings.default_clinic_slug,
        name=settings.default_clinic_name,
        address=settings.default_clinic_address,
        timezone=settings.clinic_timezone,
        is_active=True,
    )
    db.add(clinic)
    db.commit()
    db.refresh(clinic)
    return clinic


def list_clinics(db: Session) -> list[Clinic]:
    return list(db.scalars(select(Clinic).where(Clinic.is_active.is_(True)).order_by(Clinic.id)))


def resolve_clinic(db: Session, clinic_id: int | None, settings: Settings) -> Clinic:
    if clinic_id is None:
        clinic = db.scalar(select(Clinic).where(Clinic.slug == settings.default_clinic_slug))
    else:
        clinic = db.get(Clinic, clinic_id)
    if not clinic or not clinic.is_active:
        raise NotFound("Clinic not found")
    return clinic


def clinic_tz(clinic: Clinic) -> ZoneInfo:
    return ZoneInfo(clinic.timezone)
