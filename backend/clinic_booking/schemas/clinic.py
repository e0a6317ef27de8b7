from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ClinicOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    slug: str
    name: str
    address: str
    timezone: str


class CapacityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    clinic_id: int
    day: date
    tnvr_capacity: int
    foster_capacity: int
    version: int
    updated_at: Optional[datetime] = None
    updated_by_user_id: Optional[str] = None


class CapacityUpdate(BaseModel):
    tnvr_capacity: Optional[int] = None
    foster_capacity: Optional[int] = None
    expected_version: Optional[int] = None


class AvailabilityOut(BaseModel):
    clinic_id: int
    date: date
    has_capacity_record: bool
    # None means unbounded (admin views with the "unbounded" missing-capacity policy).
    tnvr_capacity: Optional[int] = None
    foster_capacity: Optional[int] = None
    booked_tnvr: int = 0
    booked_foster: int = 0
    remaining_tnvr: Optional[int] = None
    remaining_foster: Optional[int] = None
    is_open: bool = True


class AvailabilityMonthOut(BaseModel):
    clinic_id: int
    year: int
    month: int
    days: list[AvailabilityOut]
