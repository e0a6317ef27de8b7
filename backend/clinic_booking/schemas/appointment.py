from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

from clinic_booking.models.appointment import AppointmentStatus, ServiceType
from clinic_booking.schemas.actor import ActorOut
from clinic_booking.schemas.clinic import AvailabilityOut, CapacityOut


class AppointmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[str] = None
    trapper_first_name: str
    trapper_last_name: str
    trapper_phone: str
    trapper_number: str
    service_type: ServiceType
    clinic_id: int
    clinic_address: str
    appointment_time: datetime
    status: AppointmentStatus
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    created_by_user_id: Optional[str] = None
    last_modified_by_user_id: Optional[str] = None
    created_by: Optional[ActorOut] = None
    last_modified_by: Optional[ActorOut] = None


class BookingCreate(BaseModel):
    date: date
    clinic_id: Optional[int] = None
    tnvr_count: int = 0
    foster_count: int = 0
    notes: Optional[str] = None


class BookingOut(BaseModel):
    appointments: list[AppointmentOut]
    availability: AvailabilityOut


class AdminAppointmentCreate(BaseModel):
    user_id: str
    date: date
    clinic_id: Optional[int] = None
    tnvr_count: int = 0
    foster_count: int = 0
    notes: Optional[str] = None
    trapper_first_name: Optional[str] = None
    trapper_last_name: Optional[str] = None
    trapper_phone: Optional[str] = None
    trapper_number: Optional[str] = None


class AdminAppointmentUpdate(BaseModel):
    user_id: Optional[str] = None
    appointment_date: Optional[date] = None
    service_type: Optional[ServiceType] = None
    notes: Optional[str] = None
    trapper_first_name: Optional[str] = None
    trapper_last_name: Optional[str] = None
    trapper_phone: Optional[str] = None
    trapper_number: Optional[str] = None


class ReleaseGroupRequest(BaseModel):
    date: date
    clinic_id: Optional[int] = None
    service_type: Optional[ServiceType] = None
    user_id: Optional[str] = None


class ReleaseGroupOut(BaseModel):
    deleted: int


class RosterGroupOut(BaseModel):
    group_key: str
    service_type: ServiceType
    user_id: Optional[str] = None
    trapper_number: str
    trapper_first_name: str
    trapper_last_name: str
    trapper_phone_display: str
    appointments: list[AppointmentOut]


class DayRosterOut(BaseModel):
    date: date
    clinic_id: int
    availability: AvailabilityOut
    capacity: Optional[CapacityOut] = None
    tnvr_count: int
    foster_count: int
    tnvr_groups: list[RosterGroupOut]
    foster_groups: list[RosterGroupOut]


class TrapperAppointmentGroupOut(BaseModel):
    date: date
    clinic_id: int
    clinic_name: str
    clinic_address: str
    tnvr_count: int
    foster_count: int
    appointments: list[AppointmentOut]


class TrapperAppointmentsOut(BaseModel):
    view: Literal["upcoming", "history"]
    groups: list[TrapperAppointmentGroupOut]


class ReconcileOut(BaseModel):
    updated: int
