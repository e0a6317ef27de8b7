from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr

from clinic_booking.models.account import Role as RoleEnum


class PerformanceMetricsBase(BaseModel):
    total_appointments_booked: int = 0
    total_appointments_completed: int = 0
    total_appointments_over_booked: int = 0
    total_appointments_under_booked: int = 0
    commitment_score: int = 0
    strikes: int = 0


class PerformanceMetricsOut(PerformanceMetricsBase):
    model_config = ConfigDict(from_attributes=True)


class PerformanceMetricsUpdate(PerformanceMetricsBase):
    pass


class AccountOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: EmailStr
    first_name: str
    last_name: str
    phone: str
    address: str
    role: RoleEnum
    trapper_number: Optional[str] = None
    trapper_region: list[str] = []
    equipment: int = 0
    is_active: bool
    booking_access_restricted: bool
    restriction_reason: Optional[str] = None
    notifications_enabled: bool
    performance_metrics: Optional[PerformanceMetricsOut] = None
    created_at: datetime


class AdminAccountOut(AccountOut):
    code: Optional[str] = None


# Presence and format are checked by the provisioning service so that
# failures come back as field-level InvalidArgument errors.
class AccountCreate(BaseModel):
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    address: str = ""
    role: str = RoleEnum.trapper.value
    trapper_number: Optional[str] = None
    trapper_region: list[str] = []
    equipment: int = 0
    code: str = ""


class AccountCreated(BaseModel):
    id: str


class AccountUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    role: Optional[RoleEnum] = None
    trapper_number: Optional[str] = None
    trapper_region: Optional[list[str]] = None
    equipment: Optional[int] = None
    is_active: Optional[bool] = None
    booking_access_restricted: Optional[bool] = None
    restriction_reason: Optional[str] = None


class CredentialChange(BaseModel):
    new_code: str


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class NotificationTokenIn(BaseModel):
    token: str
