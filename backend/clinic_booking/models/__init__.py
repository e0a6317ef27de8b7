from clinic_booking.models.base import Base
from clinic_booking.models.account import Account, PerformanceMetrics, Role
from clinic_booking.models.auth_identity import AuthIdentity
from clinic_booking.models.audit_log import AuditLog
from clinic_booking.models.clinic import CapacityRecord, Clinic
from clinic_booking.models.appointment import Appointment, AppointmentStatus, ServiceType

__all__ = [
    "Base",
    "Role",
    "Account",
    "PerformanceMetrics",
    "AuthIdentity",
    "AuditLog",
    "Clinic",
    "CapacityRecord",
    "Appointment",
    "AppointmentStatus",
    "ServiceType",
]
