from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic_booking.models.base import AuditMixin, Base


class ServiceType(str, enum.Enum):
    tnvr = "TNVR"
    foster = "Foster"


class AppointmentStatus(str, enum.Enum):
    upcoming = "Upcoming"
    completed = "Completed"
    # Release deletes the row, so no flow writes this value.
    canceled = "Canceled"


class Appointment(Base, AuditMixin):
    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[str | None] = mapped_column(
        ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True, index=True
    )
    trapper_first_name: Mapped[str] = mapped_column(String(120), default="", nullable=False)
    trapper_last_name: Mapped[str] = mapped_column(String(120), default="", nullable=False)
    trapper_phone: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    trapper_number: Mapped[str] = mapped_column(String(32), default="", nullable=False)
    service_type: Mapped[ServiceType] = mapped_column(
        Enum(ServiceType, name="service_type"), nullable=False
    )
    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id"), nullable=False, index=True)
    clinic_address: Mapped[str] = mapped_column(Text, nullable=False)
    appointment_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    status: Mapped[AppointmentStatus] = mapped_column(
        Enum(AppointmentStatus, name="appointment_status"),
        default=AppointmentStatus.upcoming,
        nullable=False,
        index=True,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    clinic = relationship("Clinic", lazy="joined")
