from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic_booking.models.base import Base


class Role(str, enum.Enum):
    trapper = "trapper"
    admin = "admin"


class Account(Base):
    __tablename__ = "accounts"

    # Mirrors the uid issued by the identity service.
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(120), default="", nullable=False)
    last_name: Mapped[str] = mapped_column(String(120), default="", nullable=False)
    phone: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    address: Mapped[str] = mapped_column(Text, default="", nullable=False)
    role: Mapped[Role] = mapped_column(Enum(Role, name="account_role"), default=Role.trapper, nullable=False)
    trapper_number: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    trapper_region: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    equipment: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    code: Mapped[str | None] = mapped_column(String(4), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    booking_access_restricted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    restriction_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    notifications_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notification_tokens: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    performance_metrics: Mapped["PerformanceMetrics"] = relationship(
        back_populates="account",
        cascade="all, delete-orphan",
        lazy="joined",
        uselist=False,
    )

    @property
    def has_booking_identity(self) -> bool:
        return all(value and value.strip() for value in (self.first_name, self.last_name, self.phone))


class PerformanceMetrics(Base):
    __tablename__ = "performance_metrics"

    account_id: Mapped[str] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True
    )
    total_appointments_booked: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_appointments_completed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_appointments_over_booked: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_appointments_under_booked: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    commitment_score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    strikes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    account: Mapped[Account] = relationship(back_populates="performance_metrics")
