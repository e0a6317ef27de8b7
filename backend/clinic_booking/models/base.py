from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, func
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column, relationship

if TYPE_CHECKING:
    from clinic_booking.models.account import Account


class Base(DeclarativeBase):
    pass


class AuditMixin:
    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
        )

    @declared_attr
    def created_by_user_id(cls) -> Mapped[str | None]:
        return mapped_column(ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True)

    @declared_attr
    def last_modified_by_user_id(cls) -> Mapped[str | None]:
        return mapped_column(ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True)

    @declared_attr
    def created_by(cls) -> Mapped["Account"]:
        return relationship("Account", foreign_keys=[cls.created_by_user_id], lazy="joined")

    @declared_attr
    def last_modified_by(cls) -> Mapped["Account"]:
        return relationship("Account", foreign_keys=[cls.last_modified_by_user_id], lazy="joined")
