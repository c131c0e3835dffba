"""Booking ORM models."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, DateTime, Enum as SAEnum, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studio_engine.core.database import Base, BaseModelMixin
from studio_engine.core.enums import BookingStatusEnum, SessionTypeEnum

if TYPE_CHECKING:
    from studio_engine.modules.billing.models import Package
    from studio_engine.modules.customers.models import Customer
    from studio_engine.modules.teachers.models import Teacher


class Booking(BaseModelMixin, Base):
    """Studio session booking."""

    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="time_interval"),
        Index("ix_bookings_status_start_time", "status", "start_time"),
        Index("ix_bookings_teacher_id_start_time", "teacher_id", "start_time"),
    )

    customer_id: Mapped[UUID] = mapped_column(
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    teacher_id: Mapped[UUID] = mapped_column(
        ForeignKey("teachers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    package_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("packages.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    session_type: Mapped[SessionTypeEnum] = mapped_column(
        SAEnum(SessionTypeEnum, name="session_type_enum", native_enum=False),
        default=SessionTypeEnum.PRIVATE,
        nullable=False,
    )

    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    status: Mapped[BookingStatusEnum] = mapped_column(
        SAEnum(BookingStatusEnum, name="booking_status_enum", native_enum=False),
        default=BookingStatusEnum.PENDING,
        nullable=False,
        index=True,
    )
    auto_confirmed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    pending_since: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    attendance_marked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(String(512), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    customer: Mapped["Customer"] = relationship(back_populates="bookings")
    teacher: Mapped["Teacher"] = relationship(back_populates="bookings")
    package: Mapped["Package | None"] = relationship(back_populates="bookings")
