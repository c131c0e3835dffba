"""Billing ORM models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Numeric, String
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studio_engine.core.database import Base, BaseModelMixin
from studio_engine.core.enums import PackageStatusEnum, SessionTypeEnum

if TYPE_CHECKING:
    from studio_engine.modules.booking.models import Booking
    from studio_engine.modules.customers.models import Customer


class Package(BaseModelMixin, Base):
    """Prepaid bundle of sessions owned by a customer."""

    __tablename__ = "packages"
    __table_args__ = (
        CheckConstraint("total_sessions >= 1", name="total_sessions_positive"),
        CheckConstraint(
            "remaining_sessions >= 0 AND remaining_sessions <= total_sessions",
            name="remaining_sessions_range",
        ),
        CheckConstraint("valid_from < valid_to", name="validity_window"),
    )

    customer_id: Mapped[UUID] = mapped_column(
        ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    session_type: Mapped[SessionTypeEnum] = mapped_column(
        SAEnum(SessionTypeEnum, name="session_type_enum", native_enum=False),
        nullable=False,
    )
    total_sessions: Mapped[int] = mapped_column(nullable=False)
    remaining_sessions: Mapped[int] = mapped_column(nullable=False)
    valid_from: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    valid_to: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="THB", nullable=False)
    status: Mapped[PackageStatusEnum] = mapped_column(
        SAEnum(PackageStatusEnum, name="package_status_enum", native_enum=False),
        default=PackageStatusEnum.ACTIVE,
        nullable=False,
        index=True,
    )

    customer: Mapped["Customer"] = relationship(back_populates="packages")
    bookings: Mapped[list["Booking"]] = relationship(back_populates="package")
