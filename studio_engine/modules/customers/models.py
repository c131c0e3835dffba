"""Customer ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studio_engine.core.database import Base, BaseModelMixin

if TYPE_CHECKING:
    from studio_engine.modules.billing.models import Package
    from studio_engine.modules.booking.models import Booking


class Customer(BaseModelMixin, Base):
    """Studio customer account.

    ``created_at`` doubles as the account creation date shown to staff and is
    kept chronologically before the customer's first package and session.
    """

    __tablename__ = "customers"

    display_name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, index=True, nullable=True)

    packages: Mapped[list["Package"]] = relationship(back_populates="customer")
    bookings: Mapped[list["Booking"]] = relationship(back_populates="customer")
