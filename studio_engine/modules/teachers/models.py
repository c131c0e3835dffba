"""Teachers ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Enum as SAEnum, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studio_engine.core.database import Base, BaseModelMixin
from studio_engine.core.enums import TeacherTypeEnum

if TYPE_CHECKING:
    from studio_engine.modules.booking.models import Booking


class Teacher(BaseModelMixin, Base):
    """Teacher with commission class."""

    __tablename__ = "teachers"

    display_name: Mapped[str] = mapped_column(String(128), nullable=False)
    teacher_type: Mapped[TeacherTypeEnum] = mapped_column(
        SAEnum(TeacherTypeEnum, name="teacher_type_enum", native_enum=False),
        default=TeacherTypeEnum.FREELANCE,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    bookings: Mapped[list["Booking"]] = relationship(back_populates="teacher")
