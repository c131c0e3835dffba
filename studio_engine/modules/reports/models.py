"""Payment report ORM models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from studio_engine.core.database import Base, BaseModelMixin
from studio_engine.core.enums import (
    BonusStatusEnum,
    BonusTypeEnum,
    ExpenseCategoryEnum,
    ReportGeneratedByEnum,
    ReportTypeEnum,
)
from studio_engine.shared.utils import utc_now


class PaymentReport(BaseModelMixin, Base):
    """Immutable financial snapshot of one reporting period."""

    __tablename__ = "payment_reports"
    __table_args__ = (
        UniqueConstraint("year", "month", "report_type", name="uq_payment_reports_period"),
        Index("ix_payment_reports_start_date_end_date", "start_date", "end_date"),
    )

    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    report_type: Mapped[ReportTypeEnum] = mapped_column(
        SAEnum(ReportTypeEnum, name="report_type_enum", native_enum=False),
        nullable=False,
    )
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    total_revenue: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"), nullable=False)
    teacher_payments: Mapped[list[dict]] = mapped_column(JSONB, default=list, nullable=False)
    total_teacher_payments: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"), nullable=False)
    expenses: Mapped[list[dict]] = mapped_column(JSONB, default=list, nullable=False)
    total_expenses: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"), nullable=False)
    total_costs: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"), nullable=False)
    profit_loss: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"), nullable=False)
    packages_sold: Mapped[list[dict]] = mapped_column(JSONB, default=list, nullable=False)
    total_packages_sold: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    generated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
        index=True,
    )
    generated_by: Mapped[ReportGeneratedByEnum] = mapped_column(
        SAEnum(ReportGeneratedByEnum, name="report_generated_by_enum", native_enum=False),
        default=ReportGeneratedByEnum.AUTO,
        nullable=False,
    )


class Bonus(BaseModelMixin, Base):
    """Admin-entered teacher bonus for a month."""

    __tablename__ = "bonuses"
    __table_args__ = (Index("ix_bonuses_teacher_id_year_month", "teacher_id", "year", "month"),)

    teacher_id: Mapped[UUID] = mapped_column(
        ForeignKey("teachers.id", ondelete="CASCADE"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    reason: Mapped[str] = mapped_column(String(255), nullable=False)
    bonus_type: Mapped[BonusTypeEnum] = mapped_column(
        SAEnum(BonusTypeEnum, name="bonus_type_enum", native_enum=False),
        default=BonusTypeEnum.ONE_TIME,
        nullable=False,
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[BonusStatusEnum] = mapped_column(
        SAEnum(BonusStatusEnum, name="bonus_status_enum", native_enum=False),
        default=BonusStatusEnum.APPROVED,
        nullable=False,
        index=True,
    )
    report_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("payment_reports.id", ondelete="SET NULL"),
        nullable=True,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class Expense(BaseModelMixin, Base):
    """Admin-entered studio expense for a month."""

    __tablename__ = "expenses"
    __table_args__ = (Index("ix_expenses_year_month", "year", "month"),)

    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[ExpenseCategoryEnum] = mapped_column(
        SAEnum(ExpenseCategoryEnum, name="expense_category_enum", native_enum=False),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    description: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    report_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("payment_reports.id", ondelete="SET NULL"),
        nullable=True,
    )
