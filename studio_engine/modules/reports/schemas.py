"""Payment report schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from studio_engine.core.enums import (
    BonusTypeEnum,
    ExpenseCategoryEnum,
    ReportGeneratedByEnum,
    ReportTypeEnum,
    SessionTypeEnum,
    TeacherTypeEnum,
)


class SessionTypeLine(BaseModel):
    """Count and commission of one session type."""

    count: int = 0
    commission: Decimal = Decimal("0")


class TeacherBonusLine(BaseModel):
    bonus_id: UUID
    amount: Decimal
    reason: str
    bonus_type: BonusTypeEnum


class TeacherPaymentLine(BaseModel):
    """Per-teacher payout inside a report."""

    teacher_id: UUID
    teacher_name: str
    teacher_type: TeacherTypeEnum
    sessions: dict[SessionTypeEnum, SessionTypeLine]
    total_sessions: int
    total_commission: Decimal
    base_salary: Decimal
    bonuses: list[TeacherBonusLine] = Field(default_factory=list)
    total_bonuses: Decimal = Decimal("0")
    total_payment: Decimal


class ExpenseLine(BaseModel):
    expense_id: UUID
    category: ExpenseCategoryEnum
    amount: Decimal
    description: str = ""


class PackageSoldLine(BaseModel):
    package_id: UUID
    customer_id: UUID
    customer_name: str
    package_name: str
    session_type: SessionTypeEnum
    total_sessions: int
    price: Decimal
    purchase_date: datetime


class ReportGenerateRequest(BaseModel):
    """Manual report generation request."""

    year: int = Field(ge=2000, le=2100)
    month: int = Field(ge=1, le=12)
    report_type: ReportTypeEnum = ReportTypeEnum.MONTHLY


class PaymentReportRead(BaseModel):
    """Payment report response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    year: int
    month: int
    report_type: ReportTypeEnum
    start_date: datetime
    end_date: datetime
    total_revenue: Decimal
    teacher_payments: list[TeacherPaymentLine]
    total_teacher_payments: Decimal
    expenses: list[ExpenseLine]
    total_expenses: Decimal
    total_costs: Decimal
    profit_loss: Decimal
    packages_sold: list[PackageSoldLine]
    total_packages_sold: int
    generated_at: datetime
    generated_by: ReportGeneratedByEnum


class ReportGenerationRead(BaseModel):
    """Outcome of a generate or regenerate call."""

    status: Literal["generated", "already_exists"]
    year: int
    month: int
    report_type: ReportTypeEnum
    report: PaymentReportRead | None = None
