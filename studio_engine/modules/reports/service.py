"""Payment report generation."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Literal
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from studio_engine.core.clock import Clock
from studio_engine.core.config import get_settings
from studio_engine.core.database import get_db_session
from studio_engine.core.enums import (
    ReportGeneratedByEnum,
    ReportTypeEnum,
    SessionTypeEnum,
    TeacherTypeEnum,
)
from studio_engine.core.metrics import PAYMENT_REPORTS_TOTAL
from studio_engine.modules.billing.models import Package
from studio_engine.modules.billing.repository import BillingRepository
from studio_engine.modules.booking.models import Booking
from studio_engine.modules.booking.repository import BookingRepository
from studio_engine.modules.reports.commission import DEFAULT_RATE_TABLE, RateTable, calculate_commission
from studio_engine.modules.reports.models import Bonus, Expense, PaymentReport
from studio_engine.modules.reports.repository import ReportsRepository
from studio_engine.modules.reports.schemas import (
    ExpenseLine,
    PackageSoldLine,
    SessionTypeLine,
    TeacherBonusLine,
    TeacherPaymentLine,
)
from studio_engine.modules.teachers.models import Teacher
from studio_engine.modules.teachers.repository import TeachersRepository
from studio_engine.shared.exceptions import BusinessRuleException
from studio_engine.shared.utils import month_bounds, previous_month

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(slots=True)
class ReportGenerationResult:
    status: Literal["generated", "already_exists"]
    year: int
    month: int
    report_type: ReportTypeEnum
    report: PaymentReport | None


class PaymentReportGenerator:
    """Assemble one immutable payment report per ``(year, month, report_type)``."""

    def __init__(
        self,
        reports_repository: ReportsRepository,
        booking_repository: BookingRepository,
        billing_repository: BillingRepository,
        teachers_repository: TeachersRepository,
        clock: Clock,
        *,
        rate_table: RateTable = DEFAULT_RATE_TABLE,
    ) -> None:
        self.reports_repository = reports_repository
        self.booking_repository = booking_repository
        self.billing_repository = billing_repository
        self.teachers_repository = teachers_repository
        self.clock = clock
        self.rate_table = rate_table

    async def generate_report(
        self,
        year: int,
        month: int,
        report_type: ReportTypeEnum = ReportTypeEnum.MONTHLY,
        generated_by: ReportGeneratedByEnum = ReportGeneratedByEnum.MANUAL,
    ) -> ReportGenerationResult:
        """Create the period's report unless it already exists.

        Timer-driven and manual calls share this path and its idempotency.
        """
        report_type = ReportTypeEnum(report_type)
        start_date, end_date = self._period_bounds(year, month)

        await self.reports_repository.lock_period(year, month, report_type)
        existing = await self.reports_repository.get_report(year, month, report_type)
        if existing is not None:
            logger.info("%s report for %s/%s already exists. Skipping...", report_type, year, month)
            PAYMENT_REPORTS_TOTAL.labels(report_type=str(report_type), outcome="skipped").inc()
            return ReportGenerationResult("already_exists", year, month, report_type, existing)

        try:
            report = await self._assemble_report(year, month, report_type, start_date, end_date)
        except Exception:
            logger.exception("Failed to gather data for %s report %s/%s", report_type, year, month)
            PAYMENT_REPORTS_TOTAL.labels(report_type=str(report_type), outcome="failed").inc()
            raise
        report.generated_by = ReportGeneratedByEnum(generated_by)

        if not await self.reports_repository.insert_report(report):
            logger.info("%s report for %s/%s was created concurrently. Skipping...", report_type, year, month)
            PAYMENT_REPORTS_TOTAL.labels(report_type=str(report_type), outcome="skipped").inc()
            winner = await self.reports_repository.get_report(year, month, report_type)
            return ReportGenerationResult("already_exists", year, month, report_type, winner)

        PAYMENT_REPORTS_TOTAL.labels(report_type=str(report_type), outcome="generated").inc()
        logger.info(
            "%s report for %s/%s generated. Total revenue: %s, profit/loss: %s",
            report_type,
            year,
            month,
            report.total_revenue,
            report.profit_loss,
        )
        return ReportGenerationResult("generated", year, month, report_type, report)

    async def regenerate_report(
        self,
        year: int,
        month: int,
        report_type: ReportTypeEnum = ReportTypeEnum.MONTHLY,
        generated_by: ReportGeneratedByEnum = ReportGeneratedByEnum.MANUAL,
    ) -> ReportGenerationResult:
        """Delete and rebuild a period's report as one locked operation."""
        report_type = ReportTypeEnum(report_type)
        self._period_bounds(year, month)

        await self.reports_repository.lock_period(year, month, report_type)
        if await self.reports_repository.delete_report(year, month, report_type):
            logger.info("Deleted %s report for %s/%s for regeneration", report_type, year, month)
        return await self.generate_report(year, month, report_type, generated_by)

    async def generate_previous_month_report(self) -> ReportGenerationResult:
        """Scheduled entry point: the last closed month in studio time."""
        today = self.clock.now_in_studio()
        year, month = previous_month(today.year, today.month)
        return await self.generate_report(
            year,
            month,
            ReportTypeEnum.MONTHLY,
            ReportGeneratedByEnum.AUTO,
        )

    async def get_report(self, year: int, month: int, report_type: ReportTypeEnum) -> PaymentReport | None:
        return await self.reports_repository.get_report(year, month, report_type)

    async def list_reports(
        self,
        limit: int,
        offset: int,
        *,
        year: int | None = None,
        month: int | None = None,
        report_type: ReportTypeEnum | None = None,
    ) -> tuple[Sequence[PaymentReport], int]:
        return await self.reports_repository.list_reports(
            limit,
            offset,
            year=year,
            month=month,
            report_type=report_type,
        )

    @staticmethod
    def _period_bounds(year: int, month: int):
        # Every report type resolves to the containing calendar month.
        if not 1 <= month <= 12:
            raise BusinessRuleException("Invalid month. Must be between 1 and 12")
        return month_bounds(year, month)

    async def _assemble_report(self, year, month, report_type, start_date, end_date) -> PaymentReport:
        teachers = await self.teachers_repository.list_teachers()
        completed = await self.booking_repository.list_completed_between(start_date, end_date)
        packages = await self.billing_repository.list_packages_created_between(start_date, end_date)
        bonuses = await self.reports_repository.list_bonuses_for_period(year, month)
        expenses = await self.reports_repository.list_expenses_for_period(year, month)

        teacher_payments = self._teacher_payments(teachers, completed, bonuses)
        packages_sold = [self._package_line(package) for package in packages]
        expense_lines = [self._expense_line(expense) for expense in expenses]

        total_revenue = sum((line.price for line in packages_sold), ZERO)
        total_teacher_payments = sum((line.total_payment for line in teacher_payments), ZERO)
        total_expenses = sum((line.amount for line in expense_lines), ZERO)
        total_costs = total_teacher_payments + total_expenses

        return PaymentReport(
            year=year,
            month=month,
            report_type=report_type,
            start_date=start_date,
            end_date=end_date,
            total_revenue=total_revenue,
            teacher_payments=[line.model_dump(mode="json") for line in teacher_payments],
            total_teacher_payments=total_teacher_payments,
            expenses=[line.model_dump(mode="json") for line in expense_lines],
            total_expenses=total_expenses,
            total_costs=total_costs,
            profit_loss=total_revenue - total_costs,
            packages_sold=[line.model_dump(mode="json") for line in packages_sold],
            total_packages_sold=len(packages_sold),
            generated_at=self.clock.now(),
        )

    def _teacher_payments(
        self,
        teachers: Sequence[Teacher],
        completed: Sequence[Booking],
        bonuses: Sequence[Bonus],
    ) -> list[TeacherPaymentLine]:
        known_teachers = {teacher.id for teacher in teachers}

        sessions: dict[UUID, list[SessionTypeEnum]] = defaultdict(list)
        for booking in completed:
            if booking.teacher_id not in known_teachers:
                logger.warning("Booking %s references unknown teacher %s, skipped", booking.id, booking.teacher_id)
                continue
            session_type = self._session_type(booking)
            if session_type is None:
                continue
            sessions[booking.teacher_id].append(session_type)

        bonuses_by_teacher: dict[UUID, list[Bonus]] = defaultdict(list)
        for bonus in bonuses:
            if bonus.teacher_id not in known_teachers:
                logger.warning("Bonus %s references unknown teacher %s, skipped", bonus.id, bonus.teacher_id)
                continue
            bonuses_by_teacher[bonus.teacher_id].append(bonus)

        lines: list[TeacherPaymentLine] = []
        for teacher in teachers:
            breakdown = calculate_commission(teacher.teacher_type, sessions[teacher.id], self.rate_table)
            teacher_bonuses = bonuses_by_teacher[teacher.id]
            total_bonuses = sum((Decimal(bonus.amount) for bonus in teacher_bonuses), ZERO)

            # Freelancers without sessions or bonuses owe nothing; studio staff still draw salary.
            if (
                breakdown.total_sessions == 0
                and not teacher_bonuses
                and breakdown.teacher_type == TeacherTypeEnum.FREELANCE
            ):
                continue

            lines.append(
                TeacherPaymentLine(
                    teacher_id=teacher.id,
                    teacher_name=teacher.display_name,
                    teacher_type=breakdown.teacher_type,
                    sessions={
                        session_type: SessionTypeLine(count=line.count, commission=line.commission)
                        for session_type, line in breakdown.sessions.items()
                    },
                    total_sessions=breakdown.total_sessions,
                    total_commission=breakdown.total_commission,
                    base_salary=breakdown.base_salary,
                    bonuses=[
                        TeacherBonusLine(
                            bonus_id=bonus.id,
                            amount=bonus.amount,
                            reason=bonus.reason,
                            bonus_type=bonus.bonus_type,
                        )
                        for bonus in teacher_bonuses
                    ],
                    total_bonuses=total_bonuses,
                    total_payment=breakdown.with_bonuses(total_bonuses),
                ),
            )
        return lines

    @staticmethod
    def _session_type(booking: Booking) -> SessionTypeEnum | None:
        """Billing category from the linked package, or the booking for ad-hoc sessions."""
        if booking.package_id is None:
            return SessionTypeEnum(booking.session_type)
        package = booking.package
        if package is None:
            logger.warning("Booking %s references missing package %s, skipped", booking.id, booking.package_id)
            return None
        return SessionTypeEnum(package.session_type)

    @staticmethod
    def _package_line(package: Package) -> PackageSoldLine:
        customer = package.customer
        return PackageSoldLine(
            package_id=package.id,
            customer_id=package.customer_id,
            customer_name=customer.display_name if customer is not None else "Unknown",
            package_name=package.name,
            session_type=package.session_type,
            total_sessions=package.total_sessions,
            price=package.price,
            purchase_date=package.created_at,
        )

    @staticmethod
    def _expense_line(expense: Expense) -> ExpenseLine:
        return ExpenseLine(
            expense_id=expense.id,
            category=expense.category,
            amount=expense.amount,
            description=expense.description or "",
        )


async def get_payment_report_generator(
    session: AsyncSession = Depends(get_db_session),
) -> PaymentReportGenerator:
    """Dependency provider for the report generator."""
    settings = get_settings()
    return PaymentReportGenerator(
        reports_repository=ReportsRepository(session),
        booking_repository=BookingRepository(session),
        billing_repository=BillingRepository(session),
        teachers_repository=TeachersRepository(session),
        clock=Clock(settings.studio_timezone),
    )
