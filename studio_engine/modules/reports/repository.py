"""Payment report repository layer."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import Select, delete, func, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from studio_engine.core.enums import BonusStatusEnum, ReportTypeEnum
from studio_engine.modules.reports.models import Bonus, Expense, PaymentReport

# First key of the two-int advisory lock, reserved for report periods.
REPORT_LOCK_NAMESPACE = 7301

_REPORT_TYPE_CODES = {report_type: index for index, report_type in enumerate(ReportTypeEnum)}


def period_lock_key(year: int, month: int, report_type: ReportTypeEnum) -> int:
    return year * 1000 + month * 10 + _REPORT_TYPE_CODES[ReportTypeEnum(report_type)]


class ReportsRepository:
    """DB operations for payment reports and their inputs."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def lock_period(self, year: int, month: int, report_type: ReportTypeEnum) -> None:
        """Serialize writers of one period until the transaction ends."""
        await self.session.execute(
            text("SELECT pg_advisory_xact_lock(:namespace, :key)"),
            {"namespace": REPORT_LOCK_NAMESPACE, "key": period_lock_key(year, month, report_type)},
        )

    async def get_report(
        self,
        year: int,
        month: int,
        report_type: ReportTypeEnum,
    ) -> PaymentReport | None:
        stmt = select(PaymentReport).where(
            PaymentReport.year == year,
            PaymentReport.month == month,
            PaymentReport.report_type == report_type,
        )
        return await self.session.scalar(stmt)

    async def insert_report(self, report: PaymentReport) -> bool:
        """Insert a new report; False if the period key is already taken."""
        try:
            async with self.session.begin_nested():
                self.session.add(report)
                await self.session.flush()
        except IntegrityError:
            return False
        return True

    async def delete_report(self, year: int, month: int, report_type: ReportTypeEnum) -> bool:
        stmt = (
            delete(PaymentReport)
            .where(
                PaymentReport.year == year,
                PaymentReport.month == month,
                PaymentReport.report_type == report_type,
            )
            .returning(PaymentReport.id)
        )
        deleted = (await self.session.execute(stmt)).scalars().all()
        return bool(deleted)

    async def list_reports(
        self,
        limit: int,
        offset: int,
        *,
        year: int | None = None,
        month: int | None = None,
        report_type: ReportTypeEnum | None = None,
    ) -> tuple[Sequence[PaymentReport], int]:
        base_stmt: Select[tuple[PaymentReport]] = select(PaymentReport)
        if year is not None:
            base_stmt = base_stmt.where(PaymentReport.year == year)
        if month is not None:
            base_stmt = base_stmt.where(PaymentReport.month == month)
        if report_type is not None:
            base_stmt = base_stmt.where(PaymentReport.report_type == report_type)

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = (
            base_stmt.order_by(PaymentReport.year.desc(), PaymentReport.month.desc())
            .limit(limit)
            .offset(offset)
        )
        items = (await self.session.scalars(stmt)).all()
        return items, total

    async def list_bonuses_for_period(self, year: int, month: int) -> Sequence[Bonus]:
        """Approved or paid bonuses tagged to the period."""
        stmt = (
            select(Bonus)
            .where(
                Bonus.year == year,
                Bonus.month == month,
                Bonus.status.in_((BonusStatusEnum.APPROVED, BonusStatusEnum.PAID)),
            )
            .order_by(Bonus.created_at.asc())
        )
        return (await self.session.scalars(stmt)).all()

    async def list_expenses_for_period(self, year: int, month: int) -> Sequence[Expense]:
        stmt = (
            select(Expense)
            .where(Expense.year == year, Expense.month == month)
            .order_by(Expense.created_at.asc())
        )
        return (await self.session.scalars(stmt)).all()
