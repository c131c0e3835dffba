"""Billing repository layer."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from studio_engine.core.enums import PackageStatusEnum
from studio_engine.modules.billing.models import Package


class BillingRepository:
    """DB access methods for session packages."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_package_by_id(self, package_id: UUID) -> Package | None:
        stmt = select(Package).where(Package.id == package_id)
        return await self.session.scalar(stmt)

    async def list_packages_created_between(self, start: datetime, end: datetime) -> Sequence[Package]:
        """Packages sold inside ``[start, end]`` with their customer loaded."""
        stmt = (
            select(Package)
            .options(selectinload(Package.customer))
            .where(Package.created_at >= start, Package.created_at <= end)
            .order_by(Package.created_at.asc())
        )
        return (await self.session.scalars(stmt)).all()

    async def list_packages_for_customer(self, customer_id: UUID) -> Sequence[Package]:
        stmt = (
            select(Package)
            .where(Package.customer_id == customer_id)
            .order_by(Package.created_at.asc())
        )
        return (await self.session.scalars(stmt)).all()

    async def find_packages_to_expire(self, now: datetime, limit: int) -> Sequence[Package]:
        stmt = (
            select(Package)
            .where(
                Package.status == PackageStatusEnum.ACTIVE,
                Package.valid_to < now,
            )
            .limit(limit)
        )
        return (await self.session.scalars(stmt)).all()

    async def find_depleted_packages(self, limit: int) -> Sequence[Package]:
        stmt = (
            select(Package)
            .where(
                Package.status == PackageStatusEnum.ACTIVE,
                Package.remaining_sessions <= 0,
            )
            .limit(limit)
        )
        return (await self.session.scalars(stmt)).all()

    async def compare_and_set_status(
        self,
        package_id: UUID,
        expected_status: PackageStatusEnum,
        status: PackageStatusEnum,
    ) -> bool:
        stmt = (
            update(Package)
            .where(Package.id == package_id, Package.status == expected_status)
            .values(status=status)
            .returning(Package.id)
            .execution_options(synchronize_session=False)
        )
        return (await self.session.execute(stmt)).scalar_one_or_none() is not None

    async def set_validity(
        self,
        package: Package,
        valid_from: datetime,
        valid_to: datetime,
    ) -> Package:
        """Rewrite the validity window; purchase date follows ``valid_from``."""
        package.valid_from = valid_from
        package.valid_to = valid_to
        package.created_at = valid_from
        package.updated_at = valid_from
        await self.session.flush()
        return package
