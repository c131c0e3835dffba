"""Booking repository layer."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction
from sqlalchemy.orm import selectinload

from studio_engine.core.enums import BookingStatusEnum
from studio_engine.modules.booking.models import Booking


class BookingRepository:
    """DB operations for booking lifecycle."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def savepoint(self) -> AsyncSessionTransaction:
        """Nested transaction isolating one booking's write from the batch."""
        return self.session.begin_nested()

    async def get_booking_by_id(self, booking_id: UUID) -> Booking | None:
        stmt = select(Booking).where(Booking.id == booking_id)
        return await self.session.scalar(stmt)

    async def find_auto_confirm_candidates(self, cutoff: datetime, limit: int) -> Sequence[Booking]:
        """Pending bookings requested at or before ``cutoff``."""
        pending_since = func.coalesce(Booking.pending_since, Booking.created_at)
        stmt = (
            select(Booking)
            .where(
                Booking.status == BookingStatusEnum.PENDING,
                Booking.auto_confirmed.is_(False),
                pending_since <= cutoff,
            )
            .order_by(pending_since.asc())
            .limit(limit)
        )
        return (await self.session.scalars(stmt)).all()

    async def find_auto_complete_candidates(self, now: datetime, limit: int) -> Sequence[Booking]:
        """Confirmed bookings whose session already ended."""
        stmt = (
            select(Booking)
            .where(
                Booking.status == BookingStatusEnum.CONFIRMED,
                Booking.end_time < now,
            )
            .order_by(Booking.end_time.asc())
            .limit(limit)
        )
        return (await self.session.scalars(stmt)).all()

    async def compare_and_set(
        self,
        booking_id: UUID,
        expected_status: BookingStatusEnum,
        changes: dict[str, Any],
        *,
        require_not_auto_confirmed: bool = False,
    ) -> bool:
        """Apply ``changes`` only if the row is still in ``expected_status``.

        Returns False when another actor moved the booking first.
        """
        conditions = [Booking.id == booking_id, Booking.status == expected_status]
        if require_not_auto_confirmed:
            conditions.append(Booking.auto_confirmed.is_(False))

        stmt = (
            update(Booking)
            .where(*conditions)
            .values(**changes)
            .returning(Booking.id)
            .execution_options(synchronize_session=False)
        )
        updated_id = (await self.session.execute(stmt)).scalar_one_or_none()
        return updated_id is not None

    async def list_completed_between(self, start: datetime, end: datetime) -> Sequence[Booking]:
        """Completed bookings whose session started inside ``[start, end]``."""
        stmt = (
            select(Booking)
            .options(selectinload(Booking.package))
            .where(
                Booking.status == BookingStatusEnum.COMPLETED,
                Booking.start_time >= start,
                Booking.start_time <= end,
            )
            .order_by(Booking.start_time.asc())
        )
        return (await self.session.scalars(stmt)).all()

    async def count_package_bookings(
        self,
        package_id: UUID,
        now: datetime,
    ) -> dict[tuple[BookingStatusEnum, bool], int]:
        """Count bookings of a package by ``(status, ended_before_now)``."""
        ended = Booking.end_time < now
        stmt = (
            select(Booking.status, ended, func.count())
            .where(Booking.package_id == package_id)
            .group_by(Booking.status, ended)
        )
        rows = (await self.session.execute(stmt)).all()
        return {(status, bool(is_past)): int(count) for status, is_past, count in rows}

    async def earliest_session_starts(self, customer_id: UUID) -> tuple[datetime | None, dict[UUID, datetime]]:
        """Return the customer's earliest session and the earliest per package."""
        stmt = (
            select(Booking.package_id, func.min(Booking.start_time))
            .where(Booking.customer_id == customer_id)
            .group_by(Booking.package_id)
        )
        rows = (await self.session.execute(stmt)).all()
        per_package = {package_id: started for package_id, started in rows if package_id is not None}
        starts = [started for _, started in rows if started is not None]
        return (min(starts) if starts else None), per_package
