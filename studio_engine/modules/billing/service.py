"""Package ledger: session accounting and status upkeep."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from studio_engine.core.clock import Clock
from studio_engine.core.enums import BookingStatusEnum, PackageStatusEnum
from studio_engine.modules.billing.models import Package
from studio_engine.modules.billing.repository import BillingRepository
from studio_engine.modules.booking.repository import BookingRepository

logger = logging.getLogger(__name__)

# Statuses that hold a reserved session, split by whether the slot has ended.
_RESERVED_STATUSES = (BookingStatusEnum.CONFIRMED, BookingStatusEnum.CANCELLATION_REQUESTED)


@dataclass(frozen=True, slots=True)
class SessionAccounting:
    """Breakdown of where a package's sessions went."""

    package_id: UUID
    total_sessions: int
    remaining_sessions: int
    completed: int
    no_show: int
    past_confirmed: int
    future_confirmed: int
    cancelled: int

    @property
    def consumed(self) -> int:
        return (
            self.completed
            + self.no_show
            + self.past_confirmed
            + self.future_confirmed
            + self.cancelled
        )

    @property
    def accounted(self) -> int:
        return self.remaining_sessions + self.consumed

    @property
    def is_balanced(self) -> bool:
        return self.accounted == self.total_sessions

    @property
    def discrepancy(self) -> int:
        """Positive when sessions are missing, negative when over-consumed."""
        return self.total_sessions - self.accounted


class PackageLedger:
    """Read-side view over package counters plus status maintenance."""

    def __init__(
        self,
        billing_repository: BillingRepository,
        booking_repository: BookingRepository,
        clock: Clock,
        *,
        batch_size: int = 500,
    ) -> None:
        self.billing_repository = billing_repository
        self.booking_repository = booking_repository
        self.clock = clock
        self.batch_size = batch_size

    async def session_accounting(self, package: Package) -> SessionAccounting:
        """Partition the package's bookings for the reconciliation law."""
        counts = await self.booking_repository.count_package_bookings(package.id, self.clock.now())

        def count(status: BookingStatusEnum, *, past: bool | None = None) -> int:
            if past is None:
                return counts.get((status, True), 0) + counts.get((status, False), 0)
            return counts.get((status, past), 0)

        return SessionAccounting(
            package_id=package.id,
            total_sessions=package.total_sessions,
            remaining_sessions=package.remaining_sessions,
            completed=count(BookingStatusEnum.COMPLETED),
            no_show=count(BookingStatusEnum.NO_SHOW),
            past_confirmed=sum(count(status, past=True) for status in _RESERVED_STATUSES),
            future_confirmed=sum(count(status, past=False) for status in _RESERVED_STATUSES),
            cancelled=count(BookingStatusEnum.CANCELLED),
        )

    async def refresh_statuses(self) -> dict[str, int]:
        """Mark lapsed packages expired and used-up packages depleted.

        Only the status column is touched; counters belong to the booking flow.
        """
        now = self.clock.now()
        stats = {"expired": 0, "depleted": 0}

        for package in await self.billing_repository.find_packages_to_expire(now, self.batch_size):
            if await self.billing_repository.compare_and_set_status(
                package.id,
                PackageStatusEnum.ACTIVE,
                PackageStatusEnum.EXPIRED,
            ):
                stats["expired"] += 1

        for package in await self.billing_repository.find_depleted_packages(self.batch_size):
            if await self.billing_repository.compare_and_set_status(
                package.id,
                PackageStatusEnum.ACTIVE,
                PackageStatusEnum.DEPLETED,
            ):
                stats["depleted"] += 1

        if stats["expired"] or stats["depleted"]:
            logger.info(
                "Package statuses refreshed: %s expired, %s depleted",
                stats["expired"],
                stats["depleted"],
            )
        return stats
