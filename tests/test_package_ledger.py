from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from studio_engine.core.clock import FixedClock
from studio_engine.core.enums import BookingStatusEnum, PackageStatusEnum
from studio_engine.modules.billing.service import PackageLedger

NOW = datetime(2025, 11, 15, 12, 0, tzinfo=UTC)


@dataclass
class FakePackage:
    id: UUID
    total_sessions: int
    remaining_sessions: int
    valid_to: datetime
    status: PackageStatusEnum = PackageStatusEnum.ACTIVE


@dataclass
class FakeBooking:
    package_id: UUID
    status: BookingStatusEnum
    end_time: datetime


class FakeBookingRepository:
    def __init__(self, bookings: list[FakeBooking]) -> None:
        self.bookings = bookings

    async def count_package_bookings(self, package_id: UUID, now: datetime) -> dict:
        counts: dict[tuple[BookingStatusEnum, bool], int] = {}
        for booking in self.bookings:
            if booking.package_id != package_id:
                continue
            key = (booking.status, booking.end_time < now)
            counts[key] = counts.get(key, 0) + 1
        return counts


class FakeBillingRepository:
    def __init__(self, packages: list[FakePackage]) -> None:
        self.packages = {package.id: package for package in packages}

    async def find_packages_to_expire(self, now: datetime, limit: int) -> list[FakePackage]:
        return [
            package
            for package in self.packages.values()
            if package.status == PackageStatusEnum.ACTIVE and package.valid_to < now
        ][:limit]

    async def find_depleted_packages(self, limit: int) -> list[FakePackage]:
        return [
            package
            for package in self.packages.values()
            if package.status == PackageStatusEnum.ACTIVE and package.remaining_sessions <= 0
        ][:limit]

    async def compare_and_set_status(
        self,
        package_id: UUID,
        expected_status: PackageStatusEnum,
        status: PackageStatusEnum,
    ) -> bool:
        package = self.packages[package_id]
        if package.status != expected_status:
            return False
        package.status = status
        return True


def make_ledger(packages: list[FakePackage], bookings: list[FakeBooking]) -> PackageLedger:
    return PackageLedger(
        billing_repository=FakeBillingRepository(packages),  # type: ignore[arg-type]
        booking_repository=FakeBookingRepository(bookings),  # type: ignore[arg-type]
        clock=FixedClock(NOW),
    )


def _booking(package: FakePackage, status: BookingStatusEnum, *, days: int) -> FakeBooking:
    return FakeBooking(package_id=package.id, status=status, end_time=NOW + timedelta(days=days))


@pytest.mark.asyncio
async def test_session_accounting_partitions_bookings() -> None:
    package = FakePackage(uuid4(), total_sessions=10, remaining_sessions=3, valid_to=NOW + timedelta(days=300))
    bookings = [
        _booking(package, BookingStatusEnum.COMPLETED, days=-10),
        _booking(package, BookingStatusEnum.COMPLETED, days=-9),
        _booking(package, BookingStatusEnum.NO_SHOW, days=-8),
        _booking(package, BookingStatusEnum.CONFIRMED, days=-1),
        _booking(package, BookingStatusEnum.CONFIRMED, days=2),
        _booking(package, BookingStatusEnum.CANCELLATION_REQUESTED, days=3),
        _booking(package, BookingStatusEnum.CANCELLED, days=-5),
        # Pending requests hold no session yet.
        _booking(package, BookingStatusEnum.PENDING, days=4),
    ]
    ledger = make_ledger([package], bookings)

    accounting = await ledger.session_accounting(package)  # type: ignore[arg-type]

    assert accounting.completed == 2
    assert accounting.no_show == 1
    assert accounting.past_confirmed == 1
    assert accounting.future_confirmed == 2
    assert accounting.cancelled == 1
    assert accounting.is_balanced
    assert accounting.discrepancy == 0


@pytest.mark.asyncio
async def test_session_accounting_reports_missing_sessions() -> None:
    package = FakePackage(uuid4(), total_sessions=5, remaining_sessions=4, valid_to=NOW + timedelta(days=300))
    ledger = make_ledger([package], [_booking(package, BookingStatusEnum.COMPLETED, days=-1)])
    other = FakePackage(uuid4(), total_sessions=5, remaining_sessions=5, valid_to=NOW)

    accounting = await ledger.session_accounting(package)  # type: ignore[arg-type]
    untouched = await ledger.session_accounting(other)  # type: ignore[arg-type]

    assert accounting.is_balanced
    assert untouched.is_balanced

    package.remaining_sessions = 2
    broken = await ledger.session_accounting(package)  # type: ignore[arg-type]
    assert not broken.is_balanced
    assert broken.discrepancy == 2


@pytest.mark.asyncio
async def test_refresh_statuses_marks_expired_and_depleted() -> None:
    lapsed = FakePackage(uuid4(), 10, 4, valid_to=NOW - timedelta(seconds=1))
    used_up = FakePackage(uuid4(), 10, 0, valid_to=NOW + timedelta(days=30))
    current = FakePackage(uuid4(), 10, 6, valid_to=NOW + timedelta(days=30))
    ledger = make_ledger([lapsed, used_up, current], [])

    stats = await ledger.refresh_statuses()
    repeated = await ledger.refresh_statuses()

    assert stats == {"expired": 1, "depleted": 1}
    assert repeated == {"expired": 0, "depleted": 0}
    assert lapsed.status == PackageStatusEnum.EXPIRED
    assert used_up.status == PackageStatusEnum.DEPLETED
    assert current.status == PackageStatusEnum.ACTIVE
    assert used_up.remaining_sessions == 0
