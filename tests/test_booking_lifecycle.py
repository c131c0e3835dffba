from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest
from sqlalchemy.exc import SQLAlchemyError

from studio_engine.core.clock import FixedClock
from studio_engine.core.enums import BookingStatusEnum
from studio_engine.modules.booking.service import (
    APPROVED_EVENT,
    AUTO_CONFIRMED_EVENT,
    NO_SHOW_EVENT,
    REJECTED_EVENT,
    BookingLifecycleService,
)
from studio_engine.shared.exceptions import ConflictException, InvalidTransitionException, NotFoundException

REQUESTED_AT = datetime(2024, 1, 1, 10, 0, tzinfo=UTC)


@dataclass
class FakeBooking:
    id: UUID
    customer_id: UUID
    teacher_id: UUID
    status: BookingStatusEnum
    start_time: datetime
    end_time: datetime
    created_at: datetime = REQUESTED_AT
    pending_since: datetime | None = REQUESTED_AT
    auto_confirmed: bool = False
    confirmed_at: datetime | None = None
    attendance_marked_at: datetime | None = None
    cancellation_reason: str | None = None
    notes: str | None = None


@dataclass
class FakeOutboxEvent:
    aggregate_type: str
    aggregate_id: str
    event_type: str
    payload: dict
    occurred_at: datetime | None


class FakeSavepoint:
    def __init__(self, repository: "FakeBookingRepository") -> None:
        self.repository = repository

    async def __aenter__(self) -> "FakeSavepoint":
        self.repository.savepoints += 1
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


class FakeBookingRepository:
    """Rows live here; reads hand out detached snapshots like a real session would."""

    def __init__(self, bookings: list[FakeBooking]) -> None:
        self.rows: dict[UUID, FakeBooking] = {booking.id: booking for booking in bookings}
        self.failing_ids: set[UUID] = set()
        self.before_write: Callable[[UUID], None] | None = None
        self.savepoints = 0

    def savepoint(self) -> FakeSavepoint:
        return FakeSavepoint(self)

    async def get_booking_by_id(self, booking_id: UUID) -> FakeBooking | None:
        row = self.rows.get(booking_id)
        return replace(row) if row is not None else None

    async def find_auto_confirm_candidates(self, cutoff: datetime, limit: int) -> list[FakeBooking]:
        return [
            replace(row)
            for row in self.rows.values()
            if row.status == BookingStatusEnum.PENDING
            and not row.auto_confirmed
            and (row.pending_since or row.created_at) <= cutoff
        ][:limit]

    async def find_auto_complete_candidates(self, now: datetime, limit: int) -> list[FakeBooking]:
        return [
            replace(row)
            for row in self.rows.values()
            if row.status == BookingStatusEnum.CONFIRMED and row.end_time < now
        ][:limit]

    async def compare_and_set(
        self,
        booking_id: UUID,
        expected_status: BookingStatusEnum,
        changes: dict,
        *,
        require_not_auto_confirmed: bool = False,
    ) -> bool:
        if self.before_write is not None:
            hook, self.before_write = self.before_write, None
            hook(booking_id)
        if booking_id in self.failing_ids:
            raise SQLAlchemyError("connection reset by peer")

        row = self.rows[booking_id]
        if row.status != expected_status:
            return False
        if require_not_auto_confirmed and row.auto_confirmed:
            return False
        for key, value in changes.items():
            setattr(row, key, value)
        return True


@dataclass
class FakeAuditRepository:
    events: list[FakeOutboxEvent] = field(default_factory=list)

    async def create_outbox_event(
        self,
        aggregate_type: str,
        aggregate_id: str,
        event_type: str,
        payload: dict,
        occurred_at: datetime | None = None,
    ) -> FakeOutboxEvent:
        event = FakeOutboxEvent(aggregate_type, aggregate_id, event_type, payload, occurred_at)
        self.events.append(event)
        return event


def make_booking(
    status: BookingStatusEnum = BookingStatusEnum.PENDING,
    *,
    start_time: datetime = datetime(2024, 1, 5, 10, 0, tzinfo=UTC),
    **overrides,
) -> FakeBooking:
    return FakeBooking(
        id=uuid4(),
        customer_id=uuid4(),
        teacher_id=uuid4(),
        status=status,
        start_time=start_time,
        end_time=start_time + timedelta(hours=1),
        **overrides,
    )


def make_service(
    bookings: list[FakeBooking],
    now: datetime,
) -> tuple[BookingLifecycleService, FakeBookingRepository, FakeAuditRepository, FixedClock]:
    repository = FakeBookingRepository(bookings)
    audit = FakeAuditRepository()
    clock = FixedClock(now, "Asia/Bangkok")
    service = BookingLifecycleService(
        booking_repository=repository,  # type: ignore[arg-type]
        audit_repository=audit,  # type: ignore[arg-type]
        clock=clock,
    )
    return service, repository, audit, clock


@pytest.mark.asyncio
async def test_auto_confirm_flips_status_and_emits_single_event() -> None:
    booking = make_booking()
    now = REQUESTED_AT + timedelta(hours=12, seconds=1)
    service, repository, audit, _ = make_service([booking], now)

    stats = await service.run_auto_confirm()

    row = repository.rows[booking.id]
    assert stats == {"candidates": 1, "applied": 1, "skipped": 0, "failed": 0}
    assert row.status == BookingStatusEnum.CONFIRMED
    assert row.auto_confirmed is True
    assert row.confirmed_at == now
    assert row.notes == "[Auto-confirmed after 12 hours - teacher did not respond]"
    assert len(audit.events) == 1
    event = audit.events[0]
    assert event.event_type == AUTO_CONFIRMED_EVENT
    assert event.aggregate_id == str(booking.id)
    assert event.payload["auto_confirmed"] is True
    assert event.payload["teacher_id"] == str(booking.teacher_id)
    assert event.occurred_at == now


@pytest.mark.asyncio
async def test_auto_confirm_ignores_request_younger_than_threshold() -> None:
    booking = make_booking()
    service, repository, audit, _ = make_service([booking], REQUESTED_AT + timedelta(hours=11, minutes=59, seconds=59))

    stats = await service.run_auto_confirm()

    assert stats["candidates"] == 0
    assert repository.rows[booking.id].status == BookingStatusEnum.PENDING
    assert audit.events == []


@pytest.mark.asyncio
async def test_auto_confirm_replay_does_not_notify_twice() -> None:
    booking = make_booking()
    service, repository, audit, clock = make_service([booking], REQUESTED_AT + timedelta(hours=13))

    await service.run_auto_confirm()
    clock.advance(timedelta(minutes=5))
    second = await service.run_auto_confirm()

    assert second["applied"] == 0
    assert len(audit.events) == 1


@pytest.mark.asyncio
async def test_stale_candidate_already_auto_confirmed_is_skipped_without_event() -> None:
    booking = make_booking()
    service, repository, audit, _ = make_service([booking], REQUESTED_AT + timedelta(hours=13))

    def _other_worker_confirms(booking_id: UUID) -> None:
        row = repository.rows[booking_id]
        row.status = BookingStatusEnum.CONFIRMED
        row.auto_confirmed = True

    repository.before_write = _other_worker_confirms
    stats = await service.run_auto_confirm()

    assert stats == {"candidates": 1, "applied": 0, "skipped": 1, "failed": 0}
    assert audit.events == []


@pytest.mark.asyncio
async def test_auto_complete_is_idempotent() -> None:
    booking = make_booking(BookingStatusEnum.CONFIRMED, confirmed_at=REQUESTED_AT)
    now = booking.end_time + timedelta(minutes=1)
    service, repository, _, clock = make_service([booking], now)

    first = await service.run_auto_complete()
    clock.advance(timedelta(hours=1))
    second = await service.run_auto_complete()

    row = repository.rows[booking.id]
    assert first["applied"] == 1
    assert second == {"candidates": 0, "applied": 0, "skipped": 0, "failed": 0}
    assert row.status == BookingStatusEnum.COMPLETED
    assert row.attendance_marked_at == now


@pytest.mark.asyncio
async def test_manual_reject_racing_timeout_wins_and_auto_confirm_is_noop() -> None:
    booking = make_booking()
    service, repository, audit, _ = make_service([booking], REQUESTED_AT + timedelta(hours=12, seconds=1))

    def _teacher_rejects(booking_id: UUID) -> None:
        row = repository.rows[booking_id]
        row.status = BookingStatusEnum.CANCELLED
        row.cancellation_reason = "Teacher unavailable"

    repository.before_write = _teacher_rejects
    stats = await service.run_auto_confirm()

    row = repository.rows[booking.id]
    assert stats["skipped"] == 1
    assert row.status == BookingStatusEnum.CANCELLED
    assert row.auto_confirmed is False
    assert audit.events == []


@pytest.mark.asyncio
async def test_manual_approval_after_auto_confirm_raises_conflict() -> None:
    booking = make_booking()
    service, repository, _, _ = make_service([booking], REQUESTED_AT + timedelta(hours=12, seconds=1))

    def _timeout_confirms(booking_id: UUID) -> None:
        row = repository.rows[booking_id]
        row.status = BookingStatusEnum.CONFIRMED
        row.auto_confirmed = True

    repository.before_write = _timeout_confirms

    with pytest.raises(ConflictException):
        await service.approve_booking(booking.id)
    assert repository.rows[booking.id].auto_confirmed is True


@pytest.mark.asyncio
async def test_storage_error_is_isolated_to_one_booking() -> None:
    broken = make_booking()
    healthy = make_booking()
    service, repository, audit, _ = make_service([broken, healthy], REQUESTED_AT + timedelta(hours=13))
    repository.failing_ids.add(broken.id)

    stats = await service.run_auto_confirm()

    assert stats == {"candidates": 2, "applied": 1, "skipped": 0, "failed": 1}
    assert repository.savepoints == 2
    assert repository.rows[broken.id].status == BookingStatusEnum.PENDING
    assert repository.rows[healthy.id].status == BookingStatusEnum.CONFIRMED
    assert [event.aggregate_id for event in audit.events] == [str(healthy.id)]


@pytest.mark.asyncio
async def test_failed_booking_is_retried_on_next_tick() -> None:
    booking = make_booking()
    service, repository, _, clock = make_service([booking], REQUESTED_AT + timedelta(hours=13))
    repository.failing_ids.add(booking.id)

    await service.run_auto_confirm()
    repository.failing_ids.clear()
    clock.advance(timedelta(minutes=5))
    stats = await service.run_auto_confirm()

    assert stats["applied"] == 1
    assert repository.rows[booking.id].status == BookingStatusEnum.CONFIRMED


@pytest.mark.asyncio
async def test_manual_decisions_update_booking() -> None:
    pending = make_booking()
    confirmed = make_booking(BookingStatusEnum.CONFIRMED)
    now = datetime(2024, 1, 5, 12, 0, tzinfo=UTC)
    service, repository, _, _ = make_service([pending, confirmed], now)

    rejected = await service.reject_booking(pending.id, "Studio closed")
    missed = await service.mark_no_show(confirmed.id)

    assert rejected.status == BookingStatusEnum.CANCELLED
    assert rejected.cancellation_reason == "Studio closed"
    assert repository.rows[pending.id].status == BookingStatusEnum.CANCELLED
    assert missed.status == BookingStatusEnum.NO_SHOW
    assert repository.rows[confirmed.id].attendance_marked_at == now


@pytest.mark.asyncio
async def test_manual_decision_validates_edge_and_existence() -> None:
    completed = make_booking(BookingStatusEnum.COMPLETED)
    service, _, _, _ = make_service([completed], REQUESTED_AT)

    with pytest.raises(InvalidTransitionException):
        await service.mark_no_show(completed.id)
    with pytest.raises(NotFoundException):
        await service.approve_booking(uuid4())


@pytest.mark.asyncio
async def test_reject_refuses_confirmed_booking() -> None:
    confirmed = make_booking(BookingStatusEnum.CONFIRMED, auto_confirmed=True, confirmed_at=REQUESTED_AT)
    service, repository, audit, _ = make_service([confirmed], REQUESTED_AT + timedelta(hours=13))

    with pytest.raises(InvalidTransitionException):
        await service.reject_booking(confirmed.id, "Changed my mind")

    row = repository.rows[confirmed.id]
    assert row.status == BookingStatusEnum.CONFIRMED
    assert row.cancellation_reason is None
    assert audit.events == []


@pytest.mark.asyncio
async def test_approve_refuses_cancellation_request() -> None:
    requested = make_booking(BookingStatusEnum.CANCELLATION_REQUESTED, cancellation_reason="Sick")
    service, repository, audit, _ = make_service([requested], REQUESTED_AT + timedelta(hours=13))

    with pytest.raises(InvalidTransitionException):
        await service.approve_booking(requested.id)

    assert repository.rows[requested.id].status == BookingStatusEnum.CANCELLATION_REQUESTED
    assert audit.events == []


@pytest.mark.asyncio
async def test_manual_decisions_emit_outbox_events() -> None:
    to_approve = make_booking()
    to_reject = make_booking()
    attended = make_booking(BookingStatusEnum.CONFIRMED)
    now = datetime(2024, 1, 5, 12, 0, tzinfo=UTC)
    service, _, audit, _ = make_service([to_approve, to_reject, attended], now)

    approved = await service.approve_booking(to_approve.id)
    await service.reject_booking(to_reject.id, "Studio closed")
    await service.mark_no_show(attended.id)

    assert approved.status == BookingStatusEnum.CONFIRMED
    assert approved.confirmed_at == now
    assert approved.auto_confirmed is False
    assert [(event.event_type, event.aggregate_id) for event in audit.events] == [
        (APPROVED_EVENT, str(to_approve.id)),
        (REJECTED_EVENT, str(to_reject.id)),
        (NO_SHOW_EVENT, str(attended.id)),
    ]
    assert audit.events[1].payload["reason"] == "Studio closed"
    assert audit.events[1].payload["from_status"] == "pending"
    assert all(event.occurred_at == now for event in audit.events)
