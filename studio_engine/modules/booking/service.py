"""Booking lifecycle service: automatic and manual status transitions."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import timedelta
from uuid import UUID

from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studio_engine.core.clock import Clock
from studio_engine.core.config import get_settings
from studio_engine.core.database import get_db_session
from studio_engine.core.enums import BookingStatusEnum
from studio_engine.core.metrics import record_transition_stats
from studio_engine.modules.audit.repository import AuditRepository
from studio_engine.modules.booking.models import Booking
from studio_engine.modules.booking.repository import BookingRepository
from studio_engine.modules.booking.state_machine import (
    BookingStateMachine,
    TransitionDecision,
    TransitionKind,
    ensure_transition,
)
from studio_engine.shared.exceptions import ConflictException, InvalidTransitionException, NotFoundException

logger = logging.getLogger(__name__)

AUTO_CONFIRMED_EVENT = "booking.auto_confirmed"
APPROVED_EVENT = "booking.approved"
REJECTED_EVENT = "booking.rejected"
NO_SHOW_EVENT = "booking.no_show"


class BookingLifecycleService:
    """Advance bookings through their lifecycle with compare-and-set writes."""

    def __init__(
        self,
        booking_repository: BookingRepository,
        audit_repository: AuditRepository,
        clock: Clock,
        *,
        state_machine: BookingStateMachine | None = None,
        batch_size: int = 500,
    ) -> None:
        self.booking_repository = booking_repository
        self.audit_repository = audit_repository
        self.clock = clock
        self.state_machine = state_machine or BookingStateMachine()
        self.batch_size = batch_size

    async def run_auto_confirm(self) -> dict[str, int]:
        """Confirm pending requests nobody answered within the timeout."""
        now = self.clock.now()
        cutoff = self.state_machine.auto_confirm_cutoff(now)
        candidates = await self.booking_repository.find_auto_confirm_candidates(cutoff, self.batch_size)
        stats = await self._apply_batch(candidates, TransitionKind.AUTO_CONFIRM)
        if stats["applied"]:
            logger.info("Auto-confirmed %s booking(s)", stats["applied"])
        return stats

    async def run_auto_complete(self) -> dict[str, int]:
        """Complete confirmed sessions whose end time has passed."""
        now = self.clock.now()
        candidates = await self.booking_repository.find_auto_complete_candidates(now, self.batch_size)
        stats = await self._apply_batch(candidates, TransitionKind.AUTO_COMPLETE)
        if stats["applied"]:
            logger.info("Auto-completed %s past session(s)", stats["applied"])
        return stats

    async def _apply_batch(self, candidates: Sequence[Booking], kind: TransitionKind) -> dict[str, int]:
        stats = {"candidates": len(candidates), "applied": 0, "skipped": 0, "failed": 0}
        for booking in candidates:
            # Re-evaluated per booking so a long batch never acts on a stale instant.
            decision = self.state_machine.decide(booking, self.clock.now())
            if decision is None or decision.kind != kind:
                stats["skipped"] += 1
                continue
            try:
                async with self.booking_repository.savepoint():
                    applied = await self._apply_decision(booking, decision)
            except SQLAlchemyError:
                logger.exception("Failed to %s booking %s, will retry next tick", kind, booking.id)
                stats["failed"] += 1
                continue

            if applied:
                stats["applied"] += 1
            else:
                logger.debug("Booking %s already moved by another actor, skipping %s", booking.id, kind)
                stats["skipped"] += 1

        record_transition_stats(str(kind), stats)
        return stats

    async def _apply_decision(self, booking: Booking, decision: TransitionDecision) -> bool:
        is_auto_confirm = decision.kind == TransitionKind.AUTO_CONFIRM
        applied = await self.booking_repository.compare_and_set(
            decision.booking_id,
            decision.from_status,
            decision.changes,
            require_not_auto_confirmed=is_auto_confirm,
        )
        if applied and is_auto_confirm:
            # The auto_confirmed flag flip is the one-way gate for this event.
            await self.audit_repository.create_outbox_event(
                aggregate_type="booking",
                aggregate_id=str(booking.id),
                event_type=AUTO_CONFIRMED_EVENT,
                payload={
                    "booking_id": str(booking.id),
                    "customer_id": str(booking.customer_id),
                    "teacher_id": str(booking.teacher_id),
                    "start_time": booking.start_time.isoformat(),
                    "auto_confirmed": True,
                },
                occurred_at=decision.changes["confirmed_at"],
            )
        return applied

    async def apply_manual_transition(
        self,
        booking_id: UUID,
        to_status: BookingStatusEnum,
        event_type: str,
        *,
        expected_status: BookingStatusEnum,
        reason: str | None = None,
    ) -> Booking:
        """Apply a staff decision, losing cleanly to any concurrent writer."""
        booking = await self.booking_repository.get_booking_by_id(booking_id)
        if booking is None:
            raise NotFoundException("Booking not found")

        from_status = booking.status
        if from_status != expected_status:
            raise InvalidTransitionException(
                f"Only {expected_status} bookings can move to {to_status}, booking is {from_status}",
            )
        ensure_transition(from_status, to_status)
        now = self.clock.now()
        changes = self.state_machine.manual_changes(from_status, to_status, now, reason)

        applied = await self.booking_repository.compare_and_set(booking_id, from_status, changes)
        if not applied:
            raise ConflictException("Booking status changed concurrently")

        for key, value in changes.items():
            setattr(booking, key, value)
        await self.audit_repository.create_outbox_event(
            aggregate_type="booking",
            aggregate_id=str(booking.id),
            event_type=event_type,
            payload={
                "booking_id": str(booking.id),
                "customer_id": str(booking.customer_id),
                "teacher_id": str(booking.teacher_id),
                "start_time": booking.start_time.isoformat(),
                "from_status": str(from_status),
                "status": str(to_status),
                "reason": reason,
            },
            occurred_at=now,
        )
        logger.info("Booking %s moved %s -> %s", booking_id, from_status, to_status)
        return booking

    async def approve_booking(self, booking_id: UUID) -> Booking:
        return await self.apply_manual_transition(
            booking_id,
            BookingStatusEnum.CONFIRMED,
            APPROVED_EVENT,
            expected_status=BookingStatusEnum.PENDING,
        )

    async def reject_booking(self, booking_id: UUID, reason: str | None = None) -> Booking:
        return await self.apply_manual_transition(
            booking_id,
            BookingStatusEnum.CANCELLED,
            REJECTED_EVENT,
            expected_status=BookingStatusEnum.PENDING,
            reason=reason,
        )

    async def mark_no_show(self, booking_id: UUID) -> Booking:
        """No-show is a manual attendance decision, never automatic."""
        return await self.apply_manual_transition(
            booking_id,
            BookingStatusEnum.NO_SHOW,
            NO_SHOW_EVENT,
            expected_status=BookingStatusEnum.CONFIRMED,
        )


async def get_booking_lifecycle_service(
    session: AsyncSession = Depends(get_db_session),
) -> BookingLifecycleService:
    """Dependency provider for booking lifecycle decisions."""
    settings = get_settings()
    return BookingLifecycleService(
        booking_repository=BookingRepository(session),
        audit_repository=AuditRepository(session),
        clock=Clock(settings.studio_timezone),
        state_machine=BookingStateMachine(timedelta(hours=settings.auto_confirm_after_hours)),
        batch_size=settings.engine_batch_size,
    )
