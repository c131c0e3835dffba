"""Booking lifecycle rules.

Pure decision logic: nothing here reads the host clock or touches storage.
Callers pass the current instant explicitly and apply the returned decision
with a conditional write.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Any, Protocol
from uuid import UUID

from studio_engine.core.enums import BookingStatusEnum
from studio_engine.shared.exceptions import InvalidTransitionException
from studio_engine.shared.utils import ensure_utc

ALLOWED_TRANSITIONS: dict[BookingStatusEnum, frozenset[BookingStatusEnum]] = {
    BookingStatusEnum.PENDING: frozenset(
        {BookingStatusEnum.CONFIRMED, BookingStatusEnum.CANCELLED},
    ),
    BookingStatusEnum.CONFIRMED: frozenset(
        {
            BookingStatusEnum.COMPLETED,
            BookingStatusEnum.NO_SHOW,
            BookingStatusEnum.CANCELLATION_REQUESTED,
            BookingStatusEnum.CANCELLED,
        },
    ),
    BookingStatusEnum.CANCELLATION_REQUESTED: frozenset(
        {BookingStatusEnum.CANCELLED, BookingStatusEnum.CONFIRMED},
    ),
    BookingStatusEnum.COMPLETED: frozenset(),
    BookingStatusEnum.CANCELLED: frozenset(),
    BookingStatusEnum.NO_SHOW: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)

ATTENDANCE_STATUSES = frozenset({BookingStatusEnum.COMPLETED, BookingStatusEnum.NO_SHOW})


class TransitionKind(StrEnum):
    """Automatic edges owned by the engine."""

    AUTO_CONFIRM = "auto_confirm"
    AUTO_COMPLETE = "auto_complete"


class BookingLike(Protocol):
    id: UUID
    status: BookingStatusEnum
    end_time: datetime
    pending_since: datetime | None
    created_at: datetime
    auto_confirmed: bool
    notes: str | None


@dataclass(frozen=True, slots=True)
class TransitionDecision:
    """Outcome of evaluating one booking at one instant."""

    kind: TransitionKind
    booking_id: UUID
    from_status: BookingStatusEnum
    to_status: BookingStatusEnum
    changes: dict[str, Any] = field(default_factory=dict)


def can_transition(from_status: BookingStatusEnum, to_status: BookingStatusEnum) -> bool:
    return to_status in ALLOWED_TRANSITIONS.get(from_status, frozenset())


def ensure_transition(from_status: BookingStatusEnum, to_status: BookingStatusEnum) -> None:
    """Raise if the edge is not part of the lifecycle graph."""
    if not can_transition(from_status, to_status):
        raise InvalidTransitionException(
            f"Invalid booking status transition: {from_status} -> {to_status}",
        )


def append_note(notes: str | None, note: str) -> str:
    if notes:
        return f"{notes}\n{note}"
    return note


class BookingStateMachine:
    """Decide automatic transitions for a booking at a given instant."""

    def __init__(self, auto_confirm_after: timedelta = timedelta(hours=12)) -> None:
        self.auto_confirm_after = auto_confirm_after

    @property
    def auto_confirm_note(self) -> str:
        hours = int(self.auto_confirm_after.total_seconds() // 3600)
        return f"[Auto-confirmed after {hours} hours - teacher did not respond]"

    def auto_confirm_cutoff(self, now: datetime) -> datetime:
        """Latest ``pending_since`` that is old enough to auto-confirm."""
        return ensure_utc(now) - self.auto_confirm_after

    @staticmethod
    def pending_since(booking: BookingLike) -> datetime:
        return ensure_utc(booking.pending_since or booking.created_at)

    def is_auto_confirm_due(self, booking: BookingLike, now: datetime) -> bool:
        if booking.status != BookingStatusEnum.PENDING or booking.auto_confirmed:
            return False
        return ensure_utc(now) - self.pending_since(booking) >= self.auto_confirm_after

    @staticmethod
    def is_auto_complete_due(booking: BookingLike, now: datetime) -> bool:
        if booking.status != BookingStatusEnum.CONFIRMED:
            return False
        return ensure_utc(booking.end_time) < ensure_utc(now)

    def decide(self, booking: BookingLike, now: datetime) -> TransitionDecision | None:
        """Return the automatic transition due for ``booking``, if any.

        No-show is never decided here; it stays a manual attendance call.
        """
        now = ensure_utc(now)
        if self.is_auto_confirm_due(booking, now):
            return TransitionDecision(
                kind=TransitionKind.AUTO_CONFIRM,
                booking_id=booking.id,
                from_status=BookingStatusEnum.PENDING,
                to_status=BookingStatusEnum.CONFIRMED,
                changes={
                    "status": BookingStatusEnum.CONFIRMED,
                    "auto_confirmed": True,
                    "confirmed_at": now,
                    "notes": append_note(booking.notes, self.auto_confirm_note),
                },
            )
        if self.is_auto_complete_due(booking, now):
            return TransitionDecision(
                kind=TransitionKind.AUTO_COMPLETE,
                booking_id=booking.id,
                from_status=BookingStatusEnum.CONFIRMED,
                to_status=BookingStatusEnum.COMPLETED,
                changes={
                    "status": BookingStatusEnum.COMPLETED,
                    "attendance_marked_at": now,
                },
            )
        return None

    @staticmethod
    def manual_changes(
        from_status: BookingStatusEnum,
        to_status: BookingStatusEnum,
        now: datetime,
        reason: str | None = None,
    ) -> dict[str, Any]:
        """Column values written alongside a manual status change."""
        changes: dict[str, Any] = {"status": to_status}
        if to_status == BookingStatusEnum.CONFIRMED:
            if from_status == BookingStatusEnum.CANCELLATION_REQUESTED:
                # rejected cancellation request, the original confirmation stands
                changes["cancellation_reason"] = None
            else:
                changes["confirmed_at"] = now
        elif to_status in ATTENDANCE_STATUSES:
            changes["attendance_marked_at"] = now
        elif to_status in (BookingStatusEnum.CANCELLED, BookingStatusEnum.CANCELLATION_REQUESTED):
            changes["cancellation_reason"] = reason
        return changes
