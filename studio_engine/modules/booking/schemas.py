"""Booking schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from studio_engine.core.enums import BookingStatusEnum, SessionTypeEnum


class BookingRejectRequest(BaseModel):
    """Reject pending booking request."""

    reason: str | None = Field(default=None, max_length=512)


class BookingRead(BaseModel):
    """Booking response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    customer_id: UUID
    teacher_id: UUID
    package_id: UUID | None
    session_type: SessionTypeEnum
    start_time: datetime
    end_time: datetime
    status: BookingStatusEnum
    auto_confirmed: bool
    pending_since: datetime | None
    confirmed_at: datetime | None
    attendance_marked_at: datetime | None
    cancellation_reason: str | None
    notes: str | None
    created_at: datetime
    updated_at: datetime
