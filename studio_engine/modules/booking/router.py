"""Booking API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from studio_engine.modules.booking.schemas import BookingRead, BookingRejectRequest
from studio_engine.modules.booking.service import BookingLifecycleService, get_booking_lifecycle_service

router = APIRouter(prefix="/booking", tags=["booking"])


@router.post("/{booking_id}/approve", response_model=BookingRead)
async def approve_booking(
    booking_id: UUID,
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> BookingRead:
    """Teacher approval of a pending request."""
    booking = await service.approve_booking(booking_id)
    return BookingRead.model_validate(booking)


@router.post("/{booking_id}/reject", response_model=BookingRead)
async def reject_booking(
    booking_id: UUID,
    payload: BookingRejectRequest,
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> BookingRead:
    """Teacher rejection of a pending request."""
    booking = await service.reject_booking(booking_id, payload.reason)
    return BookingRead.model_validate(booking)


@router.post("/{booking_id}/no-show", response_model=BookingRead)
async def mark_no_show(
    booking_id: UUID,
    service: BookingLifecycleService = Depends(get_booking_lifecycle_service),
) -> BookingRead:
    """Mark a confirmed session as missed by the customer."""
    booking = await service.mark_no_show(booking_id)
    return BookingRead.model_validate(booking)
