"""Booking router - FastAPI endpoints for booking requests, the status workflow and notifications"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_account_status, require_email_verified, require_roles
from ...constants import ACCOUNT_ACTIVE, ROLE_CUSTOMER, ROLE_PROVIDER
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from .schemas import (
    AcceptBookingRequest,
    BookingCreate,
    BookingMessageCreate,
    CancelBookingRequest,
    CompleteBookingRequest,
    GuestBookingCreate,
    RejectBookingRequest,
)
from .service import BookingService

router = APIRouter(prefix="/bookings", tags=["Bookings"])

guest_booking_limit = create_rate_limiter(limit=10, window_seconds=3600, key_prefix="guest_booking")
require_customer = require_roles(ROLE_CUSTOMER)
require_provider = require_roles(ROLE_PROVIDER)


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


def _role_only(role: str):
    """403 "Access denied" for list endpoints reserved to one role"""

    async def checker(user: User = Depends(get_current_user)) -> User:
        if user.role != role:
            raise HTTPException(status_code=403, detail="Access denied")
        return user

    return checker


# ============================================================================
# CREATION & TRACKING
# ============================================================================


@router.post(
    "",
    status_code=201,
    dependencies=[Depends(require_email_verified), Depends(require_account_status(ACCOUNT_ACTIVE))],
)
async def create_booking(
    data: BookingCreate,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return await service.create_booking(current_user, data, request.headers.get("user-agent"))


@router.post("/guest", status_code=201)
async def create_guest_booking(
    data: GuestBookingCreate,
    request: Request,
    service: BookingService = Depends(get_booking_service),
    _: None = Depends(guest_booking_limit),
):
    return await service.create_guest_booking(data, request.headers.get("user-agent"))


@router.get("/track/{booking_number}")
async def track_booking(
    booking_number: str,
    service: BookingService = Depends(get_booking_service),
):
    return service.track_booking(booking_number)


# ============================================================================
# LISTS
# ============================================================================


@router.get("/customer")
async def list_customer_bookings(
    status: Optional[str] = Query(None),
    startDate: Optional[date] = Query(None),
    endDate: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(_role_only(ROLE_CUSTOMER)),
    service: BookingService = Depends(get_booking_service),
):
    return service.list_customer_bookings(current_user, status, startDate, endDate, page, limit)


@router.get("/provider")
async def list_provider_bookings(
    status: Optional[str] = Query(None),
    startDate: Optional[date] = Query(None),
    endDate: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(_role_only(ROLE_PROVIDER)),
    service: BookingService = Depends(get_booking_service),
):
    return service.list_provider_bookings(current_user, status, startDate, endDate, page, limit)


# ============================================================================
# NOTIFICATIONS
# ============================================================================


@router.get("/notifications")
async def list_notifications(
    unreadOnly: bool = Query(False),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return service.list_notifications(current_user, unreadOnly, page, limit)


@router.patch("/notifications/read-all")
async def mark_all_notifications_read(
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return service.mark_all_notifications_read(current_user)


@router.patch("/notifications/{notification_id}/read")
async def mark_notification_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return service.mark_notification_read(notification_id, current_user)


# ============================================================================
# DETAIL & WORKFLOW
# ============================================================================


@router.get("/{booking_id}")
async def get_booking(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return service.get_booking(booking_id, current_user)


@router.patch("/{booking_id}/cancel")
async def cancel_booking(
    booking_id: int,
    data: Optional[CancelBookingRequest] = None,
    current_user: User = Depends(require_customer),
    service: BookingService = Depends(get_booking_service),
):
    return await service.cancel_booking(booking_id, current_user, data or CancelBookingRequest())


@router.patch("/{booking_id}/accept")
async def accept_booking(
    booking_id: int,
    data: Optional[AcceptBookingRequest] = None,
    current_user: User = Depends(require_provider),
    service: BookingService = Depends(get_booking_service),
):
    return await service.accept_booking(booking_id, current_user, data or AcceptBookingRequest())


@router.patch("/{booking_id}/reject")
async def reject_booking(
    booking_id: int,
    data: Optional[RejectBookingRequest] = None,
    current_user: User = Depends(require_provider),
    service: BookingService = Depends(get_booking_service),
):
    return await service.reject_booking(booking_id, current_user, data or RejectBookingRequest())


@router.patch("/{booking_id}/start")
async def start_booking(
    booking_id: int,
    current_user: User = Depends(require_provider),
    service: BookingService = Depends(get_booking_service),
):
    return await service.start_booking(booking_id, current_user)


@router.patch("/{booking_id}/complete")
async def complete_booking(
    booking_id: int,
    data: Optional[CompleteBookingRequest] = None,
    current_user: User = Depends(require_provider),
    service: BookingService = Depends(get_booking_service),
):
    return await service.complete_booking(booking_id, current_user, data or CompleteBookingRequest())


@router.post("/{booking_id}/messages")
async def add_booking_message(
    booking_id: int,
    data: BookingMessageCreate,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return service.add_message(booking_id, current_user, data.message)


__all__ = ["router"]
