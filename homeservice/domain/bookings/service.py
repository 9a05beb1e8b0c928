"""Booking service - booking creation, the status workflow, messages and notifications"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...constants import (
    BOOKING_CANCELLED,
    BOOKING_COMPLETED,
    BOOKING_CONFIRMED,
    BOOKING_IN_PROGRESS,
    BOOKING_PENDING,
    CANCELLATION_WINDOW_HOURS,
    DEFAULT_TIMEZONE,
    ROLE_ADMIN,
    ROLE_CUSTOMER,
    SLOT_STEP_MINUTES,
)
from ...email_service import EmailDeliveryError, send_booking_update_email
from ...models import Booking, BookingNotification, User
from ...security_utils import mask_email, sanitize_text
from ...shared.validators import clamp_page, minutes_to_time, paginate, pagination_meta, time_to_minutes
from ..auth.repository import UserRepository
from ..availability import scheduling
from ..availability.repository import AvailabilityRepository
from . import policy
from .policy import CUSTOMER, PROVIDER
from .repository import BookingRepository
from .schemas import (
    AcceptBookingRequest,
    BookingCreate,
    CancelBookingRequest,
    CompleteBookingRequest,
    GuestBookingCreate,
    RejectBookingRequest,
)

logger = logging.getLogger(__name__)

REFUND_PROCESSING_TIME = "3-5 business days"


# ============================================================================
# SERIALIZATION
# ============================================================================


def _provider_name(provider: Optional[User]) -> str:
    if not provider:
        return ""
    profile = provider.provider_profile
    return (profile.business_name if profile else "") or provider.full_name


def serialize_booking(booking: Booking) -> dict:
    service = booking.service
    provider = booking.provider
    return {
        "id": booking.id,
        "bookingNumber": booking.booking_number,
        "status": booking.status,
        "scheduledDate": booking.scheduled_date.isoformat(),
        "scheduledTime": booking.scheduled_time,
        "duration": booking.duration,
        "estimatedEndTime": booking.estimated_end_time,
        "location": booking.location,
        "pricing": {
            "basePrice": booking.base_price,
            "addOns": booking.add_ons,
            "subtotal": booking.subtotal,
            "tax": booking.tax,
            "totalAmount": booking.total_amount,
            "currency": booking.currency,
        },
        "customerId": booking.customer_id,
        "customerInfo": booking.customer_info,
        "guestInfo": booking.guest_info,
        "isGuestBooking": booking.customer_id is None,
        "specialRequests": booking.special_requests,
        "statusHistory": booking.status_history,
        "cancellationPolicy": {
            "allowedUntil": booking.cancellation_allowed_until,
            "refundPercentage": booking.cancellation_refund_percentage,
            "cancellationFee": booking.cancellation_fee,
        },
        "cancellationDetails": booking.cancellation_details,
        "providerResponse": {
            "message": booking.provider_message,
            "acceptedAt": booking.accepted_at,
            "rejectedAt": booking.rejected_at,
        },
        "startedAt": booking.started_at,
        "completedAt": booking.completed_at,
        "cancelledAt": booking.cancelled_at,
        "messages": booking.messages,
        "metadata": booking.booking_metadata,
        "service": {
            "id": service.id,
            "name": service.name,
            "category": service.category,
            "duration": service.duration,
        }
        if service
        else None,
        "provider": {
            "id": provider.id,
            "name": provider.full_name,
            "businessName": _provider_name(provider),
            "phone": provider.phone,
            "email": provider.email,
        }
        if provider
        else None,
        "createdAt": booking.created_at,
        "updatedAt": booking.updated_at,
    }


def serialize_tracking(booking: Booking) -> dict:
    """The limited view a guest sees when tracking by booking number"""
    return {
        "bookingNumber": booking.booking_number,
        "status": booking.status,
        "scheduledDate": booking.scheduled_date.isoformat(),
        "scheduledTime": booking.scheduled_time,
        "serviceName": booking.service.name if booking.service else None,
        "providerBusinessName": _provider_name(booking.provider),
    }


def serialize_notification(notification: BookingNotification) -> dict:
    return {
        "id": notification.id,
        "bookingId": notification.booking_id,
        "type": notification.type,
        "title": notification.title,
        "message": notification.message,
        "isRead": notification.is_read,
        "readAt": notification.read_at,
        "createdAt": notification.created_at,
    }


class BookingService:
    """Service layer for booking business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()
        self.availability_repo = AvailabilityRepository()
        self.user_repo = UserRepository()

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def _provider_now(self, provider_id: int) -> datetime:
        availability = self.availability_repo.get_availability(self.db, provider_id)
        return scheduling.local_now(availability.timezone if availability else DEFAULT_TIMEZONE)

    def _next_booking_number(self, business_name: Optional[str]) -> str:
        initials = policy.booking_initials(business_name)
        today = datetime.utcnow().date()
        sequence = self.repo.count_numbers_for_day(self.db, today) + 1
        number = policy.format_booking_number(initials, today, sequence)
        while self.repo.booking_number_exists(self.db, number):
            sequence += 1
            number = policy.format_booking_number(initials, today, sequence)
        return number

    @staticmethod
    def _record_status(
        booking: Booking,
        status: str,
        updated_by: str,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> None:
        booking.status = status
        booking.status_history = list(booking.status_history or []) + [
            {
                "status": status,
                "timestamp": datetime.utcnow().isoformat(),
                "updatedBy": updated_by,
                "reason": reason,
                "notes": notes,
            }
        ]

    def _get_owned(self, booking_id: int, user: User, party: str) -> Booking:
        booking = self.repo.get_booking(self.db, booking_id)
        owner_id = None
        if booking:
            owner_id = booking.customer_id if party == CUSTOMER else booking.provider_id
        if not booking or owner_id != user.id:
            raise HTTPException(status_code=404, detail="Booking not found")
        return booking

    async def _notify(self, booking: Booking, notification_type: str, actor: str) -> None:
        """
        In-app notifications for every party with an account, then an email to the
        parties that did not trigger the change. Guests have no inbox so they are always emailed.
        """
        customer_name = (booking.customer_info or {}).get("name") or ""
        context = {
            "serviceName": booking.service.name if booking.service else "your service",
            "scheduledDate": booking.scheduled_date.isoformat(),
            "providerName": _provider_name(booking.provider),
            "customerName": customer_name,
            "bookingNumber": booking.booking_number,
        }

        recipients = [(PROVIDER, booking.provider_id)]
        if booking.customer_id:
            recipients.append((CUSTOMER, booking.customer_id))
        for role, user_id in recipients:
            self.repo.add_notification(
                self.db,
                user_id,
                booking.id,
                notification_type,
                policy.notification_title(notification_type, role),
                policy.notification_message(notification_type, role, context),
            )
        self._commit()

        outbound = []
        if actor != PROVIDER and booking.provider:
            outbound.append((PROVIDER, booking.provider.email, _provider_name(booking.provider)))
        if actor != CUSTOMER or booking.customer_id is None:
            email = booking.customer.email if booking.customer else (booking.guest_info or {}).get("email")
            if email:
                outbound.append((CUSTOMER, email, customer_name))

        for role, email, name in outbound:
            try:
                await send_booking_update_email(
                    email,
                    name,
                    policy.notification_title(notification_type, role),
                    policy.notification_message(notification_type, role, context),
                    booking.booking_number,
                )
            except EmailDeliveryError as e:
                logger.error(f"❌ Booking email to {mask_email(email)} failed for {booking.booking_number}: {e}")

    # ========================================================================
    # CREATION
    # ========================================================================

    async def create_booking(self, customer: User, data: BookingCreate, user_agent: Optional[str] = None) -> dict:
        if customer.role != ROLE_CUSTOMER:
            raise HTTPException(status_code=403, detail="Only customers can create bookings")
        return await self._create(data, customer=customer, user_agent=user_agent)

    async def create_guest_booking(self, data: GuestBookingCreate, user_agent: Optional[str] = None) -> dict:
        return await self._create(data, guest_info=data.guestInfo.model_dump(), user_agent=user_agent)

    def _check_slot(self, provider: User, day: date, start_minute: int, duration: int) -> None:
        """Raise the first availability rule the requested window breaks"""
        availability = self.availability_repo.get_or_create_availability(self.db, provider.id)
        now = scheduling.local_now(availability.timezone)

        max_days = availability.max_advance_booking_days
        if day > now.date() + timedelta(days=max_days):
            raise HTTPException(status_code=400, detail=f"Bookings can only be made up to {max_days} days in advance")

        if scheduling.day_exception(availability, day):
            raise HTTPException(status_code=400, detail="Provider is not available on this day")

        slots = scheduling.working_slots(availability, day)
        if not slots:
            raise HTTPException(status_code=400, detail="Provider is not available on this day")

        bookings = self.availability_repo.get_blocking_bookings(self.db, provider.id, day)
        busy = self.availability_repo.busy_ranges(bookings)

        earliest = scheduling.earliest_start(day, now)
        if earliest is None or start_minute < earliest or not scheduling.fits_in_slot(slots, start_minute, duration):
            starts = []
            if earliest is not None:
                starts = scheduling.candidate_starts(slots, duration, SLOT_STEP_MINUTES, earliest, busy)
            raise HTTPException(
                status_code=400,
                detail={
                    "message": "Provider is not available at the requested time",
                    "requestedTime": minutes_to_time(start_minute),
                    "availableSlots": starts or ["No slots available on this date"],
                },
            )

        for booking, booked in zip(bookings, busy):
            if scheduling.overlaps(start_minute, start_minute + duration, [booked]):
                raise HTTPException(
                    status_code=409,
                    detail={
                        "message": "Time slot is already booked",
                        "conflictingBooking": {
                            "bookingNumber": booking.booking_number,
                            "scheduledTime": booking.scheduled_time,
                            "duration": booking.duration,
                        },
                    },
                )

    async def _create(
        self,
        data: BookingCreate,
        customer: Optional[User] = None,
        guest_info: Optional[dict] = None,
        user_agent: Optional[str] = None,
    ) -> dict:
        service = self.repo.get_active_service(self.db, data.serviceId)
        if not service:
            raise HTTPException(status_code=404, detail="Service not found or inactive")

        provider = self.repo.get_provider(self.db, data.providerId)
        if not provider:
            raise HTTPException(status_code=404, detail="Provider not found")
        if service.provider_id != provider.id:
            raise HTTPException(status_code=400, detail="Service is not offered by this provider")

        start_minute = time_to_minutes(data.scheduledTime)
        self._check_slot(provider, data.scheduledDate, start_minute, service.duration)
        availability = self.availability_repo.get_availability(self.db, provider.id)

        add_ons = [a.model_dump() for a in data.addOns]
        pricing = policy.calculate_pricing(service.price_amount, add_ons)

        location = data.location.model_dump(exclude_none=True)
        if location["type"] != "customer_address":
            location.pop("address", None)
        elif "address" not in location and customer and customer.address:
            location["address"] = customer.address

        if customer:
            contact = {"name": customer.full_name, "email": customer.email, "phone": customer.phone}
        else:
            contact = {
                "name": f"{guest_info['firstName']} {guest_info['lastName']}",
                "email": guest_info["email"],
                "phone": guest_info["phone"],
            }
        if data.customerInfo:
            contact.update(data.customerInfo.model_dump(exclude_none=True))

        if data.metadata:
            metadata = data.metadata.model_dump()
        else:
            metadata = {"bookingSource": "search", "deviceType": "desktop"}
        if guest_info and not data.metadata:
            metadata["bookingSource"] = "guest"
        metadata["userAgent"] = user_agent

        start = datetime.combine(data.scheduledDate, datetime.min.time()) + timedelta(minutes=start_minute)
        auto_accept = bool(availability and availability.auto_accept_bookings)
        profile = provider.provider_profile

        try:
            booking = self.repo.create_booking(
                self.db,
                booking_number=self._next_booking_number(profile.business_name if profile else None),
                customer_id=customer.id if customer else None,
                guest_info=guest_info,
                provider_id=provider.id,
                service_id=service.id,
                scheduled_date=data.scheduledDate,
                scheduled_time=data.scheduledTime,
                duration=service.duration,
                estimated_end_time=start + timedelta(minutes=service.duration),
                location=location,
                base_price=pricing["basePrice"],
                add_ons=add_ons,
                subtotal=pricing["subtotal"],
                tax=pricing["tax"],
                total_amount=pricing["totalAmount"],
                currency=service.price_currency,
                customer_info=contact,
                special_requests=sanitize_text(data.specialRequests),
                status=BOOKING_PENDING,
                status_history=[],
                cancellation_allowed_until=start - timedelta(hours=CANCELLATION_WINDOW_HOURS),
                messages=[],
                booking_metadata=metadata,
            )
            self._record_status(booking, BOOKING_PENDING, "system", "Booking created")
            if auto_accept:
                self._record_status(booking, BOOKING_CONFIRMED, "system", "Automatically accepted")
                booking.accepted_at = datetime.utcnow()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        booking = self.repo.get_booking(self.db, booking.id)
        logger.info(
            f"✅ Booking {booking.booking_number} created for provider {provider.id} "
            f"({'guest' if customer is None else f'customer {customer.id}'})"
        )
        await self._notify(booking, "booking_request", CUSTOMER)

        message = (
            "Booking confirmed successfully"
            if auto_accept
            else "Booking request submitted, awaiting provider confirmation"
        )
        return {"message": message, "booking": serialize_booking(booking)}

    def track_booking(self, booking_number: str) -> dict:
        booking = self.repo.get_booking_by_number(self.db, booking_number)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        return {"booking": serialize_tracking(booking)}

    # ========================================================================
    # LISTS & DETAIL
    # ========================================================================

    def _list(self, page: Optional[int], limit: Optional[int], **filters) -> dict:
        page, limit = clamp_page(page, limit)
        bookings, total = paginate(self.repo.list_query(self.db, **filters), page, limit)
        return {
            "bookings": [serialize_booking(b) for b in bookings],
            "pagination": pagination_meta(page, limit, total),
        }

    def list_customer_bookings(
        self,
        customer: User,
        status: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> dict:
        return self._list(page, limit, customer_id=customer.id, status=status, start_date=start_date, end_date=end_date)

    def list_provider_bookings(
        self,
        provider: User,
        status: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> dict:
        return self._list(page, limit, provider_id=provider.id, status=status, start_date=start_date, end_date=end_date)

    def get_booking(self, booking_id: int, user: User) -> dict:
        booking = self.repo.get_booking(self.db, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        if user.role != ROLE_ADMIN and user.id not in (booking.customer_id, booking.provider_id):
            raise HTTPException(status_code=403, detail="Access denied")

        payload = serialize_booking(booking)
        payload["canCancel"] = policy.can_customer_cancel(booking, self._provider_now(booking.provider_id))
        return {"booking": payload}

    # ========================================================================
    # WORKFLOW
    # ========================================================================

    async def cancel_booking(self, booking_id: int, customer: User, data: CancelBookingRequest) -> dict:
        booking = self._get_owned(booking_id, customer, CUSTOMER)
        now = self._provider_now(booking.provider_id)
        if not policy.can_customer_cancel(booking, now):
            raise HTTPException(status_code=400, detail="Booking cannot be cancelled")

        hours_until_start = (policy.scheduled_start(booking) - now).total_seconds() / 3600
        refund_amount = policy.calculate_refund(
            booking.total_amount,
            booking.cancellation_refund_percentage,
            booking.cancellation_fee,
            hours_until_start,
        )
        reason = sanitize_text(data.reason) or "Cancelled by customer"
        cancelled_at = datetime.utcnow()

        self._record_status(booking, BOOKING_CANCELLED, CUSTOMER, reason)
        booking.cancelled_at = cancelled_at
        booking.cancellation_details = {
            "cancelledBy": CUSTOMER,
            "cancelledAt": cancelled_at.isoformat(),
            "reason": reason,
            "refundAmount": refund_amount,
            "refundStatus": "pending",
        }
        self._commit()
        logger.info(f"🚫 Booking {booking.booking_number} cancelled by customer, refund {refund_amount}")

        await self._notify(booking, "booking_cancelled", CUSTOMER)
        return {
            "message": "Booking cancelled successfully",
            "booking": serialize_booking(booking),
            "refundAmount": refund_amount,
            "refundProcessingTime": REFUND_PROCESSING_TIME,
        }

    async def accept_booking(self, booking_id: int, provider: User, data: AcceptBookingRequest) -> dict:
        booking = self._get_owned(booking_id, provider, PROVIDER)
        if booking.status != BOOKING_PENDING:
            raise HTTPException(status_code=400, detail="Booking cannot be accepted")

        message = sanitize_text(data.message)
        self._record_status(booking, BOOKING_CONFIRMED, PROVIDER, "Accepted by provider", message)
        booking.provider_message = message
        booking.accepted_at = datetime.utcnow()
        self._commit()

        await self._notify(booking, "booking_confirmed", PROVIDER)
        return {"message": "Booking accepted successfully", "booking": serialize_booking(booking)}

    async def reject_booking(self, booking_id: int, provider: User, data: RejectBookingRequest) -> dict:
        booking = self._get_owned(booking_id, provider, PROVIDER)
        if booking.status != BOOKING_PENDING:
            raise HTTPException(status_code=400, detail="Booking cannot be rejected")

        reason = sanitize_text(data.reason) or "Rejected by provider"
        now = datetime.utcnow()
        self._record_status(booking, BOOKING_CANCELLED, PROVIDER, reason)
        booking.provider_message = reason
        booking.rejected_at = now
        booking.cancelled_at = now
        booking.cancellation_details = {
            "cancelledBy": PROVIDER,
            "cancelledAt": now.isoformat(),
            "reason": reason,
            "refundAmount": booking.total_amount,
            "refundStatus": "pending",
        }
        self._commit()

        await self._notify(booking, "booking_rejected", PROVIDER)
        return {"message": "Booking rejected successfully", "booking": serialize_booking(booking)}

    async def start_booking(self, booking_id: int, provider: User) -> dict:
        booking = self._get_owned(booking_id, provider, PROVIDER)
        if booking.status != BOOKING_CONFIRMED:
            raise HTTPException(status_code=400, detail="Booking cannot be started")

        self._record_status(booking, BOOKING_IN_PROGRESS, PROVIDER, "Service started")
        booking.started_at = datetime.utcnow()
        self._commit()

        await self._notify(booking, "booking_started", PROVIDER)
        return {"message": "Booking started successfully", "booking": serialize_booking(booking)}

    async def complete_booking(self, booking_id: int, provider: User, data: CompleteBookingRequest) -> dict:
        booking = self._get_owned(booking_id, provider, PROVIDER)
        if booking.status not in (BOOKING_CONFIRMED, BOOKING_IN_PROGRESS):
            raise HTTPException(status_code=400, detail="Booking cannot be completed")

        notes = sanitize_text(data.notes)
        self._record_status(booking, BOOKING_COMPLETED, PROVIDER, "Service completed", notes)
        booking.completed_at = datetime.utcnow()
        if data.actualDuration:
            booking.booking_metadata = {**(booking.booking_metadata or {}), "actualDuration": data.actualDuration}

        if booking.service:
            booking.service.booking_count = (booking.service.booking_count or 0) + 1

        points = policy.loyalty_points_for(booking.total_amount)
        if booking.customer:
            self.user_repo.add_loyalty_points(
                booking.customer,
                points,
                "earned",
                f"Points earned from booking {booking.booking_number}",
                booking.id,
            )
        self._commit()
        logger.info(f"✅ Booking {booking.booking_number} completed")

        await self._notify(booking, "booking_completed", PROVIDER)
        return {
            "message": "Booking marked as completed successfully",
            "booking": serialize_booking(booking),
            "loyaltyPointsAwarded": points if booking.customer else 0,
        }

    # ========================================================================
    # MESSAGES
    # ========================================================================

    def add_message(self, booking_id: int, user: User, text: str) -> dict:
        booking = self.repo.get_booking(self.db, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        if user.id not in (booking.customer_id, booking.provider_id):
            raise HTTPException(status_code=403, detail="Access denied")

        content = sanitize_text((text or "").strip())
        if not content:
            raise HTTPException(status_code=400, detail="Message content is required")

        sender_role = CUSTOMER if user.id == booking.customer_id else PROVIDER
        booking.messages = list(booking.messages or []) + [
            {
                "from": user.id,
                "senderRole": sender_role,
                "message": content,
                "type": "text",
                "timestamp": datetime.utcnow().isoformat(),
                "isRead": False,
            }
        ]

        recipient_id = booking.provider_id if sender_role == CUSTOMER else booking.customer_id
        if recipient_id:
            self.repo.add_notification(
                self.db,
                recipient_id,
                booking.id,
                "message_received",
                "New Message",
                f"You have a new message about booking {booking.booking_number}",
            )
        self._commit()
        return {"message": "Message added successfully", "messageCount": len(booking.messages)}

    # ========================================================================
    # NOTIFICATIONS
    # ========================================================================

    def list_notifications(
        self, user: User, unread_only: bool = False, page: Optional[int] = None, limit: Optional[int] = None
    ) -> dict:
        page, limit = clamp_page(page, limit)
        notifications, total = paginate(self.repo.notifications_query(self.db, user.id, unread_only), page, limit)
        return {
            "notifications": [serialize_notification(n) for n in notifications],
            "unreadCount": self.repo.count_unread(self.db, user.id),
            "pagination": pagination_meta(page, limit, total),
        }

    def mark_notification_read(self, notification_id: int, user: User) -> dict:
        notification = self.repo.get_notification(self.db, notification_id, user.id)
        if not notification:
            raise HTTPException(status_code=404, detail="Notification not found")
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.utcnow()
            self._commit()
        return {"message": "Notification marked as read", "notification": serialize_notification(notification)}

    def mark_all_notifications_read(self, user: User) -> dict:
        updated = self.repo.mark_all_read(self.db, user.id)
        self._commit()
        return {"message": "All notifications marked as read", "updated": updated}
