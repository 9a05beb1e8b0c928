"""
Booking rules that need no database: pricing, refunds, booking numbers, cancellation
eligibility and notification wording.
"""

import math
from datetime import date, datetime
from typing import Optional

from ...constants import (
    BOOKING_CONFIRMED,
    BOOKING_PENDING,
    LOYALTY_POINTS_RATE,
    TAX_RATE,
)
from ...models import Booking

FALLBACK_INITIALS = "RZ"

CUSTOMER = "customer"
PROVIDER = "provider"

NOTIFICATION_TITLES = {
    "booking_request": {CUSTOMER: "Booking Request Submitted", PROVIDER: "New Booking Request"},
    "booking_confirmed": {CUSTOMER: "Booking Confirmed", PROVIDER: "Booking Accepted"},
    "booking_cancelled": {CUSTOMER: "Booking Cancelled", PROVIDER: "Booking Cancelled"},
    "booking_rejected": {CUSTOMER: "Booking Request Declined", PROVIDER: "Booking Rejected"},
    "booking_started": {CUSTOMER: "Service Started", PROVIDER: "Service Started"},
    "booking_completed": {CUSTOMER: "Service Completed", PROVIDER: "Service Completed"},
}

NOTIFICATION_MESSAGES = {
    "booking_request": {
        CUSTOMER: (
            "Your booking request for {serviceName} on {scheduledDate} has been submitted. "
            "You'll be notified once the provider responds."
        ),
        PROVIDER: "You have a new booking request for {serviceName} on {scheduledDate} from {customerName}.",
    },
    "booking_confirmed": {
        CUSTOMER: "Great! Your booking for {serviceName} on {scheduledDate} has been confirmed by {providerName}.",
        PROVIDER: "You have successfully accepted the booking request for {serviceName} on {scheduledDate}.",
    },
    "booking_cancelled": {
        CUSTOMER: (
            "Your booking {bookingNumber} for {serviceName} has been cancelled. "
            "Refund will be processed if applicable."
        ),
        PROVIDER: "Booking {bookingNumber} for {serviceName} on {scheduledDate} has been cancelled by the customer.",
    },
    "booking_rejected": {
        CUSTOMER: (
            "Unfortunately, your booking request for {serviceName} on {scheduledDate} "
            "has been declined by the provider."
        ),
        PROVIDER: "You have declined the booking request for {serviceName} on {scheduledDate}.",
    },
    "booking_started": {
        CUSTOMER: "Your service {serviceName} has been started by {providerName}. They should arrive shortly.",
        PROVIDER: "You have started the service {serviceName} for {customerName}.",
    },
    "booking_completed": {
        CUSTOMER: (
            "Your service {serviceName} has been completed. "
            "Please consider leaving a review for {providerName}."
        ),
        PROVIDER: "You have successfully completed the service {serviceName} for {customerName}.",
    },
}

DEFAULT_NOTIFICATION_TITLE = "Booking Update"
DEFAULT_NOTIFICATION_MESSAGE = "Your booking has been updated."


def calculate_pricing(base_price: float, add_ons: Optional[list[dict]] = None) -> dict:
    """Subtotal = base + add-ons; tax at TAX_RATE; amounts rounded to 2 dp"""
    add_ons_total = sum(float(a.get("price") or 0) for a in add_ons or [])
    subtotal = round(base_price + add_ons_total, 2)
    tax = round(subtotal * TAX_RATE, 2)
    return {
        "basePrice": round(base_price, 2),
        "addOnsTotal": round(add_ons_total, 2),
        "subtotal": subtotal,
        "tax": tax,
        "totalAmount": round(subtotal + tax, 2),
    }


def refund_percentage(policy_percentage: int, hours_until_start: float) -> int:
    """Under 2 hours nothing is refunded; under 24 hours the policy percentage drops by 50"""
    if hours_until_start < 2:
        return 0
    if hours_until_start < 24:
        return max(0, policy_percentage - 50)
    return policy_percentage


def calculate_refund(
    total_amount: float,
    policy_percentage: int,
    cancellation_fee: float,
    hours_until_start: float,
) -> float:
    percentage = refund_percentage(policy_percentage, hours_until_start)
    return round(max(0.0, total_amount * percentage / 100 - (cancellation_fee or 0)), 2)


def booking_initials(business_name: Optional[str]) -> str:
    words = (business_name or "").split()
    if len(words) >= 2:
        return (words[0][0] + words[1][0]).upper()
    if len(words) == 1:
        return words[0][:2].upper()
    return FALLBACK_INITIALS


def format_booking_number(initials: str, day: date, sequence: int) -> str:
    return f"{initials}-{day.strftime('%Y%m%d')}-{sequence:04d}"


def scheduled_start(booking: Booking) -> datetime:
    hours, minutes = booking.scheduled_time.split(":")
    return datetime.combine(booking.scheduled_date, datetime.min.time()).replace(
        hour=int(hours), minute=int(minutes)
    )


def can_customer_cancel(booking: Booking, now: datetime) -> bool:
    return (
        bool(booking.is_active)
        and now < booking.cancellation_allowed_until
        and booking.status in (BOOKING_PENDING, BOOKING_CONFIRMED)
    )


def loyalty_points_for(total_amount: float) -> int:
    return math.floor(total_amount * LOYALTY_POINTS_RATE)


def notification_title(notification_type: str, recipient: str) -> str:
    return NOTIFICATION_TITLES.get(notification_type, {}).get(recipient, DEFAULT_NOTIFICATION_TITLE)


def notification_message(notification_type: str, recipient: str, context: dict) -> str:
    template = NOTIFICATION_MESSAGES.get(notification_type, {}).get(recipient)
    if not template:
        return DEFAULT_NOTIFICATION_MESSAGE
    return template.format(**context)
