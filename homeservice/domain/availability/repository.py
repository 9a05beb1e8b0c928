"""Availability repository - provider schedules and the bookings that occupy them"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...constants import SLOT_BLOCKING_STATUSES
from ...models import Booking, ProviderAvailability
from ...shared.validators import time_to_minutes
from .scheduling import default_weekly_schedule


class AvailabilityRepository:
    """Repository for provider availability database operations"""

    @staticmethod
    def get_availability(db: Session, provider_id: int) -> Optional[ProviderAvailability]:
        return db.query(ProviderAvailability).filter(ProviderAvailability.provider_id == provider_id).first()

    @staticmethod
    def get_or_create_availability(db: Session, provider_id: int) -> ProviderAvailability:
        """Load the provider's availability, creating the default schedule on first use"""
        availability = AvailabilityRepository.get_availability(db, provider_id)
        if availability:
            return availability

        availability = ProviderAvailability(
            provider_id=provider_id,
            weekly_schedule=default_weekly_schedule(),
            date_overrides=[],
            blocked_periods=[],
        )
        db.add(availability)
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(availability)
        return availability

    @staticmethod
    def get_blocking_bookings(
        db: Session,
        provider_id: int,
        day: date,
        exclude_booking_id: Optional[int] = None,
    ) -> list[Booking]:
        query = db.query(Booking).filter(
            Booking.provider_id == provider_id,
            Booking.scheduled_date == day,
            Booking.status.in_(SLOT_BLOCKING_STATUSES),
            Booking.is_active.is_(True),
        )
        if exclude_booking_id:
            query = query.filter(Booking.id != exclude_booking_id)
        return query.all()

    @staticmethod
    def busy_ranges(bookings: list[Booking]) -> list[tuple[int, int]]:
        ranges = []
        for booking in bookings:
            start = time_to_minutes(booking.scheduled_time)
            ranges.append((start, start + booking.duration))
        return ranges

    @staticmethod
    def save(db: Session, availability: ProviderAvailability) -> ProviderAvailability:
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(availability)
        return availability
