"""Availability service - provider schedule management and public slot lookups"""

import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...constants import ROLE_PROVIDER
from ...models import ProviderAvailability, User
from ...shared.validators import parse_date
from . import scheduling
from .repository import AvailabilityRepository
from .schemas import BlockPeriodCreate, DateOverrideCreate, WeeklyScheduleUpdate

logger = logging.getLogger(__name__)

# WeeklyScheduleUpdate field -> ProviderAvailability column
SETTINGS_COLUMNS = {
    "timezone": "timezone",
    "bufferBefore": "buffer_before",
    "bufferAfter": "buffer_after",
    "minGap": "min_gap",
    "maxAdvanceBookingDays": "max_advance_booking_days",
    "autoAcceptBookings": "auto_accept_bookings",
}


def serialize_availability(availability: ProviderAvailability) -> dict:
    return {
        "id": availability.id,
        "providerId": availability.provider_id,
        "weeklySchedule": availability.weekly_schedule,
        "dateOverrides": availability.date_overrides,
        "blockedPeriods": availability.blocked_periods,
        "timezone": availability.timezone,
        "bufferBefore": availability.buffer_before,
        "bufferAfter": availability.buffer_after,
        "minGap": availability.min_gap,
        "maxAdvanceBookingDays": availability.max_advance_booking_days,
        "autoAcceptBookings": availability.auto_accept_bookings,
        "updatedAt": availability.updated_at,
    }


def _slot_dicts(slots) -> list[dict]:
    return [slot.model_dump() for slot in slots]


class AvailabilityService:
    """Service layer for availability business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AvailabilityRepository()

    def _provider(self, provider_id: int) -> Optional[User]:
        return (
            self.db.query(User)
            .filter(User.id == provider_id, User.role == ROLE_PROVIDER, User.is_deleted.is_(False))
            .first()
        )

    def _payload(self, message: str, availability: ProviderAvailability) -> dict:
        return {"message": message, "availability": serialize_availability(availability)}

    # ========================================================================
    # PROVIDER SETTINGS
    # ========================================================================

    def get_availability(self, provider: User) -> dict:
        availability = self.repo.get_or_create_availability(self.db, provider.id)
        return {"availability": serialize_availability(availability)}

    def update_weekly_schedule(self, provider: User, data: WeeklyScheduleUpdate) -> dict:
        schedule = {}
        for day, day_schedule in data.weeklySchedule.items():
            slots = _slot_dicts(day_schedule.timeSlots)
            try:
                scheduling.validate_time_slots(slots)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=f"Invalid time slot on {day}: {e}") from e
            schedule[day] = {"isAvailable": day_schedule.isAvailable, "timeSlots": slots}

        availability = self.repo.get_or_create_availability(self.db, provider.id)
        # Days left out of the request keep their current hours
        availability.weekly_schedule = {**(availability.weekly_schedule or {}), **schedule}
        for field, column in SETTINGS_COLUMNS.items():
            value = getattr(data, field)
            if value is not None:
                setattr(availability, column, value)

        self.repo.save(self.db, availability)
        logger.info(f"✅ Weekly schedule updated for provider {provider.id}")
        return self._payload("Weekly schedule updated successfully", availability)

    def add_date_override(self, provider: User, data: DateOverrideCreate) -> dict:
        slots = _slot_dicts(data.timeSlots)
        try:
            scheduling.validate_time_slots(slots)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=f"Invalid time slot on {data.date}: {e}") from e

        availability = self.repo.get_or_create_availability(self.db, provider.id)
        target = data.date.isoformat()
        overrides = [o for o in availability.date_overrides or [] if o.get("date") != target]
        overrides.append(
            {
                "date": target,
                "isAvailable": data.isAvailable,
                "reason": data.reason,
                "timeSlots": slots,
                "createdAt": datetime.utcnow().isoformat(),
            }
        )
        availability.date_overrides = sorted(overrides, key=lambda o: o["date"])
        self.repo.save(self.db, availability)
        return self._payload("Date override added successfully", availability)

    def remove_date_override(self, provider: User, override_date: str) -> dict:
        try:
            target = parse_date(override_date, "date").isoformat()
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        availability = self.repo.get_or_create_availability(self.db, provider.id)
        availability.date_overrides = [o for o in availability.date_overrides or [] if o.get("date") != target]
        self.repo.save(self.db, availability)
        return self._payload("Date override removed successfully", availability)

    def block_period(self, provider: User, data: BlockPeriodCreate) -> dict:
        availability = self.repo.get_or_create_availability(self.db, provider.id)
        period = {
            "id": uuid.uuid4().hex,
            "startDate": data.startDate.isoformat(),
            "endDate": data.endDate.isoformat(),
            "reason": data.reason,
            "createdAt": datetime.utcnow().isoformat(),
        }
        availability.blocked_periods = list(availability.blocked_periods or []) + [period]
        self.repo.save(self.db, availability)
        logger.info(f"🚫 Provider {provider.id} blocked {period['startDate']} to {period['endDate']}")
        return {**self._payload("Time period blocked successfully", availability), "blockedPeriod": period}

    def remove_blocked_period(self, provider: User, block_id: str) -> dict:
        availability = self.repo.get_or_create_availability(self.db, provider.id)
        periods = availability.blocked_periods or []
        remaining = [p for p in periods if p.get("id") != block_id]
        if len(remaining) == len(periods):
            raise HTTPException(status_code=404, detail="Blocked period not found")

        availability.blocked_periods = remaining
        self.repo.save(self.db, availability)
        return self._payload("Blocked period removed successfully", availability)

    # ========================================================================
    # PUBLIC LOOKUPS
    # ========================================================================

    def get_available_slots(self, provider_id: int, day: date, duration: int) -> dict:
        if not self._provider(provider_id):
            raise HTTPException(status_code=404, detail="Provider not found")

        availability = self.repo.get_or_create_availability(self.db, provider_id)
        result = {"date": day.isoformat(), "duration": duration, "slots": []}

        now = scheduling.local_now(availability.timezone)
        earliest = scheduling.earliest_start(day, now)
        last_day = now.date() + timedelta(days=availability.max_advance_booking_days)
        if earliest is None or day > last_day or scheduling.day_exception(availability, day):
            return result

        slots = scheduling.working_slots(availability, day)
        busy = self.repo.busy_ranges(self.repo.get_blocking_bookings(self.db, provider_id, day))
        result["slots"] = scheduling.candidate_starts(slots, duration, duration, earliest, busy)
        return result

    def check_time_slot(self, provider_id: int, start: datetime, end: datetime) -> dict:
        """Answer whether [start, end) is bookable, with a reason code when it is not"""

        def unavailable(reason: str, conflicts: Optional[list] = None) -> dict:
            return {"isAvailable": False, "conflictingBookings": conflicts or [], "reason": reason}

        if not self._provider(provider_id):
            return unavailable(scheduling.NO_PROFILE)

        availability = self.repo.get_or_create_availability(self.db, provider_id)
        start, end = scheduling.to_local(start, availability.timezone), scheduling.to_local(end, availability.timezone)
        if end <= start:
            raise HTTPException(status_code=400, detail="End time must be after start time")
        day = start.date()

        if scheduling.day_exception(availability, day):
            return unavailable(scheduling.DATE_EXCEPTION)

        slots = scheduling.working_slots(availability, day)
        if not slots:
            return unavailable(scheduling.NOT_AVAILABLE_DAY)

        start_minute = start.hour * 60 + start.minute
        duration = int((end - start).total_seconds() // 60)

        earliest = scheduling.earliest_start(day, scheduling.local_now(availability.timezone))
        if earliest is None or start_minute < earliest:
            return unavailable(scheduling.PAST_SLOT)

        if not scheduling.fits_in_slot(slots, start_minute, duration):
            return unavailable(scheduling.NOT_IN_SLOT)

        bookings = self.repo.get_blocking_bookings(self.db, provider_id, day)
        conflicts = [
            {
                "id": b.id,
                "bookingNumber": b.booking_number,
                "scheduledTime": b.scheduled_time,
                "duration": b.duration,
                "status": b.status,
            }
            for b, busy in zip(bookings, self.repo.busy_ranges(bookings))
            if scheduling.overlaps(start_minute, start_minute + duration, [busy])
        ]
        if conflicts:
            return unavailable(scheduling.CONFLICT, conflicts)

        return {"isAvailable": True, "conflictingBookings": [], "reason": None}
