"""
Weekly schedule arithmetic shared by bookings and the public availability endpoints

Times are provider wall-clock minutes since midnight; dates are calendar dates in the
provider's timezone. Nothing here touches the database.
"""

import logging
from datetime import date, datetime
from typing import Iterable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ...constants import SAME_DAY_NOTICE_MINUTES
from ...models import ProviderAvailability
from ...shared.validators import minutes_to_time, time_to_minutes

logger = logging.getLogger(__name__)

DAYS_OF_WEEK = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

# Reason codes returned by the availability check endpoint
NO_PROFILE = "NO_PROFILE"
NOT_AVAILABLE_DAY = "NOT_AVAILABLE_DAY"
DATE_EXCEPTION = "DATE_EXCEPTION"
NOT_IN_SLOT = "NOT_IN_SLOT"
PAST_SLOT = "PAST_SLOT"
CONFLICT = "CONFLICT"


def default_weekly_schedule() -> dict:
    """Mon-Fri 09:00-17:00, weekends off"""
    working_day = {"isAvailable": True, "timeSlots": [{"start": "09:00", "end": "17:00", "isActive": True}]}
    off_day = {"isAvailable": False, "timeSlots": []}
    return {day: dict(working_day if i < 5 else off_day) for i, day in enumerate(DAYS_OF_WEEK)}


def day_name(value: date) -> str:
    return DAYS_OF_WEEK[value.weekday()]


def provider_zone(timezone: Optional[str]):
    try:
        return ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError, TypeError):
        logger.warning(f"⚠️ Unknown timezone {timezone!r}, using UTC")
        return ZoneInfo("UTC")


def local_now(timezone: Optional[str]) -> datetime:
    """Naive wall-clock 'now' in the provider's timezone"""
    return datetime.now(provider_zone(timezone)).replace(tzinfo=None)


def to_local(value: datetime, timezone: Optional[str]) -> datetime:
    """
    Naive wall-clock time in the provider's timezone. Offset-aware input (``...Z``, ``+05:30``)
    is converted first; naive input is taken as already local.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(provider_zone(timezone)).replace(tzinfo=None)


def validate_time_slots(slots: list[dict]) -> None:
    """
    Every slot must run forwards and a day's active slots must not overlap.

    Raises:
        ValueError: describing the first offending slot
    """
    ranges = []
    for slot in slots:
        start, end = time_to_minutes(slot["start"]), time_to_minutes(slot["end"])
        if start >= end:
            raise ValueError(f"Slot {slot['start']}-{slot['end']} must start before it ends")
        if slot.get("isActive", True):
            ranges.append((start, end, slot))

    ranges.sort(key=lambda r: r[0])
    for (_, prev_end, prev), (start, _, slot) in zip(ranges, ranges[1:]):
        if start < prev_end:
            raise ValueError(
                f"Slots {prev['start']}-{prev['end']} and {slot['start']}-{slot['end']} overlap"
            )


def find_override(availability: ProviderAvailability, value: date) -> Optional[dict]:
    target = value.isoformat()
    for override in availability.date_overrides or []:
        if override.get("date") == target:
            return override
    return None


def in_blocked_period(availability: ProviderAvailability, value: date) -> bool:
    target = value.isoformat()
    return any(
        period.get("startDate") <= target <= period.get("endDate")
        for period in availability.blocked_periods or []
    )


def day_exception(availability: ProviderAvailability, value: date) -> bool:
    """True when an unavailable override or a blocked period covers the date"""
    override = find_override(availability, value)
    if override is not None and not override.get("isAvailable", True):
        return True
    return in_blocked_period(availability, value)


def working_slots(availability: ProviderAvailability, value: date) -> list[tuple[int, int]]:
    """
    Active (start, end) minute ranges for the date.
    A custom-hours override replaces the weekly slots for that date.
    """
    override = find_override(availability, value)
    if override is not None and override.get("isAvailable", True) and override.get("timeSlots"):
        slots = override["timeSlots"]
    else:
        day = (availability.weekly_schedule or {}).get(day_name(value)) or {}
        if not day.get("isAvailable"):
            return []
        slots = day.get("timeSlots") or []

    return sorted(
        (time_to_minutes(s["start"]), time_to_minutes(s["end"]))
        for s in slots
        if s.get("isActive", True) and s.get("start") and s.get("end")
    )


def fits_in_slot(slots: Iterable[tuple[int, int]], start: int, duration: int) -> bool:
    return any(slot_start <= start and start + duration <= slot_end for slot_start, slot_end in slots)


def overlaps(start: int, end: int, busy: Iterable[tuple[int, int]]) -> bool:
    return any(start < busy_end and end > busy_start for busy_start, busy_end in busy)


def candidate_starts(
    slots: Iterable[tuple[int, int]],
    duration: int,
    step: int,
    earliest: int = 0,
    busy: Iterable[tuple[int, int]] = (),
) -> list[str]:
    """HH:MM starts inside each slot, ``step`` minutes apart, that fit ``duration``"""
    busy = list(busy)
    starts: list[str] = []
    for slot_start, slot_end in slots:
        minute = slot_start
        while minute + duration <= slot_end:
            if minute >= earliest and not overlaps(minute, minute + duration, busy):
                label = minutes_to_time(minute)
                if label not in starts:
                    starts.append(label)
            minute += step
    return starts


def earliest_start(value: date, now: datetime, notice: int = SAME_DAY_NOTICE_MINUTES) -> Optional[int]:
    """
    First bookable minute on ``value`` given the same-day notice period.
    None means the whole date is in the past.
    """
    today = now.date()
    if value < today:
        return None
    if value > today:
        return 0
    return now.hour * 60 + now.minute + notice
