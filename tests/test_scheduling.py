from datetime import date, datetime, timezone
from types import SimpleNamespace

import pytest

from homeservice.domain.availability import scheduling

MONDAY = date(2024, 6, 3)
SATURDAY = date(2024, 6, 8)


def availability(**fields):
    defaults = {
        "weekly_schedule": scheduling.default_weekly_schedule(),
        "date_overrides": [],
        "blocked_periods": [],
    }
    defaults.update(fields)
    return SimpleNamespace(**defaults)


def test_default_schedule_is_weekdays_nine_to_five():
    schedule = scheduling.default_weekly_schedule()
    assert [day for day, value in schedule.items() if value["isAvailable"]] == list(scheduling.DAYS_OF_WEEK[:5])
    assert schedule["friday"]["timeSlots"] == [{"start": "09:00", "end": "17:00", "isActive": True}]


class TestValidateTimeSlots:
    def test_valid(self):
        scheduling.validate_time_slots([{"start": "09:00", "end": "12:00"}, {"start": "12:00", "end": "15:00"}])

    def test_backwards_slot(self):
        with pytest.raises(ValueError, match="must start before it ends"):
            scheduling.validate_time_slots([{"start": "10:00", "end": "10:00"}])

    def test_overlap(self):
        with pytest.raises(ValueError, match="overlap"):
            scheduling.validate_time_slots([{"start": "13:00", "end": "15:00"}, {"start": "09:00", "end": "13:30"}])

    def test_inactive_slots_may_overlap(self):
        scheduling.validate_time_slots(
            [{"start": "09:00", "end": "12:00"}, {"start": "10:00", "end": "11:00", "isActive": False}]
        )


class TestWorkingSlots:
    def test_weekday(self):
        assert scheduling.working_slots(availability(), MONDAY) == [(540, 1020)]

    def test_weekend(self):
        assert scheduling.working_slots(availability(), SATURDAY) == []

    def test_custom_hours_override(self):
        override = {"date": "2024-06-03", "isAvailable": True, "timeSlots": [{"start": "14:00", "end": "16:00"}]}
        assert scheduling.working_slots(availability(date_overrides=[override]), MONDAY) == [(840, 960)]

    def test_inactive_slot_ignored(self):
        schedule = scheduling.default_weekly_schedule()
        schedule["monday"] = {
            "isAvailable": True,
            "timeSlots": [{"start": "09:00", "end": "11:00", "isActive": False}, {"start": "13:00", "end": "15:00"}],
        }
        assert scheduling.working_slots(availability(weekly_schedule=schedule), MONDAY) == [(780, 900)]


class TestExceptions:
    def test_unavailable_override(self):
        record = availability(date_overrides=[{"date": "2024-06-03", "isAvailable": False}])
        assert scheduling.day_exception(record, MONDAY) is True

    def test_blocked_period_is_inclusive(self):
        record = availability(blocked_periods=[{"startDate": "2024-06-01", "endDate": "2024-06-03"}])
        assert scheduling.day_exception(record, MONDAY) is True
        assert scheduling.day_exception(record, date(2024, 6, 4)) is False


class TestSlotMaths:
    def test_fits_in_slot(self):
        assert scheduling.fits_in_slot([(540, 1020)], 960, 60) is True
        assert scheduling.fits_in_slot([(540, 1020)], 990, 60) is False

    def test_overlaps_is_half_open(self):
        assert scheduling.overlaps(600, 660, [(660, 720)]) is False
        assert scheduling.overlaps(600, 661, [(660, 720)]) is True

    def test_candidate_starts(self):
        starts = scheduling.candidate_starts([(540, 720)], 60, 30, earliest=570, busy=[(660, 720)])
        assert starts == ["09:30", "10:00"]

    def test_earliest_start(self):
        now = datetime(2024, 6, 3, 10, 15)
        assert scheduling.earliest_start(date(2024, 6, 2), now) is None
        assert scheduling.earliest_start(date(2024, 6, 4), now) == 0
        assert scheduling.earliest_start(MONDAY, now) == 10 * 60 + 15 + 60


def test_unknown_timezone_falls_back_to_utc():
    assert isinstance(scheduling.local_now("Mars/Olympus"), datetime)


class TestToLocal:
    def test_utc_input_is_converted_to_provider_time(self):
        utc = datetime(2024, 6, 3, 4, 30, tzinfo=timezone.utc)
        assert scheduling.to_local(utc, "Asia/Kolkata") == datetime(2024, 6, 3, 10, 0)

    def test_naive_input_is_already_local(self):
        naive = datetime(2024, 6, 3, 10, 0)
        assert scheduling.to_local(naive, "Asia/Kolkata") == naive

    def test_unknown_zone_uses_utc(self):
        utc = datetime(2024, 6, 3, 4, 30, tzinfo=timezone.utc)
        assert scheduling.to_local(utc, "Mars/Olympus") == datetime(2024, 6, 3, 4, 30)
