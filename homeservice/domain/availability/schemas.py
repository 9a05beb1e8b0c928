"""Availability domain schemas"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...shared.validators import validate_time_string
from .scheduling import DAYS_OF_WEEK


class TimeSlotInput(BaseModel):
    start: str
    end: str
    isActive: bool = True

    @field_validator("start", "end")
    @classmethod
    def check_time(cls, v):
        return validate_time_string(v)


class DayScheduleInput(BaseModel):
    isAvailable: bool = False
    timeSlots: list[TimeSlotInput] = []


class WeeklyScheduleUpdate(BaseModel):
    """PUT /availability/schedule; booking settings are optional and left untouched when omitted"""

    weeklySchedule: dict[str, DayScheduleInput]
    timezone: Optional[str] = Field(None, max_length=50)
    bufferBefore: Optional[int] = Field(None, ge=0, le=240)
    bufferAfter: Optional[int] = Field(None, ge=0, le=240)
    minGap: Optional[int] = Field(None, ge=0, le=240)
    maxAdvanceBookingDays: Optional[int] = Field(None, ge=1, le=365)
    autoAcceptBookings: Optional[bool] = None

    @field_validator("weeklySchedule")
    @classmethod
    def check_days(cls, v):
        unknown = [day for day in v if day not in DAYS_OF_WEEK]
        if unknown:
            raise ValueError(f"Unknown day(s): {', '.join(unknown)}")
        return v


class DateOverrideCreate(BaseModel):
    date: date
    isAvailable: bool
    reason: Optional[str] = Field(None, max_length=200)
    timeSlots: list[TimeSlotInput] = []


class BlockPeriodCreate(BaseModel):
    startDate: date
    endDate: date
    reason: Optional[str] = Field(None, max_length=200)

    @model_validator(mode="after")
    def check_range(self):
        if self.startDate > self.endDate:
            raise ValueError("Start date must be on or before end date")
        return self
