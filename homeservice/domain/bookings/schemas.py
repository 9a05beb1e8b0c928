"""Booking domain schemas"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import (
    validate_email,
    validate_person_name,
    validate_phone,
    validate_time_string,
)
from ..auth.schemas import AddressInput

LOCATION_TYPES = ("customer_address", "provider_location", "online")
DEVICE_TYPES = ("desktop", "mobile", "tablet")


class BookingLocationInput(BaseModel):
    type: str = "customer_address"
    address: Optional[AddressInput] = None
    notes: Optional[str] = Field(None, max_length=200)

    @field_validator("type")
    @classmethod
    def check_type(cls, v):
        if v not in LOCATION_TYPES:
            raise ValueError(f"Location type must be one of: {', '.join(LOCATION_TYPES)}")
        return v


class AddOnInput(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    price: float = Field(..., ge=0)


class CustomerInfoInput(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = None
    email: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class BookingMetadataInput(BaseModel):
    bookingSource: str = "search"
    deviceType: str = "desktop"
    sessionId: Optional[str] = Field(None, max_length=100)

    @field_validator("deviceType")
    @classmethod
    def check_device(cls, v):
        if v not in DEVICE_TYPES:
            raise ValueError(f"Device type must be one of: {', '.join(DEVICE_TYPES)}")
        return v


class BookingCreate(BaseModel):
    """Schema for a customer booking request"""

    serviceId: int
    providerId: int
    scheduledDate: date
    scheduledTime: str
    location: BookingLocationInput = BookingLocationInput()
    customerInfo: Optional[CustomerInfoInput] = None
    addOns: list[AddOnInput] = []
    specialRequests: Optional[str] = Field(None, max_length=500)
    metadata: Optional[BookingMetadataInput] = None

    @field_validator("scheduledDate")
    @classmethod
    def check_not_past(cls, v):
        if v < date.today():
            raise ValueError("Scheduled date cannot be in the past")
        return v

    @field_validator("scheduledTime")
    @classmethod
    def check_time(cls, v):
        return validate_time_string(v)


class GuestInfoInput(BaseModel):
    firstName: str
    lastName: str
    email: str
    phone: str

    @field_validator("firstName", "lastName")
    @classmethod
    def check_name(cls, v):
        return validate_person_name(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)


class GuestBookingCreate(BookingCreate):
    guestInfo: GuestInfoInput


class CancelBookingRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class AcceptBookingRequest(BaseModel):
    message: Optional[str] = Field(None, max_length=500)


class RejectBookingRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class CompleteBookingRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=1000)
    actualDuration: Optional[int] = Field(None, ge=1, le=1440)


class BookingMessageCreate(BaseModel):
    message: str = Field("", max_length=1000)
