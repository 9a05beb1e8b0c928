"""Auth domain schemas - registration, login and account request bodies"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...constants import MAX_SERVICE_DURATION, MIN_SERVICE_DURATION, PRICE_TYPES, DEFAULT_CURRENCY
from ...security_utils import validate_password_policy
from ...shared.validators import (
    validate_birth_date,
    validate_email,
    validate_gender,
    validate_person_name,
    validate_phone,
)

BUSINESS_TYPES = ("individual", "small_business", "company", "franchise")

# Keys accepted by PATCH /auth/me
PROFILE_UPDATE_FIELDS = (
    "firstName",
    "lastName",
    "phone",
    "bio",
    "dateOfBirth",
    "gender",
    "avatar",
    "address",
    "communicationPreferences",
)


class Coordinates(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class AddressInput(BaseModel):
    street: Optional[str] = Field(None, max_length=200)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field("IN", max_length=100)
    zipCode: Optional[str] = Field(None, max_length=20)
    coordinates: Optional[Coordinates] = None


class CustomerRegisterRequest(BaseModel):
    """Schema for customer sign up"""

    firstName: str
    lastName: str
    email: str
    password: str
    phone: Optional[str] = None
    dateOfBirth: Optional[date] = None
    gender: Optional[str] = None
    address: Optional[AddressInput] = None
    communicationPreferences: Optional[dict] = None
    referralCode: Optional[str] = None
    agreeToTerms: bool = False
    agreeToPrivacy: bool = False

    @field_validator("firstName", "lastName")
    @classmethod
    def check_name(cls, v):
        return validate_person_name(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        return validate_password_policy(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("dateOfBirth")
    @classmethod
    def check_birth_date(cls, v):
        return validate_birth_date(v)

    @field_validator("gender")
    @classmethod
    def check_gender(cls, v):
        return validate_gender(v)

    @field_validator("agreeToTerms")
    @classmethod
    def check_terms(cls, v):
        if v is not True:
            raise ValueError("You must agree to the terms and conditions")
        return v

    @field_validator("agreeToPrivacy")
    @classmethod
    def check_privacy(cls, v):
        if v is not True:
            raise ValueError("You must agree to the privacy policy")
        return v


class BusinessInfoInput(BaseModel):
    businessName: str = Field(..., min_length=2, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    businessType: str = "individual"
    tagline: Optional[str] = Field(None, max_length=100)
    website: Optional[str] = None

    @field_validator("businessType")
    @classmethod
    def check_business_type(cls, v):
        if v not in BUSINESS_TYPES:
            raise ValueError(f"Business type must be one of: {', '.join(BUSINESS_TYPES)}")
        return v


class PrimaryAddressInput(BaseModel):
    street: str
    city: str
    state: str
    zipCode: str
    country: str = "IN"
    coordinates: Optional[Coordinates] = None


class LocationInfoInput(BaseModel):
    primaryAddress: PrimaryAddressInput
    serviceRadius: int = Field(25, ge=1, le=100)
    mobileService: bool = True
    hasFixedLocation: bool = False


class ServicePriceInput(BaseModel):
    amount: float = Field(..., ge=0)
    currency: str = DEFAULT_CURRENCY
    type: str = "fixed"

    @field_validator("type")
    @classmethod
    def check_price_type(cls, v):
        if v not in PRICE_TYPES:
            raise ValueError(f"Price type must be one of: {', '.join(PRICE_TYPES)}")
        return v


class DeclaredServiceInput(BaseModel):
    """A service declared on the provider registration form"""

    name: str = Field(..., min_length=1, max_length=100)
    category: str
    subcategory: Optional[str] = None
    description: Optional[str] = Field(None, max_length=500)
    duration: int = Field(..., ge=MIN_SERVICE_DURATION, le=MAX_SERVICE_DURATION)
    price: ServicePriceInput
    tags: list[str] = []


class ProviderRegisterRequest(CustomerRegisterRequest):
    """Schema for provider sign up; phone and date of birth become mandatory"""

    phone: str
    dateOfBirth: date
    businessInfo: BusinessInfoInput
    locationInfo: LocationInfoInput
    services: list[DeclaredServiceInput] = Field(..., min_length=1)


class AdminRegisterRequest(BaseModel):
    firstName: str
    lastName: str
    email: str
    password: str
    phone: Optional[str] = None

    @field_validator("firstName", "lastName")
    @classmethod
    def check_name(cls, v):
        return validate_person_name(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        return validate_password_policy(v)


class LoginRequest(BaseModel):
    email: str
    password: str = Field(..., min_length=1)
    rememberMe: bool = False

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class RefreshTokenRequest(BaseModel):
    refreshToken: Optional[str] = None


class LogoutRequest(BaseModel):
    refreshToken: Optional[str] = None


class EmailOnlyRequest(BaseModel):
    """Body for forgot-password and resend-verification"""

    email: str

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class PasswordStrengthRequest(BaseModel):
    password: str = Field(..., max_length=256)


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str
    confirmPassword: str

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        return validate_password_policy(v)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirmPassword:
            raise ValueError("Passwords do not match")
        return self


class ChangePasswordRequest(BaseModel):
    currentPassword: str = Field(..., min_length=1)
    newPassword: str
    confirmPassword: str

    @field_validator("newPassword")
    @classmethod
    def check_password(cls, v):
        return validate_password_policy(v)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.newPassword != self.confirmPassword:
            raise ValueError("Passwords do not match")
        return self


class VerifyEmailRequest(BaseModel):
    token: str = Field(..., min_length=1)


class ProfileUpdate(BaseModel):
    """Validated PATCH /auth/me body; unknown keys are rejected before this runs"""

    firstName: Optional[str] = None
    lastName: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=500)
    dateOfBirth: Optional[date] = None
    gender: Optional[str] = None
    avatar: Optional[str] = Field(None, max_length=500)
    address: Optional[AddressInput] = None
    communicationPreferences: Optional[dict] = None

    @field_validator("firstName")
    @classmethod
    def check_first_name(cls, v):
        return validate_person_name(v)

    @field_validator("lastName")
    @classmethod
    def check_last_name(cls, v):
        return validate_person_name(v, min_length=1)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("dateOfBirth")
    @classmethod
    def check_birth_date(cls, v):
        return validate_birth_date(v)

    @field_validator("gender")
    @classmethod
    def check_gender(cls, v):
        return validate_gender(v)
