"""Provider service catalogue schemas"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...constants import (
    MAX_SERVICE_DURATION,
    MIN_SERVICE_DURATION,
    PRICE_TYPES,
    SUPPORTED_CURRENCIES,
    DEFAULT_CURRENCY,
    normalize_category,
)

SORT_FIELDS = ("name", "category", "price", "views", "popularity", "status", "createdAt")


def clean_tags(tags: list[str]) -> list[str]:
    cleaned = [t.strip().lower() for t in tags if t and t.strip()]
    if any(len(t) > 30 for t in cleaned):
        raise ValueError("Tags cannot exceed 30 characters")
    return cleaned


class PriceInput(BaseModel):
    amount: float = Field(..., ge=0, le=100000)
    currency: str = DEFAULT_CURRENCY
    type: str = "fixed"

    @field_validator("currency")
    @classmethod
    def check_currency(cls, v):
        if v not in SUPPORTED_CURRENCIES:
            raise ValueError(f"Currency must be one of: {', '.join(SUPPORTED_CURRENCIES)}")
        return v

    @field_validator("type")
    @classmethod
    def check_type(cls, v):
        if v not in PRICE_TYPES:
            raise ValueError("Price type must be fixed, hourly, or custom")
        return v


class ServiceAddOnInput(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    price: float = Field(..., ge=0)
    description: Optional[str] = Field(None, max_length=300)


class ServiceCreate(BaseModel):
    """Schema for a provider submitting a new service for review"""

    name: str = Field(..., min_length=3, max_length=100)
    category: str
    subcategory: Optional[str] = Field(None, max_length=50)
    description: str = Field(..., min_length=10, max_length=1000)
    shortDescription: Optional[str] = Field(None, max_length=200)
    price: PriceInput
    duration: int = Field(..., ge=MIN_SERVICE_DURATION, le=MAX_SERVICE_DURATION)
    tags: list[str] = Field([], max_length=10)
    images: list[str] = Field([], max_length=10)
    addOns: list[ServiceAddOnInput] = Field([], max_length=10)

    @field_validator("category")
    @classmethod
    def check_category(cls, v):
        category = normalize_category(v)
        if not category:
            raise ValueError("Invalid service category")
        return category

    @field_validator("tags")
    @classmethod
    def check_tags(cls, v):
        return clean_tags(v)


class ServiceUpdate(BaseModel):
    """Partial update; only provided fields change"""

    name: Optional[str] = Field(None, min_length=3, max_length=100)
    category: Optional[str] = None
    subcategory: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = Field(None, min_length=10, max_length=1000)
    shortDescription: Optional[str] = Field(None, max_length=200)
    price: Optional[PriceInput] = None
    duration: Optional[int] = Field(None, ge=MIN_SERVICE_DURATION, le=MAX_SERVICE_DURATION)
    tags: Optional[list[str]] = Field(None, max_length=10)
    images: Optional[list[str]] = Field(None, max_length=10)
    addOns: Optional[list[ServiceAddOnInput]] = Field(None, max_length=10)

    @field_validator("category")
    @classmethod
    def check_category(cls, v):
        if v is None:
            return v
        category = normalize_category(v)
        if not category:
            raise ValueError("Invalid service category")
        return category

    @field_validator("tags")
    @classmethod
    def check_tags(cls, v):
        return v if v is None else clean_tags(v)


class ServiceStatusUpdate(BaseModel):
    status: str
