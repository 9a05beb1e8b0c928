import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    event,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .constants import (
    ACCOUNT_PENDING_VERIFICATION,
    BOOKING_PENDING,
    DEFAULT_CURRENCY,
    DEFAULT_TIMEZONE,
    PROFILE_COMPLETE_THRESHOLD,
    ROLE_CUSTOMER,
    SERVICE_ACTIVE,
    VERIFICATION_APPROVED,
    VERIFICATION_PENDING,
)
from .database import Base


def generate_public_id():
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, index=True, default=generate_public_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), default=ROLE_CUSTOMER, nullable=False, index=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    phone = Column(String(30), nullable=True)
    avatar = Column(String(500), nullable=True)
    bio = Column(Text, nullable=True)
    date_of_birth = Column(Date, nullable=True)
    gender = Column(String(30), nullable=True)
    address = Column(JSON, nullable=True)
    communication_preferences = Column(JSON, nullable=True)

    # Account state
    account_status = Column(String(30), default=ACCOUNT_PENDING_VERIFICATION, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)
    email_verified = Column(Boolean, default=False, nullable=False)
    login_attempts = Column(Integer, default=0, nullable=False)
    lock_until = Column(DateTime, nullable=True)
    last_login = Column(DateTime, nullable=True)
    password_changed_at = Column(DateTime, nullable=True)

    # Tokens
    refresh_tokens = Column(JSON, default=list, nullable=False)
    password_reset_token = Column(String(64), nullable=True, index=True)  # sha256 hex
    password_reset_expires = Column(DateTime, nullable=True)
    email_verification_token = Column(Text, nullable=True)

    # Loyalty
    loyalty_coins = Column(Integer, default=0, nullable=False)
    loyalty_total_earned = Column(Integer, default=0, nullable=False)
    loyalty_history = Column(JSON, default=list, nullable=False)
    referral_code = Column(String(20), unique=True, nullable=True)
    referred_by = Column(String(20), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    customer_profile = relationship(
        "CustomerProfile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    provider_profile = relationship(
        "ProviderProfile",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
        foreign_keys="ProviderProfile.user_id",
    )
    services = relationship("Service", back_populates="provider", cascade="all, delete-orphan")
    availability = relationship(
        "ProviderAvailability", back_populates="provider", uselist=False, cascade="all, delete-orphan"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class CustomerProfile(Base):
    __tablename__ = "customer_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    preferences = Column(JSON, default=dict, nullable=False)
    saved_addresses = Column(JSON, default=list, nullable=False)
    favorite_services = Column(JSON, default=list, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="customer_profile")


class ProviderProfile(Base):
    __tablename__ = "provider_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    business_info = Column(JSON, default=dict, nullable=False)  # businessName, description, businessType, website
    location_info = Column(JSON, default=dict, nullable=False)  # primaryAddress, serviceRadius
    profile_services = Column(JSON, default=list, nullable=False)  # services declared at registration
    instagram_style_profile = Column(JSON, default=dict, nullable=False)  # profilePhoto, bio, posts

    verification_status = Column(String(20), default=VERIFICATION_PENDING, nullable=False, index=True)
    verification_notes = Column(Text, nullable=True)
    rejection_reason = Column(String(50), nullable=True)
    verified_at = Column(DateTime, nullable=True)
    verified_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    rating_average = Column(Float, default=0.0, nullable=False)
    rating_count = Column(Integer, default=0, nullable=False)
    completion_percentage = Column(Integer, default=0, nullable=False)
    is_profile_complete = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="provider_profile", foreign_keys=[user_id])

    @property
    def business_name(self) -> str:
        return (self.business_info or {}).get("businessName") or ""

    def recalculate_completion(self) -> int:
        """Weighted profile completeness: business 30, profile 25, services 25, location 10, verification 10"""
        business = self.business_info or {}
        required_business = ["businessName", "description"]
        business_score = len([f for f in required_business if business.get(f)]) / len(required_business)

        profile = self.instagram_style_profile or {}
        profile_score = (
            (1 if profile.get("profilePhoto") else 0)
            + (1 if profile.get("bio") else 0)
            + (1 if profile.get("posts") else 0)
        ) / 3

        services = self.profile_services or []
        services_score = 1 if any(s.get("isActive", True) for s in services) else 0
        location_score = 1 if (self.location_info or {}).get("primaryAddress") else 0
        verification_score = 1 if self.verification_status == VERIFICATION_APPROVED else 0

        self.completion_percentage = round(
            business_score * 30
            + profile_score * 25
            + services_score * 25
            + location_score * 10
            + verification_score * 10
        )
        self.is_profile_complete = self.completion_percentage >= PROFILE_COMPLETE_THRESHOLD
        return self.completion_percentage


class ServiceCategory(Base):
    __tablename__ = "service_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    slug = Column(String(100), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String(100), nullable=True)
    color = Column(String(20), nullable=True)
    image_url = Column(String(500), nullable=True)
    sort_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_featured = Column(Boolean, default=False, nullable=False)
    subcategories = Column(JSON, default=list, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    def active_subcategories(self) -> list[dict]:
        return [s for s in (self.subcategories or []) if s.get("isActive", True)]


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    category = Column(String(100), nullable=False, index=True)
    subcategory = Column(String(100), nullable=True)
    description = Column(String(1000), nullable=True)
    short_description = Column(String(200), nullable=True)
    price_amount = Column(Float, default=0.0, nullable=False)
    price_currency = Column(String(3), default=DEFAULT_CURRENCY, nullable=False)
    price_type = Column(String(10), default="fixed", nullable=False)
    duration = Column(Integer, default=60, nullable=False)  # minutes
    images = Column(JSON, default=list, nullable=False)
    tags = Column(JSON, default=list, nullable=False)
    add_ons = Column(JSON, default=list, nullable=False)
    location = Column(JSON, default=dict, nullable=False)  # address, coordinates [lng, lat]

    rating_average = Column(Float, default=0.0, nullable=False)
    rating_count = Column(Integer, default=0, nullable=False)

    search_count = Column(Integer, default=0, nullable=False)
    click_count = Column(Integer, default=0, nullable=False)
    booking_count = Column(Integer, default=0, nullable=False)
    popularity_score = Column(Float, default=0.0, nullable=False)
    last_searched = Column(DateTime, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    is_featured = Column(Boolean, default=False, nullable=False)
    is_popular = Column(Boolean, default=False, nullable=False)
    status = Column(String(20), default=SERVICE_ACTIVE, nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    provider = relationship("User", back_populates="services")

    def refresh_popularity(self) -> float:
        self.popularity_score = round(
            (self.search_count or 0) * 0.1
            + (self.click_count or 0) * 0.3
            + (self.booking_count or 0) * 0.6,
            2,
        )
        return self.popularity_score


class ProviderAvailability(Base):
    __tablename__ = "provider_availability"

    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    weekly_schedule = Column(JSON, nullable=False)
    date_overrides = Column(JSON, default=list, nullable=False)
    blocked_periods = Column(JSON, default=list, nullable=False)
    timezone = Column(String(50), default=DEFAULT_TIMEZONE, nullable=False)
    buffer_before = Column(Integer, default=15, nullable=False)
    buffer_after = Column(Integer, default=15, nullable=False)
    min_gap = Column(Integer, default=30, nullable=False)
    max_advance_booking_days = Column(Integer, default=30, nullable=False)
    auto_accept_bookings = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    provider = relationship("User", back_populates="availability")


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_number = Column(String(30), unique=True, index=True, nullable=False)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)  # null for guests
    guest_info = Column(JSON, nullable=True)
    provider_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False, index=True)

    scheduled_date = Column(Date, nullable=False, index=True)
    scheduled_time = Column(String(5), nullable=False)  # HH:MM
    duration = Column(Integer, nullable=False)
    estimated_end_time = Column(DateTime, nullable=False)
    location = Column(JSON, default=dict, nullable=False)

    base_price = Column(Float, nullable=False)
    add_ons = Column(JSON, default=list, nullable=False)
    subtotal = Column(Float, nullable=False)
    tax = Column(Float, nullable=False)
    total_amount = Column(Float, nullable=False)
    currency = Column(String(3), default=DEFAULT_CURRENCY, nullable=False)

    customer_info = Column(JSON, default=dict, nullable=False)
    special_requests = Column(Text, nullable=True)
    status = Column(String(20), default=BOOKING_PENDING, nullable=False, index=True)
    status_history = Column(JSON, default=list, nullable=False)

    cancellation_allowed_until = Column(DateTime, nullable=False)
    cancellation_refund_percentage = Column(Integer, default=100, nullable=False)
    cancellation_fee = Column(Float, default=0.0, nullable=False)
    cancellation_details = Column(JSON, nullable=True)

    provider_message = Column(Text, nullable=True)
    accepted_at = Column(DateTime, nullable=True)
    rejected_at = Column(DateTime, nullable=True)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    messages = Column(JSON, default=list, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    booking_metadata = Column(JSON, default=dict, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    customer = relationship("User", foreign_keys=[customer_id])
    provider = relationship("User", foreign_keys=[provider_id])
    service = relationship("Service")
    notifications = relationship(
        "BookingNotification", back_populates="booking", cascade="all, delete-orphan"
    )


class BookingNotification(Base):
    __tablename__ = "booking_notifications"

    id = Column(Integer, primary_key=True, index=True)
    recipient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    booking = relationship("Booking", back_populates="notifications")


@event.listens_for(ProviderProfile, "before_insert")
@event.listens_for(ProviderProfile, "before_update")
def _provider_profile_completion(_mapper, _connection, target):
    target.recalculate_completion()


@event.listens_for(Service, "before_insert")
@event.listens_for(Service, "before_update")
def _service_popularity(_mapper, _connection, target):
    target.refresh_popularity()
