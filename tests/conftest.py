import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ.pop("REDIS_URL", None)
os.environ.pop("REDIS_HOST", None)

from datetime import date, datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from homeservice.constants import (  # noqa: E402
    ACCOUNT_ACTIVE,
    ROLE_ADMIN,
    ROLE_CUSTOMER,
    ROLE_PROVIDER,
    SERVICE_ACTIVE,
    VERIFICATION_APPROVED,
)
from homeservice.database import Base, get_db  # noqa: E402
from homeservice.domain.categories.seed import seed_categories  # noqa: E402
from homeservice.main import app  # noqa: E402
from homeservice.models import Booking, ProviderProfile, Service, User  # noqa: E402
from homeservice.rate_limiter import reset_rate_limits  # noqa: E402
from homeservice.security_utils import create_access_token, hash_password_bcrypt  # noqa: E402

PASSWORD = "Passw0rd!"
PASSWORD_HASH = hash_password_bcrypt(PASSWORD)

engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    seed_categories(session)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def clean_rate_limits():
    reset_rate_limits()
    yield
    reset_rate_limits()


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    """Capture outgoing emails instead of calling Resend"""
    sent = []

    def fake(kind):
        async def send(to, *args, **kwargs):
            sent.append({"kind": kind, "to": to, "args": args})
            return {"success": True}

        return send

    targets = {
        "homeservice.domain.auth.service.send_verification_email": "verification",
        "homeservice.domain.auth.service.send_welcome_email": "welcome",
        "homeservice.domain.auth.service.send_password_reset_email": "password_reset",
        "homeservice.domain.bookings.service.send_booking_update_email": "booking_update",
        "homeservice.domain.admin.service.send_provider_approved_email": "provider_approved",
        "homeservice.domain.admin.service.send_provider_rejected_email": "provider_rejected",
    }
    for target, kind in targets.items():
        monkeypatch.setattr(target, fake(kind))
    return sent


# ============================================================================
# FACTORIES
# ============================================================================


def make_user(db, email, role=ROLE_CUSTOMER, first_name="Test", last_name="User", **fields):
    user = User(
        email=email,
        password_hash=PASSWORD_HASH,
        role=role,
        first_name=first_name,
        last_name=last_name,
        account_status=fields.pop("account_status", ACCOUNT_ACTIVE),
        email_verified=fields.pop("email_verified", True),
        refresh_tokens=[],
        loyalty_history=[],
        **fields,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_provider(db, email="provider@example.com", business_name="Glow Studio", verification=VERIFICATION_APPROVED,
                  city="Guwahati", profile_services=None):
    user = make_user(db, email, role=ROLE_PROVIDER, first_name="Priya", last_name="Sharma", phone="+919876543210")
    profile = ProviderProfile(
        user_id=user.id,
        business_info={"businessName": business_name, "description": "Bridal and party makeup at home"},
        location_info={
            "primaryAddress": {
                "street": "12 GS Road",
                "city": city,
                "state": "Assam",
                "zipCode": "781005",
                "coordinates": {"lat": 26.1445, "lng": 91.7362},
            },
            "serviceRadius": 20,
        },
        profile_services=profile_services or [],
        instagram_style_profile={"profilePhoto": "https://img.example.com/p.jpg", "bio": "Makeup artist"},
        verification_status=verification,
        rating_average=4.5,
        rating_count=12,
    )
    db.add(profile)
    db.commit()
    db.refresh(user)
    return user


def complete_profile(db, provider):
    """Give the provider a declared service so the profile crosses the completion threshold"""
    profile = provider.provider_profile
    profile.profile_services = [{"name": "Bridal Makeup", "category": "makeup", "price": 3000, "isActive": True}]
    db.commit()
    db.refresh(provider)
    return provider


def make_service(db, provider, name="Bridal Makeup", category="Makeup", price=2000.0, duration=60,
                 status=SERVICE_ACTIVE, subcategory=None, city="Guwahati", **fields):
    service = Service(
        provider_id=provider.id,
        name=name,
        category=category,
        subcategory=subcategory,
        description=f"{name} by a certified professional",
        price_amount=price,
        duration=duration,
        tags=fields.pop("tags", []),
        images=[],
        add_ons=[],
        location={
            "address": {"city": city, "state": "Assam"},
            "coordinates": [91.7362, 26.1445],
            "serviceRadius": 20,
        },
        status=status,
        is_active=status == SERVICE_ACTIVE,
        **fields,
    )
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


def make_booking(db, customer, service, number="HS-TEST-0001"):
    day = date.today() + timedelta(days=3)
    start = datetime.combine(day, datetime.min.time()).replace(hour=10)
    booking = Booking(
        booking_number=number,
        customer_id=customer.id,
        provider_id=service.provider_id,
        service_id=service.id,
        scheduled_date=day,
        scheduled_time="10:00",
        duration=service.duration,
        estimated_end_time=start + timedelta(minutes=service.duration),
        base_price=service.price_amount,
        subtotal=service.price_amount,
        tax=0.0,
        total_amount=service.price_amount,
        cancellation_allowed_until=start - timedelta(hours=24),
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


def next_weekday(days_ahead=3, weekday=None):
    """A Monday-Friday date at least ``days_ahead`` days out (optionally a specific weekday)"""
    day = date.today() + timedelta(days=days_ahead)
    while day.weekday() >= 5 or (weekday is not None and day.weekday() != weekday):
        day += timedelta(days=1)
    return day


@pytest.fixture
def customer(db):
    return make_user(db, "customer@example.com", first_name="Rahul", last_name="Das")


@pytest.fixture
def provider(db):
    return make_provider(db)


@pytest.fixture
def admin(db):
    return make_user(db, "admin@example.com", role=ROLE_ADMIN, first_name="Anita", last_name="Roy")
