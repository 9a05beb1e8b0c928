"""
Marketplace-wide constants: roles, statuses, limits and the service category catalogue.
"""

import re
from typing import Optional

# ============================================================================
# ROLES & STATUSES
# ============================================================================

ROLE_CUSTOMER = "customer"
ROLE_PROVIDER = "provider"
ROLE_ADMIN = "admin"
USER_ROLES = (ROLE_CUSTOMER, ROLE_PROVIDER, ROLE_ADMIN)

ACCOUNT_ACTIVE = "active"
ACCOUNT_PENDING_VERIFICATION = "pending_verification"
ACCOUNT_SUSPENDED = "suspended"
ACCOUNT_BANNED = "banned"
ACCOUNT_DEACTIVATED = "deactivated"
ACCOUNT_STATUSES = (
    ACCOUNT_ACTIVE,
    ACCOUNT_PENDING_VERIFICATION,
    ACCOUNT_SUSPENDED,
    ACCOUNT_BANNED,
    ACCOUNT_DEACTIVATED,
)
# Statuses an admin may set through the user management endpoints
ADMIN_SETTABLE_ACCOUNT_STATUSES = (
    ACCOUNT_ACTIVE,
    ACCOUNT_SUSPENDED,
    ACCOUNT_BANNED,
    ACCOUNT_PENDING_VERIFICATION,
)

VERIFICATION_PENDING = "pending"
VERIFICATION_APPROVED = "approved"
VERIFICATION_REJECTED = "rejected"
VERIFICATION_SUSPENDED = "suspended"

SERVICE_DRAFT = "draft"
SERVICE_ACTIVE = "active"
SERVICE_INACTIVE = "inactive"
SERVICE_PENDING_REVIEW = "pending_review"
SERVICE_REJECTED = "rejected"
# Statuses providers and admins may assign directly
ASSIGNABLE_SERVICE_STATUSES = (SERVICE_DRAFT, SERVICE_ACTIVE, SERVICE_INACTIVE, SERVICE_PENDING_REVIEW)

BOOKING_PENDING = "pending"
BOOKING_CONFIRMED = "confirmed"
BOOKING_IN_PROGRESS = "in_progress"
BOOKING_COMPLETED = "completed"
BOOKING_CANCELLED = "cancelled"
BOOKING_NO_SHOW = "no_show"
BOOKING_REFUNDED = "refunded"
BOOKING_STATUSES = (
    BOOKING_PENDING,
    BOOKING_CONFIRMED,
    BOOKING_IN_PROGRESS,
    BOOKING_COMPLETED,
    BOOKING_CANCELLED,
    BOOKING_NO_SHOW,
    BOOKING_REFUNDED,
)
# A booking in one of these statuses occupies the provider's time
SLOT_BLOCKING_STATUSES = (BOOKING_PENDING, BOOKING_CONFIRMED, BOOKING_IN_PROGRESS)

PROVIDER_REJECTION_REASONS = (
    "incomplete-documentation",
    "invalid-credentials",
    "business-verification-failed",
    "background-check-failed",
    "non-compliance",
    "other",
)

# ============================================================================
# LIMITS
# ============================================================================

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

MAX_LOGIN_ATTEMPTS = 5
LOCK_DURATION_HOURS = 2
MAX_STORED_REFRESH_TOKENS = 5

PROFILE_COMPLETE_THRESHOLD = 80

TAX_RATE = 0.18
DEFAULT_CURRENCY = "INR"
SUPPORTED_CURRENCIES = ("INR", "USD", "EUR", "GBP")
PRICE_TYPES = ("fixed", "hourly", "custom")
MIN_SERVICE_DURATION = 15
MAX_SERVICE_DURATION = 480

LOYALTY_POINTS_RATE = 0.01
CANCELLATION_WINDOW_HOURS = 24
SAME_DAY_NOTICE_MINUTES = 60
SLOT_STEP_MINUTES = 30

DEFAULT_TIMEZONE = "Asia/Kolkata"
# [lng, lat] used when a provider address carries no coordinates
DEFAULT_COORDINATES = [92.9376, 26.2006]

# ============================================================================
# SERVICE CATEGORIES
# ============================================================================

SERVICE_CATEGORIES = (
    "Hair",
    "Makeup",
    "Nails",
    "Skin & Aesthetics",
    "Massage & Body",
    "Personal Care",
)

CATEGORY_SLUG_MAP = {
    "hair": "Hair",
    "makeup": "Makeup",
    "nails": "Nails",
    "skin-aesthetics": "Skin & Aesthetics",
    "massage-body": "Massage & Body",
    "personal-care": "Personal Care",
}


def get_category_from_slug(slug: str) -> Optional[str]:
    return CATEGORY_SLUG_MAP.get(slug.lower())


def normalize_category(category: Optional[str]) -> Optional[str]:
    """Resolve a slug or a case-insensitive name to the canonical category name"""
    if not category:
        return None

    normalized = category.strip()
    from_slug = get_category_from_slug(normalized)
    if from_slug:
        return from_slug

    for name in SERVICE_CATEGORIES:
        if name.lower() == normalized.lower():
            return name
    return None


def is_valid_category(category: Optional[str]) -> bool:
    return normalize_category(category) is not None


def slugify(name: str) -> str:
    """Build a URL slug the same way category slugs are built"""
    slug = name.lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug.strip())
    return re.sub(r"-+", "-", slug)


def category_slug(name: str) -> str:
    for slug, category_name in CATEGORY_SLUG_MAP.items():
        if category_name == name:
            return slug
    return slugify(name)
