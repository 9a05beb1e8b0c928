"""Shared validation and pagination utilities"""

import math
import re
from datetime import date, datetime
from typing import Any, Optional

from ..constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

NAME_PATTERN = re.compile(r"^[a-zA-Z\s'-]+$")
PHONE_PATTERN = re.compile(r"^[+]?[(]?[\d\s()-]{10,}$")
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
GENDERS = ("male", "female", "other", "prefer_not_to_say")


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase, stripped email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
    if not re.match(email_pattern, email) or len(email) > 255:
        raise ValueError("Please provide a valid email address")

    return email


def validate_person_name(value: Optional[str], min_length: int = 2) -> Optional[str]:
    """Letters, spaces, hyphens and apostrophes; 2-50 characters after trimming"""
    if value is None:
        return value
    value = value.strip()
    if len(value) < min_length:
        raise ValueError(f"Name must be at least {min_length} characters long")
    if len(value) > 50:
        raise ValueError("Name cannot exceed 50 characters")
    if not NAME_PATTERN.match(value):
        raise ValueError("Name can only contain letters, spaces, hyphens, and apostrophes")
    return value


def validate_phone(phone: Optional[str]) -> Optional[str]:
    if not phone:
        return phone
    phone = phone.strip()
    if not PHONE_PATTERN.match(phone):
        raise ValueError("Please provide a valid phone number")
    return phone


def validate_gender(gender: Optional[str]) -> Optional[str]:
    if gender is not None and gender not in GENDERS:
        raise ValueError(f"Gender must be one of: {', '.join(GENDERS)}")
    return gender


def validate_birth_date(value: Optional[date]) -> Optional[date]:
    if value is None:
        return value
    if value > date.today():
        raise ValueError("Date of birth cannot be in the future")
    if value < date(1900, 1, 1):
        raise ValueError("Please provide a valid date of birth")
    return value


def validate_time_string(value: str) -> str:
    """HH:MM on a 24h clock"""
    if not TIME_PATTERN.match(value or ""):
        raise ValueError("Time must be in HH:MM format")
    return value


def parse_date(value: Optional[str], field: str = "date") -> Optional[date]:
    """Parse YYYY-MM-DD, raising ValueError with the field name"""
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as e:
        raise ValueError(f"Invalid {field}, expected YYYY-MM-DD") from e


def time_to_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_time(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"


# ============================================================================
# SEARCH TEXT
# ============================================================================

LIKE_ESCAPE = "\\"


def contains_pattern(text: str) -> str:
    """``%text%`` for ILIKE with the wildcards in ``text`` itself escaped; pair with ``escape=LIKE_ESCAPE``"""
    escaped = text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2).replace("%", r"\%").replace("_", r"\_")
    return f"%{escaped}%"


# ============================================================================
# PAGINATION
# ============================================================================


def clamp_page(page: Optional[int], limit: Optional[int]) -> tuple[int, int]:
    """Coerce page >= 1 and 1 <= limit <= MAX_PAGE_SIZE"""
    page = max(1, page or 1)
    limit = min(MAX_PAGE_SIZE, max(1, limit or DEFAULT_PAGE_SIZE))
    return page, limit


def paginate(query, page: int, limit: int) -> tuple[list[Any], int]:
    """Apply offset/limit to a SQLAlchemy query, returning (items, total)"""
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, total


def pagination_meta(page: int, limit: int, total: int, extended: bool = False) -> dict:
    pages = math.ceil(total / limit) if limit else 0
    meta = {"page": page, "limit": limit, "total": total, "pages": pages}
    if extended:
        has_next = page < pages
        has_prev = page > 1
        meta.update(
            {
                "hasNext": has_next,
                "hasPrev": has_prev,
                "nextPage": page + 1 if has_next else None,
                "prevPage": page - 1 if has_prev else None,
            }
        )
    return meta
