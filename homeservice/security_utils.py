"""
Credentials and tokens for marketplace accounts.

- passwords: bcrypt hashes plus the signup password rules
- JWTs: short-lived access tokens carrying the role, longer refresh tokens
- email verification links: itsdangerous signed payloads
- reset tokens: random strings, stored only as sha256 digests
- free text from users is stripped of markup before it is stored
"""

import calendar
import hashlib
import logging
import re
import secrets
import uuid
from datetime import datetime, timedelta
from typing import Any, Optional

import bleach
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from jose import ExpiredSignatureError, JWTError
from jose import jwt as jose_jwt
from passlib.context import CryptContext

from .config import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    EMAIL_VERIFICATION_EXPIRE_HOURS,
    REFRESH_TOKEN_EXPIRE_DAYS,
    SECRET_KEY,
)

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
EMAIL_VERIFICATION_SALT = "email-verification"
MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# (pattern, hint) pairs every signup password has to satisfy
PASSWORD_RULES = (
    (re.compile(r"[a-z]"), "Add a lowercase letter"),
    (re.compile(r"[A-Z]"), "Add an uppercase letter"),
    (re.compile(r"\d"), "Add a number"),
    (re.compile(r"[@$!%*?&]"), "Add one of @$!%*?&"),
)
STRENGTH_LABELS = ("weak", "weak", "fair", "good", "strong")


class TokenExpiredError(Exception):
    """Raised when a signed token is well-formed but past its expiry"""


class TokenInvalidError(Exception):
    """Raised when a token cannot be decoded or carries the wrong claims"""


# ============================================================================
# PASSWORDS
# ============================================================================


def hash_password_bcrypt(password: str) -> str:
    return pwd_context.hash(password)


def verify_password_bcrypt(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError as e:
        # malformed stored hash
        logger.error(f"❌ Password hash could not be checked: {e}")
        return False


def _missing_rules(password: str) -> list[str]:
    return [hint for pattern, hint in PASSWORD_RULES if not pattern.search(password)]


def validate_password_policy(password: str) -> str:
    """
    Raise ``ValueError`` with the message shown under the password field, or return the
    password unchanged.
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if len(password) > MAX_PASSWORD_LENGTH:
        raise ValueError(f"Password cannot exceed {MAX_PASSWORD_LENGTH} characters")
    if _missing_rules(password):
        raise ValueError(
            "Password must contain at least one lowercase letter, one uppercase letter, "
            "one digit, and one special character"
        )
    return password


def check_password_strength(password: str) -> dict[str, Any]:
    """Score 0-4 for the signup strength meter, with hints for what is missing"""
    feedback = _missing_rules(password)
    satisfied = len(PASSWORD_RULES) - len(feedback)

    if len(password) < MIN_PASSWORD_LENGTH:
        feedback.insert(0, f"Use at least {MIN_PASSWORD_LENGTH} characters")
        score = min(satisfied, 1)
    else:
        score = satisfied if len(password) >= 12 else max(satisfied - 1, 0)

    return {
        "score": score,
        "strength": STRENGTH_LABELS[score],
        "feedback": feedback,
        "is_valid": MIN_PASSWORD_LENGTH <= len(password) <= MAX_PASSWORD_LENGTH and satisfied == len(PASSWORD_RULES),
    }


# ============================================================================
# TOKENS
# ============================================================================


def generate_secure_token(length: int = 32) -> str:
    return secrets.token_urlsafe(length)


def hash_token(token: str) -> str:
    """sha256 hex digest; reset tokens are only stored in this form"""
    return hashlib.sha256(token.encode()).hexdigest()


def to_timestamp(value: datetime) -> int:
    """Seconds since epoch for a naive UTC datetime"""
    return calendar.timegm(value.utctimetuple())


def _encode(claims: dict[str, Any], lifetime: timedelta) -> str:
    issued = datetime.utcnow()
    payload = {**claims, "iat": to_timestamp(issued), "exp": issued + lifetime, "jti": uuid.uuid4().hex}
    return jose_jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def create_access_token(user_id: int, role: str) -> str:
    return _encode(
        {"sub": str(user_id), "role": role, "type": "access"},
        timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(user_id: int) -> str:
    return _encode({"sub": str(user_id), "type": "refresh"}, timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS))


def decode_jwt_token(token: str, expected_type: Optional[str] = None) -> dict[str, Any]:
    """
    Raises:
        TokenExpiredError: the signature is valid but exp has passed
        TokenInvalidError: anything else, including a ``type`` claim mismatch
    """
    try:
        payload = jose_jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except ExpiredSignatureError as e:
        raise TokenExpiredError("Token has expired") from e
    except JWTError as e:
        raise TokenInvalidError(str(e)) from e

    if expected_type and payload.get("type") != expected_type:
        raise TokenInvalidError(f"Expected a {expected_type} token")
    return payload


def _verification_serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(SECRET_KEY, salt=EMAIL_VERIFICATION_SALT)


def generate_email_verification_token(user_id: int, email: str) -> str:
    return _verification_serializer().dumps({"userId": user_id, "email": email, "purpose": "email-verification"})


def verify_email_verification_token(token: str) -> Optional[dict[str, Any]]:
    """Decoded ``{userId, email}`` payload, or None when the link is expired or tampered with"""
    try:
        data = _verification_serializer().loads(token, max_age=EMAIL_VERIFICATION_EXPIRE_HOURS * 3600)
    except SignatureExpired:
        logger.warning("⚠️ Expired email verification link used")
        return None
    except BadSignature:
        logger.warning("⚠️ Email verification link with a bad signature")
        return None

    if not isinstance(data, dict) or data.get("purpose") != "email-verification":
        return None
    return data


# ============================================================================
# USER TEXT AND AUDIT
# ============================================================================


def sanitize_text(value: Optional[str]) -> Optional[str]:
    """Strip all markup from free text fields (bio, requests, messages)"""
    if value is None:
        return None
    return bleach.clean(value, tags=[], attributes={}, strip=True).strip()


def mask_email(email: str) -> str:
    """p***@example.com, for log lines"""
    local, _, domain = email.partition("@")
    if not domain:
        return "***"
    return f"{local[:1]}***@{domain}"


def log_security_event(
    event_type: str,
    user_id: Optional[str] = None,
    ip_address: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> None:
    """Audit line for account and moderation events (logins, lockouts, approvals, deletions)"""
    logger.info(
        f"🔐 SECURITY_EVENT {event_type} user={user_id or '-'} ip={ip_address or '-'} details={details or {}}"
    )
