import logging
from datetime import datetime
from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session, joinedload

from .constants import (
    ACCOUNT_BANNED,
    ACCOUNT_SUSPENDED,
    ROLE_ADMIN,
    ROLE_PROVIDER,
    VERIFICATION_APPROVED,
    VERIFICATION_PENDING,
    VERIFICATION_REJECTED,
)
from .database import get_db
from .models import User
from .security_utils import TokenExpiredError, TokenInvalidError, decode_jwt_token, to_timestamp

logger = logging.getLogger(__name__)

# auto_error=False so the cookie fallback and the exact 401 messages below apply
security = HTTPBearer(auto_error=False)

ACCESS_TOKEN_COOKIE = "accessToken"


def _extract_token(
    request: Request, credentials: Optional[HTTPAuthorizationCredentials]
) -> Optional[str]:
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(ACCESS_TOKEN_COOKIE)


def authenticate_token(token: str, db: Session) -> User:
    """Resolve an access token to an active user or raise the matching HTTPException"""
    try:
        payload = decode_jwt_token(token, expected_type="access")
    except TokenExpiredError as e:
        raise HTTPException(
            status_code=401,
            detail="Access token has expired",
            headers={"X-Token-Expired": "true"},
        ) from e
    except TokenInvalidError as e:
        logger.warning(f"⚠️ Invalid access token: {e}")
        raise HTTPException(status_code=401, detail="Invalid access token") from e

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError) as e:
        raise HTTPException(status_code=401, detail="Invalid access token") from e

    user = (
        db.query(User)
        .options(joinedload(User.provider_profile), joinedload(User.customer_profile))
        .filter(User.id == user_id)
        .first()
    )
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    if not user.is_active or user.is_deleted:
        raise HTTPException(status_code=401, detail="Account has been deactivated")

    if user.account_status in (ACCOUNT_SUSPENDED, ACCOUNT_BANNED):
        raise HTTPException(status_code=403, detail="Account has been suspended")

    if user.lock_until and user.lock_until > datetime.utcnow():
        raise HTTPException(status_code=423, detail="Account is temporarily locked")

    issued_at = payload.get("iat")
    if user.password_changed_at and issued_at is not None:
        if to_timestamp(user.password_changed_at) > int(issued_at):
            raise HTTPException(status_code=401, detail="Password was changed. Please log in again")

    return user


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from the bearer token or the accessToken cookie"""
    token = _extract_token(request, credentials)
    if not token:
        raise HTTPException(status_code=401, detail="Access token is required")

    user = authenticate_token(token, db)
    logger.debug(f"✅ User authenticated: {user.id} ({user.role})")
    return user


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Like get_current_user, but anonymous requests get None instead of a 401"""
    token = _extract_token(request, credentials)
    if not token:
        return None
    return authenticate_token(token, db)


def require_roles(*roles: str):
    """Dependency factory: the current user must hold one of ``roles``"""

    async def role_checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            logger.warning(f"🚫 User {user.id} ({user.role}) denied, requires {roles}")
            raise HTTPException(
                status_code=403,
                detail=f"Access denied. Required roles: {', '.join(roles)}",
            )
        return user

    return role_checker


async def require_email_verified(user: User = Depends(get_current_user)) -> User:
    if not user.email_verified:
        raise HTTPException(status_code=403, detail="Email verification required")
    return user


def require_account_status(*statuses: str):
    async def status_checker(user: User = Depends(get_current_user)) -> User:
        if user.account_status not in statuses:
            raise HTTPException(
                status_code=403,
                detail=f"Account status must be one of: {', '.join(statuses)}",
            )
        return user

    return status_checker


async def require_approved_provider(user: User = Depends(get_current_user)) -> User:
    """
    Providers must be approved and have a complete profile.
    Admins pass through so they can act on provider resources.
    """
    if user.role == ROLE_ADMIN:
        return user

    if user.role != ROLE_PROVIDER:
        raise HTTPException(status_code=403, detail="Provider access required")

    profile = user.provider_profile
    if not profile:
        raise HTTPException(status_code=403, detail="Provider profile not found")

    if profile.verification_status == VERIFICATION_PENDING:
        raise HTTPException(status_code=403, detail="Provider verification is pending")
    if profile.verification_status == VERIFICATION_REJECTED:
        raise HTTPException(status_code=403, detail="Provider verification was rejected")
    if profile.verification_status != VERIFICATION_APPROVED:
        raise HTTPException(status_code=403, detail="Provider account is suspended")

    if not profile.is_profile_complete:
        raise HTTPException(status_code=403, detail="Please complete your provider profile")

    return user


require_admin = require_roles(ROLE_ADMIN)
