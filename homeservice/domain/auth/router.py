"""Auth router - FastAPI endpoints for accounts, sessions and navigation"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from ...auth import get_current_user, get_optional_user, require_admin
from ...config import REFRESH_TOKEN_EXPIRE_DAYS
from ...database import get_db
from ...models import User
from ...rate_limiter import client_ip, create_rate_limiter
from ...security_utils import check_password_strength
from .schemas import (
    AdminRegisterRequest,
    ChangePasswordRequest,
    CustomerRegisterRequest,
    EmailOnlyRequest,
    LoginRequest,
    LogoutRequest,
    PasswordStrengthRequest,
    ProviderRegisterRequest,
    RefreshTokenRequest,
    ResetPasswordRequest,
    VerifyEmailRequest,
)
from .service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])

REFRESH_TOKEN_COOKIE = "refreshToken"

register_limit = create_rate_limiter(limit=5, window_seconds=3600, key_prefix="auth_register")
login_limit = create_rate_limiter(limit=10, window_seconds=900, key_prefix="auth_login")
forgot_password_limit = create_rate_limiter(limit=3, window_seconds=3600, key_prefix="auth_forgot")
resend_verification_limit = create_rate_limiter(limit=3, window_seconds=3600, key_prefix="auth_resend")


def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    """Dependency injection for AuthService"""
    return AuthService(db)


def _set_refresh_cookie(response: Response, payload: dict) -> None:
    tokens = payload.get("tokens")
    if not tokens:
        return
    response.set_cookie(
        key=REFRESH_TOKEN_COOKIE,
        value=tokens["refreshToken"],
        httponly=True,
        secure=True,
        samesite="strict",
        max_age=REFRESH_TOKEN_EXPIRE_DAYS * 24 * 3600,
        path="/",
    )


# ============================================================================
# REGISTRATION
# ============================================================================


@router.post("/register/customer", status_code=201)
async def register_customer(
    data: CustomerRegisterRequest,
    request: Request,
    response: Response,
    service: AuthService = Depends(get_auth_service),
    _: None = Depends(register_limit),
):
    payload = await service.register_customer(data, client_ip(request))
    _set_refresh_cookie(response, payload)
    return payload


@router.post("/register/provider", status_code=201)
async def register_provider(
    data: ProviderRegisterRequest,
    request: Request,
    response: Response,
    service: AuthService = Depends(get_auth_service),
    _: None = Depends(register_limit),
):
    payload = await service.register_provider(data, client_ip(request))
    _set_refresh_cookie(response, payload)
    return payload


@router.post("/register/admin", status_code=201)
async def register_admin(
    data: AdminRegisterRequest,
    current_user: User = Depends(require_admin),
    service: AuthService = Depends(get_auth_service),
):
    """Create another admin account (admins only)"""
    return service.register_admin(data, current_user)


# ============================================================================
# SESSIONS
# ============================================================================


@router.post("/login")
async def login(
    data: LoginRequest,
    request: Request,
    response: Response,
    service: AuthService = Depends(get_auth_service),
    _: None = Depends(login_limit),
):
    payload = service.login(data, client_ip(request))
    _set_refresh_cookie(response, payload)
    return payload


@router.post("/refresh-token")
async def refresh_token(
    request: Request,
    response: Response,
    data: Optional[RefreshTokenRequest] = None,
    service: AuthService = Depends(get_auth_service),
):
    """Rotate a refresh token; the body wins over the cookie"""
    token = (data.refreshToken if data else None) or request.cookies.get(REFRESH_TOKEN_COOKIE)
    payload = service.refresh_tokens(token)
    _set_refresh_cookie(response, payload)
    return payload


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    data: Optional[LogoutRequest] = None,
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    token = (data.refreshToken if data else None) or request.cookies.get(REFRESH_TOKEN_COOKIE)
    response.delete_cookie(REFRESH_TOKEN_COOKIE, path="/")
    return service.logout(current_user, token)


@router.post("/logout-all")
async def logout_all(
    response: Response,
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    response.delete_cookie(REFRESH_TOKEN_COOKIE, path="/")
    return service.logout_all(current_user)


# ============================================================================
# PASSWORDS & VERIFICATION
# ============================================================================


@router.post("/forgot-password")
async def forgot_password(
    data: EmailOnlyRequest,
    request: Request,
    service: AuthService = Depends(get_auth_service),
    _: None = Depends(forgot_password_limit),
):
    return await service.forgot_password(data.email, client_ip(request))


@router.post("/reset-password")
async def reset_password(
    data: ResetPasswordRequest,
    request: Request,
    response: Response,
    service: AuthService = Depends(get_auth_service),
):
    payload = service.reset_password(data, client_ip(request))
    _set_refresh_cookie(response, payload)
    return payload


@router.post("/change-password")
async def change_password(
    data: ChangePasswordRequest,
    response: Response,
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    payload = service.change_password(current_user, data)
    _set_refresh_cookie(response, payload)
    return payload


@router.post("/password-strength")
async def password_strength(data: PasswordStrengthRequest):
    """Live feedback for the signup and reset forms; nothing is stored"""
    return check_password_strength(data.password)


@router.post("/verify-email")
async def verify_email(
    data: VerifyEmailRequest,
    service: AuthService = Depends(get_auth_service),
):
    return await service.verify_email(data.token)


@router.post("/resend-verification")
async def resend_verification(
    data: EmailOnlyRequest,
    service: AuthService = Depends(get_auth_service),
    _: None = Depends(resend_verification_limit),
):
    return await service.resend_verification(data.email)


# ============================================================================
# PROFILE & NAVIGATION
# ============================================================================


@router.get("/me")
async def get_me(
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    return service.get_me(current_user)


@router.patch("/me")
async def update_me(
    updates: dict = Body(...),
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    return service.update_me(current_user, updates)


@router.get("/route-access")
async def route_access(
    path_roles: Optional[str] = Query(None, description="Comma separated roles allowed on the route"),
    provider_verification: bool = Query(False),
    current_user: Optional[User] = Depends(get_optional_user),
    service: AuthService = Depends(get_auth_service),
):
    """Server-side answer to 'may this user open this route, and if not, where to?'"""
    return service.route_access(current_user, path_roles, provider_verification)


@router.get("/health")
async def auth_health():
    return {"status": "ok", "service": "auth"}


__all__ = ["router"]
