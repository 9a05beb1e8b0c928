"""
Route access decisions for the frontend router

Pure functions over a user and its provider profile: no database access, so the
same rules back both the server guards and GET /api/auth/route-access.
"""

from typing import Optional, Sequence

from pydantic import BaseModel

from ...constants import (
    ACCOUNT_ACTIVE,
    ACCOUNT_DEACTIVATED,
    ACCOUNT_PENDING_VERIFICATION,
    PROFILE_COMPLETE_THRESHOLD,
    ROLE_ADMIN,
    ROLE_CUSTOMER,
    ROLE_PROVIDER,
    VERIFICATION_APPROVED,
    VERIFICATION_PENDING,
    VERIFICATION_REJECTED,
    VERIFICATION_SUSPENDED,
)
from ...models import ProviderProfile, User

LOGIN_ROUTE = "/login"

DASHBOARD_ROUTES = {
    ROLE_CUSTOMER: "/customer/dashboard",
    ROLE_PROVIDER: "/provider/dashboard",
    ROLE_ADMIN: "/admin/dashboard",
}

PROVIDER_VERIFICATION_ROUTES = {
    VERIFICATION_PENDING: "/provider/verification-pending",
    VERIFICATION_REJECTED: "/provider/verification-rejected",
    VERIFICATION_SUSPENDED: "/provider/suspended",
}


class RouteDecision(BaseModel):
    allowed: bool
    redirect: Optional[str] = None


def dashboard_route(role: Optional[str]) -> str:
    return DASHBOARD_ROUTES.get(role, "/")


def resolve_route_access(
    user: Optional[User],
    allowed_roles: Optional[Sequence[str]] = None,
    require_verified_provider: bool = False,
) -> RouteDecision:
    """
    Decide whether ``user`` may open a route restricted to ``allowed_roles``.

    Checks run in order: authentication, account status, role, then provider
    verification for provider routes that require it.
    """
    if user is None:
        return RouteDecision(allowed=False, redirect=LOGIN_ROUTE)

    if user.account_status not in (ACCOUNT_ACTIVE, ACCOUNT_PENDING_VERIFICATION):
        if user.account_status == ACCOUNT_DEACTIVATED:
            return RouteDecision(allowed=False, redirect="/account-deactivated")
        return RouteDecision(allowed=False, redirect="/account-suspended")

    if allowed_roles and user.role not in allowed_roles:
        return RouteDecision(allowed=False, redirect=dashboard_route(user.role))

    if require_verified_provider and user.role == ROLE_PROVIDER:
        profile = user.provider_profile
        status = profile.verification_status if profile else VERIFICATION_PENDING
        redirect = PROVIDER_VERIFICATION_ROUTES.get(status)
        if redirect:
            return RouteDecision(allowed=False, redirect=redirect)

    return RouteDecision(allowed=True)


def post_login_redirect(user: User, profile: Optional[ProviderProfile] = None) -> str:
    """Where to send a user right after login or registration"""
    if user.role == ROLE_PROVIDER:
        completion = (profile.completion_percentage or 0) if profile else 0
        if completion < PROFILE_COMPLETE_THRESHOLD:
            return "/provider/complete-profile"
        if profile.verification_status != VERIFICATION_APPROVED:
            return "/provider/verification-pending"
        return DASHBOARD_ROUTES[ROLE_PROVIDER]
    return dashboard_route(user.role)
