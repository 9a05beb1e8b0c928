from types import SimpleNamespace

import pytest

from homeservice.domain.auth.navigation import dashboard_route, post_login_redirect, resolve_route_access


def user(role="customer", status="active", verification=None, completion=100):
    profile = None
    if verification:
        profile = SimpleNamespace(verification_status=verification, completion_percentage=completion)
    return SimpleNamespace(role=role, account_status=status, provider_profile=profile)


@pytest.mark.parametrize(
    "role, route",
    [("customer", "/customer/dashboard"), ("provider", "/provider/dashboard"), ("admin", "/admin/dashboard"), (None, "/")],
)
def test_dashboard_route(role, route):
    assert dashboard_route(role) == route


class TestResolveRouteAccess:
    def test_anonymous(self):
        decision = resolve_route_access(None, ["customer"])
        assert (decision.allowed, decision.redirect) == (False, "/login")

    def test_suspended(self):
        decision = resolve_route_access(user(status="suspended"))
        assert decision.redirect == "/account-suspended"

    def test_deactivated(self):
        decision = resolve_route_access(user(status="deactivated"))
        assert decision.redirect == "/account-deactivated"

    def test_pending_verification_may_browse(self):
        assert resolve_route_access(user(status="pending_verification"), ["customer"]).allowed is True

    def test_wrong_role(self):
        decision = resolve_route_access(user(role="provider", verification="approved"), ["admin"])
        assert decision.redirect == "/provider/dashboard"

    @pytest.mark.parametrize(
        "verification, redirect",
        [
            ("pending", "/provider/verification-pending"),
            ("rejected", "/provider/verification-rejected"),
            ("suspended", "/provider/suspended"),
        ],
    )
    def test_unverified_provider(self, verification, redirect):
        decision = resolve_route_access(user(role="provider", verification=verification), ["provider"], True)
        assert decision.redirect == redirect

    def test_verification_not_required(self):
        decision = resolve_route_access(user(role="provider", verification="pending"), ["provider"])
        assert decision.allowed is True


class TestPostLoginRedirect:
    def test_incomplete_provider_profile(self):
        provider = user(role="provider", verification="approved", completion=40)
        assert post_login_redirect(provider, provider.provider_profile) == "/provider/complete-profile"

    def test_unapproved_provider(self):
        provider = user(role="provider", verification="pending")
        assert post_login_redirect(provider, provider.provider_profile) == "/provider/verification-pending"

    def test_approved_provider(self):
        provider = user(role="provider", verification="approved")
        assert post_login_redirect(provider, provider.provider_profile) == "/provider/dashboard"

    def test_customer(self):
        assert post_login_redirect(user()) == "/customer/dashboard"
