from homeservice.constants import ACCOUNT_SUSPENDED
from homeservice.models import User
from tests.conftest import PASSWORD, auth_headers, make_user


def customer_payload(**overrides):
    payload = {
        "firstName": "Rahul",
        "lastName": "Das",
        "email": "rahul@example.com",
        "password": PASSWORD,
        "agreeToTerms": True,
        "agreeToPrivacy": True,
    }
    payload.update(overrides)
    return payload


def provider_payload(**overrides):
    payload = {
        **customer_payload(email="studio@example.com", firstName="Priya", lastName="Sharma"),
        "phone": "+919876543210",
        "dateOfBirth": "1992-04-12",
        "businessInfo": {"businessName": "Glow Studio", "description": "Bridal makeup at home"},
        "locationInfo": {
            "primaryAddress": {"street": "12 GS Road", "city": "Guwahati", "state": "Assam", "zipCode": "781005"}
        },
        "services": [{"name": "Bridal Makeup", "category": "makeup", "duration": 120, "price": {"amount": 5000}}],
    }
    payload.update(overrides)
    return payload


class TestRegistration:
    def test_customer_registration_issues_tokens_and_sends_verification(self, client, outbox):
        response = client.post("/api/auth/register/customer", json=customer_payload())

        assert response.status_code == 201
        body = response.json()
        assert body["user"]["email"] == "rahul@example.com"
        assert body["user"]["role"] == "customer"
        assert body["user"]["accountStatus"] == "pending_verification"
        assert body["user"]["loyaltyCoins"] == 100
        assert body["customerProfile"] is not None
        assert body["tokens"]["accessToken"]
        assert body["tokens"]["refreshToken"]
        assert body["requiresEmailVerification"] is True
        assert body["redirectUrl"] == "/customer/dashboard"
        assert [m["kind"] for m in outbox] == ["verification"]

    def test_terms_must_be_accepted(self, client):
        response = client.post("/api/auth/register/customer", json=customer_payload(agreeToTerms=False))
        assert response.status_code == 422

    def test_weak_password_rejected(self, client):
        response = client.post("/api/auth/register/customer", json=customer_payload(password="password"))
        assert response.status_code == 422

    def test_duplicate_email_conflicts(self, client, customer):
        response = client.post("/api/auth/register/customer", json=customer_payload(email=customer.email))
        assert response.status_code == 409
        assert response.json()["detail"] == "User with this email already exists"

    def test_referral_code_rewards_both_parties(self, client, db, customer):
        customer.referral_code = "REFER123"
        db.commit()

        response = client.post("/api/auth/register/customer", json=customer_payload(referralCode="REFER123"))

        assert response.status_code == 201
        assert response.json()["user"]["loyaltyCoins"] == 250
        db.refresh(customer)
        assert customer.loyalty_coins == 500

    def test_provider_registration_is_pending_verification(self, client):
        response = client.post("/api/auth/register/provider", json=provider_payload())

        assert response.status_code == 201
        body = response.json()
        profile = body["providerProfile"]
        assert profile["verificationStatus"] == "pending"
        assert profile["businessName"] == "Glow Studio"
        assert profile["services"][0]["category"] == "Makeup"
        assert body["user"]["loyaltyCoins"] == 500

    def test_provider_registration_needs_a_service(self, client):
        response = client.post("/api/auth/register/provider", json=provider_payload(services=[]))
        assert response.status_code == 422

    def test_admin_registration_requires_admin(self, client, customer, admin):
        payload = {"firstName": "Mina", "lastName": "Bora", "email": "mina@example.com", "password": PASSWORD}

        denied = client.post("/api/auth/register/admin", json=payload, headers=auth_headers(customer))
        assert denied.status_code == 403

        created = client.post("/api/auth/register/admin", json=payload, headers=auth_headers(admin))
        assert created.status_code == 201
        assert created.json()["user"]["role"] == "admin"


class TestLogin:
    def test_login_success(self, client, customer):
        response = client.post("/api/auth/login", json={"email": customer.email, "password": PASSWORD})

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Login successful"
        assert body["user"]["id"] == customer.id
        assert body["tokens"]["accessToken"]

    def test_login_is_case_insensitive_on_email(self, client, customer):
        response = client.post("/api/auth/login", json={"email": "CUSTOMER@example.com", "password": PASSWORD})
        assert response.status_code == 200

    def test_wrong_password(self, client, customer):
        response = client.post("/api/auth/login", json={"email": customer.email, "password": "Wrong1!pass"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"

    def test_unknown_email(self, client):
        response = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": PASSWORD})
        assert response.status_code == 401

    def test_account_locks_after_repeated_failures(self, client, customer):
        for _ in range(5):
            client.post("/api/auth/login", json={"email": customer.email, "password": "Wrong1!pass"})

        response = client.post("/api/auth/login", json={"email": customer.email, "password": PASSWORD})
        assert response.status_code == 423

    def test_suspended_account_cannot_login(self, client, db):
        make_user(db, "suspended@example.com", account_status=ACCOUNT_SUSPENDED)
        response = client.post("/api/auth/login", json={"email": "suspended@example.com", "password": PASSWORD})
        assert response.status_code == 403


class TestTokens:
    def _login(self, client, user):
        return client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD}).json()["tokens"]

    def test_refresh_rotates_the_token(self, client, customer):
        tokens = self._login(client, customer)

        response = client.post("/api/auth/refresh-token", json={"refreshToken": tokens["refreshToken"]})
        assert response.status_code == 200
        rotated = response.json()["tokens"]["refreshToken"]
        assert rotated != tokens["refreshToken"]

        reused = client.post("/api/auth/refresh-token", json={"refreshToken": tokens["refreshToken"]})
        assert reused.status_code == 401

    def test_reusing_a_rotated_token_revokes_every_session(self, client, db, customer):
        tokens = self._login(client, customer)
        rotated = client.post("/api/auth/refresh-token", json={"refreshToken": tokens["refreshToken"]}).json()["tokens"]

        replay = client.post("/api/auth/refresh-token", json={"refreshToken": tokens["refreshToken"]})
        assert replay.status_code == 401

        db.refresh(customer)
        assert customer.refresh_tokens == []
        assert client.post("/api/auth/refresh-token", json={"refreshToken": rotated["refreshToken"]}).status_code == 401

    def test_refresh_requires_a_token(self, client):
        client.cookies.clear()
        response = client.post("/api/auth/refresh-token")
        assert response.status_code == 401

    def test_logout_all_revokes_refresh_tokens(self, client, db, customer):
        tokens = self._login(client, customer)

        response = client.post("/api/auth/logout-all", headers=auth_headers(customer))
        assert response.status_code == 200

        db.refresh(customer)
        assert customer.refresh_tokens == []
        refreshed = client.post("/api/auth/refresh-token", json={"refreshToken": tokens["refreshToken"]})
        assert refreshed.status_code == 401

    def test_missing_access_token(self, client):
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json()["detail"] == "Access token is required"

    def test_garbage_access_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401


class TestPasswords:
    def test_forgot_and_reset_password(self, client, customer, outbox):
        response = client.post("/api/auth/forgot-password", json={"email": customer.email})
        assert response.status_code == 200

        reset_link = outbox[-1]["args"][0]
        token = reset_link.split("token=")[1]
        new_password = "N3wPassw0rd!"
        reset = client.post(
            "/api/auth/reset-password",
            json={"token": token, "password": new_password, "confirmPassword": new_password},
        )
        assert reset.status_code == 200

        login = client.post("/api/auth/login", json={"email": customer.email, "password": new_password})
        assert login.status_code == 200

        reused = client.post(
            "/api/auth/reset-password",
            json={"token": token, "password": new_password, "confirmPassword": new_password},
        )
        assert reused.status_code == 400

    def test_forgot_password_does_not_reveal_accounts(self, client, outbox):
        response = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})
        assert response.status_code == 200
        assert outbox == []

    def test_change_password(self, client, customer):
        new_password = "An0ther!pass"
        response = client.post(
            "/api/auth/change-password",
            json={"currentPassword": PASSWORD, "newPassword": new_password, "confirmPassword": new_password},
            headers=auth_headers(customer),
        )
        assert response.status_code == 200
        assert response.json()["tokens"]["accessToken"]

    def test_change_password_checks_current(self, client, customer):
        response = client.post(
            "/api/auth/change-password",
            json={"currentPassword": "Wr0ng!pass", "newPassword": "An0ther!pass", "confirmPassword": "An0ther!pass"},
            headers=auth_headers(customer),
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Current password is incorrect"


class TestEmailVerification:
    def test_verify_email_activates_customer(self, client, db, outbox):
        client.post("/api/auth/register/customer", json=customer_payload())
        token = outbox[-1]["args"][1]

        response = client.post("/api/auth/verify-email", json={"token": token})

        assert response.status_code == 200
        assert response.json()["user"]["accountStatus"] == "active"
        assert outbox[-1]["kind"] == "welcome"
        user = db.query(User).filter(User.email == "rahul@example.com").one()
        assert user.email_verified is True

    def test_invalid_verification_token(self, client):
        response = client.post("/api/auth/verify-email", json={"token": "bogus"})
        assert response.status_code == 400


class TestProfile:
    def test_get_me(self, client, provider):
        response = client.get("/api/auth/me", headers=auth_headers(provider))
        assert response.status_code == 200
        body = response.json()
        assert body["user"]["email"] == provider.email
        assert body["providerProfile"]["businessName"] == "Glow Studio"

    def test_update_me(self, client, customer):
        response = client.patch(
            "/api/auth/me",
            json={"firstName": "Rohan", "bio": "<b>Loves</b> spa days"},
            headers=auth_headers(customer),
        )
        assert response.status_code == 200
        user = response.json()["user"]
        assert user["firstName"] == "Rohan"
        assert "<b>" not in user["bio"]

    def test_update_me_rejects_unknown_fields(self, client, customer):
        response = client.patch("/api/auth/me", json={"role": "admin"}, headers=auth_headers(customer))
        assert response.status_code == 400


class TestRouteAccess:
    def test_anonymous_goes_to_login(self, client):
        response = client.get("/api/auth/route-access", params={"path_roles": "customer"})
        assert response.json() == {"allowed": False, "redirect": "/login"}

    def test_wrong_role_goes_to_own_dashboard(self, client, customer):
        response = client.get(
            "/api/auth/route-access", params={"path_roles": "admin"}, headers=auth_headers(customer)
        )
        assert response.json() == {"allowed": False, "redirect": "/customer/dashboard"}

    def test_allowed(self, client, admin):
        response = client.get("/api/auth/route-access", params={"path_roles": "admin"}, headers=auth_headers(admin))
        assert response.json() == {"allowed": True, "redirect": None}


def test_password_strength_meter(client):
    strong = client.post("/api/auth/password-strength", json={"password": "Sup3r$ecretPass"}).json()
    assert strong["strength"] == "strong"
    assert strong["is_valid"] is True
    assert strong["feedback"] == []

    weak = client.post("/api/auth/password-strength", json={"password": "password"}).json()
    assert weak["score"] == 0
    assert "Add an uppercase letter" in weak["feedback"]
    assert weak["is_valid"] is False
