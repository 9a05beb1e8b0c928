import pytest

from homeservice.security_utils import (
    TokenInvalidError,
    check_password_strength,
    create_access_token,
    create_refresh_token,
    decode_jwt_token,
    generate_email_verification_token,
    hash_password_bcrypt,
    mask_email,
    sanitize_text,
    validate_password_policy,
    verify_email_verification_token,
    verify_password_bcrypt,
)


def test_password_hash_round_trip():
    hashed = hash_password_bcrypt("Passw0rd!")
    assert hashed != "Passw0rd!"
    assert verify_password_bcrypt("Passw0rd!", hashed) is True
    assert verify_password_bcrypt("passw0rd!", hashed) is False


@pytest.mark.parametrize("password", ["Sh0rt!", "alllowercase1!", "ALLUPPER1!", "NoDigits!!", "NoSpecial123"])
def test_password_policy_rejects(password):
    with pytest.raises(ValueError):
        validate_password_policy(password)


def test_password_strength():
    assert check_password_strength("Passw0rd!")["is_valid"] is True
    weak = check_password_strength("abc")
    assert weak["strength"] == "weak"
    assert weak["is_valid"] is False


class TestJwt:
    def test_access_token_claims(self):
        payload = decode_jwt_token(create_access_token(7, "provider"), expected_type="access")
        assert payload["sub"] == "7"
        assert payload["role"] == "provider"

    def test_refresh_token_is_not_an_access_token(self):
        with pytest.raises(TokenInvalidError):
            decode_jwt_token(create_refresh_token(7), expected_type="access")

    def test_garbage(self):
        with pytest.raises(TokenInvalidError):
            decode_jwt_token("not.a.token")


def test_email_verification_token():
    token = generate_email_verification_token(3, "a@example.com")
    data = verify_email_verification_token(token)
    assert data["userId"] == 3
    assert data["email"] == "a@example.com"
    assert verify_email_verification_token(token + "x") is None


def test_sanitize_text_strips_markup():
    assert sanitize_text("<img src=x onerror=alert(1)>Hello <b>there</b>") == "Hello there"
    assert sanitize_text(None) is None


def test_mask_email():
    masked = mask_email("priya.sharma@example.com")
    assert "priya.sharma" not in masked
    assert masked.endswith("@example.com")
