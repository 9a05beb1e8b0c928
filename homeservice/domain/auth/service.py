"""Auth service - Registration, login, token lifecycle and account self-service"""

import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ...config import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    ENFORCE_EMAIL_VERIFICATION,
    FRONTEND_URL,
    PASSWORD_RESET_EXPIRE_MINUTES,
)
from ...constants import (
    ACCOUNT_ACTIVE,
    ACCOUNT_BANNED,
    ACCOUNT_PENDING_VERIFICATION,
    ACCOUNT_SUSPENDED,
    ROLE_ADMIN,
    ROLE_CUSTOMER,
    ROLE_PROVIDER,
    VERIFICATION_PENDING,
    normalize_category,
)
from ...email_service import (
    EmailDeliveryError,
    send_password_reset_email,
    send_verification_email,
    send_welcome_email,
)
from ...models import CustomerProfile, ProviderProfile, User
from ...security_utils import (
    TokenExpiredError,
    TokenInvalidError,
    create_access_token,
    create_refresh_token,
    decode_jwt_token,
    generate_email_verification_token,
    generate_secure_token,
    hash_password_bcrypt,
    hash_token,
    log_security_event,
    mask_email,
    sanitize_text,
    verify_email_verification_token,
    verify_password_bcrypt,
)
from .navigation import dashboard_route, post_login_redirect, resolve_route_access
from .repository import UserRepository
from .schemas import (
    PROFILE_UPDATE_FIELDS,
    AdminRegisterRequest,
    ChangePasswordRequest,
    CustomerRegisterRequest,
    LoginRequest,
    ProfileUpdate,
    ProviderRegisterRequest,
    ResetPasswordRequest,
)

logger = logging.getLogger(__name__)

REFERRER_BONUS = 500
REFERRED_BONUS = 250
CUSTOMER_WELCOME_BONUS = 100
PROVIDER_WELCOME_BONUS = 500

FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, we have sent a password reset link."
RESEND_VERIFICATION_MESSAGE = (
    "If an account with that email exists and is not verified, we have sent a verification email."
)


# ============================================================================
# SERIALIZATION
# ============================================================================


def serialize_user(user: User) -> dict:
    return {
        "id": user.id,
        "publicId": user.public_id,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "fullName": user.full_name,
        "email": user.email,
        "phone": user.phone,
        "role": user.role,
        "avatar": user.avatar,
        "bio": user.bio,
        "dateOfBirth": user.date_of_birth.isoformat() if user.date_of_birth else None,
        "gender": user.gender,
        "address": user.address,
        "communicationPreferences": user.communication_preferences,
        "isEmailVerified": user.email_verified,
        "accountStatus": user.account_status,
        "loyaltyCoins": user.loyalty_coins,
        "referralCode": user.referral_code,
        "lastLogin": user.last_login,
        "createdAt": user.created_at,
    }


def serialize_customer_profile(profile: Optional[CustomerProfile]) -> Optional[dict]:
    if not profile:
        return None
    return {
        "id": profile.id,
        "preferences": profile.preferences,
        "savedAddresses": profile.saved_addresses,
        "favoriteServices": profile.favorite_services,
    }


def serialize_provider_profile(profile: Optional[ProviderProfile]) -> Optional[dict]:
    if not profile:
        return None
    return {
        "id": profile.id,
        "businessName": profile.business_name,
        "businessInfo": profile.business_info,
        "locationInfo": profile.location_info,
        "services": profile.profile_services,
        "instagramStyleProfile": profile.instagram_style_profile,
        "verificationStatus": profile.verification_status,
        "rejectionReason": profile.rejection_reason,
        "completionPercentage": profile.completion_percentage,
        "isProfileComplete": profile.is_profile_complete,
        "rating": {"average": profile.rating_average, "count": profile.rating_count},
    }


def role_profile_payload(user: User) -> dict:
    if user.role == ROLE_CUSTOMER:
        return {"customerProfile": serialize_customer_profile(user.customer_profile)}
    if user.role == ROLE_PROVIDER:
        return {"providerProfile": serialize_provider_profile(user.provider_profile)}
    return {}


class AuthService:
    """Service layer for account business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepository()

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _issue_tokens(self, user: User) -> dict:
        """New access + refresh pair; the refresh token is stored on the user"""
        access_token = create_access_token(user.id, user.role)
        refresh_token = create_refresh_token(user.id)
        self.repo.add_refresh_token(user, refresh_token)
        return {
            "accessToken": access_token,
            "refreshToken": refresh_token,
            "expiresIn": ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        }

    def _ensure_email_available(self, email: str) -> None:
        if self.repo.get_user_by_email(self.db, email):
            raise HTTPException(status_code=409, detail="User with this email already exists")

    def _set_password(self, user: User, password: str) -> None:
        user.password_hash = hash_password_bcrypt(password)
        # One second back so tokens issued right after the change stay valid
        user.password_changed_at = datetime.utcnow() - timedelta(seconds=1)

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    async def _send_verification(self, user: User) -> None:
        token = generate_email_verification_token(user.id, user.email)
        user.email_verification_token = token
        self._commit()
        try:
            await send_verification_email(user.email, user.first_name, token)
            logger.info(f"✅ Verification email sent to {mask_email(user.email)}")
        except EmailDeliveryError as e:
            logger.error(f"❌ Failed to send verification email to {mask_email(user.email)}: {e}")

    def _auth_payload(self, user: User, tokens: dict, message: str) -> dict:
        return {
            "message": message,
            "user": serialize_user(user),
            **role_profile_payload(user),
            "tokens": tokens,
            "redirectUrl": post_login_redirect(user, user.provider_profile),
            "requiresEmailVerification": not user.email_verified,
        }

    # ========================================================================
    # REGISTRATION
    # ========================================================================

    def _new_user(self, data, role: str) -> User:
        return self.repo.create_user(
            self.db,
            email=data.email,
            password_hash=hash_password_bcrypt(data.password),
            role=role,
            first_name=data.firstName,
            last_name=data.lastName,
            phone=data.phone,
            date_of_birth=data.dateOfBirth,
            gender=data.gender,
            address=data.address.model_dump(exclude_none=True) if data.address else None,
            communication_preferences=data.communicationPreferences,
            account_status=ACCOUNT_PENDING_VERIFICATION,
            email_verified=False,
            refresh_tokens=[],
            loyalty_history=[],
            referral_code=self.repo.generate_referral_code(self.db),
        )

    async def register_customer(self, data: CustomerRegisterRequest, ip_address: Optional[str] = None) -> dict:
        logger.info(f"📥 Registering customer {mask_email(data.email)}")
        self._ensure_email_available(data.email)

        referrer = None
        if data.referralCode:
            referrer = self.repo.get_user_by_referral_code(self.db, data.referralCode)
            if not referrer:
                logger.warning(f"⚠️ Unknown referral code used at registration: {data.referralCode}")

        try:
            user = self._new_user(data, ROLE_CUSTOMER)
            saved_addresses = []
            if user.address:
                saved_addresses = [{**user.address, "label": "home", "isDefault": True}]
            self.repo.create_customer_profile(self.db, user, saved_addresses)

            if referrer:
                user.referred_by = referrer.referral_code
                self.repo.add_loyalty_points(
                    referrer, REFERRER_BONUS, "referral", f"Referral bonus for {user.full_name}"
                )
                self.repo.add_loyalty_points(
                    user, REFERRED_BONUS, "referral", "Welcome bonus for using referral code"
                )
            else:
                self.repo.add_loyalty_points(user, CUSTOMER_WELCOME_BONUS, "bonus", "Welcome to the platform!")

            tokens = self._issue_tokens(user)
            self.db.commit()
            self.db.refresh(user)
        except Exception:
            self.db.rollback()
            raise

        log_security_event("registration", str(user.id), ip_address, {"role": user.role})
        await self._send_verification(user)

        return self._auth_payload(
            user, tokens, "Customer registration successful! Please verify your email address."
        )

    async def register_provider(self, data: ProviderRegisterRequest, ip_address: Optional[str] = None) -> dict:
        logger.info(f"📥 Registering provider {mask_email(data.email)}")
        self._ensure_email_available(data.email)

        declared_services = []
        for service in data.services:
            category = normalize_category(service.category)
            if not category:
                raise HTTPException(status_code=400, detail=f"Invalid service category: {service.category}")
            declared_services.append(
                {
                    "name": service.name,
                    "category": category,
                    "subcategory": service.subcategory,
                    "description": service.description,
                    "duration": service.duration,
                    "price": service.price.model_dump(),
                    "tags": service.tags,
                    "isActive": True,
                }
            )

        try:
            user = self._new_user(data, ROLE_PROVIDER)
            self.repo.create_provider_profile(
                self.db,
                user,
                business_info=data.businessInfo.model_dump(exclude_none=True),
                location_info=data.locationInfo.model_dump(exclude_none=True),
                profile_services=declared_services,
                instagram_style_profile={"profilePhoto": None, "bio": None, "posts": []},
                verification_status=VERIFICATION_PENDING,
            )
            self.repo.add_loyalty_points(
                user, PROVIDER_WELCOME_BONUS, "bonus", "Welcome to our provider community!"
            )
            tokens = self._issue_tokens(user)
            self.db.commit()
            self.db.refresh(user)
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"✅ Provider {user.id} registered with {len(declared_services)} declared services")
        log_security_event("registration", str(user.id), ip_address, {"role": user.role})
        await self._send_verification(user)

        return self._auth_payload(
            user,
            tokens,
            "Provider registration successful! Your account is pending verification.",
        )

    def register_admin(self, data: AdminRegisterRequest, created_by: User) -> dict:
        self._ensure_email_available(data.email)
        try:
            admin = self.repo.create_user(
                self.db,
                email=data.email,
                password_hash=hash_password_bcrypt(data.password),
                role=ROLE_ADMIN,
                first_name=data.firstName,
                last_name=data.lastName,
                phone=data.phone,
                account_status=ACCOUNT_ACTIVE,
                email_verified=True,
                refresh_tokens=[],
                loyalty_history=[],
                referral_code=self.repo.generate_referral_code(self.db),
            )
            self.db.commit()
            self.db.refresh(admin)
        except Exception:
            self.db.rollback()
            raise

        log_security_event("admin_created", str(admin.id), None, {"createdBy": created_by.id})
        return {"message": "Admin account created successfully", "user": serialize_user(admin)}

    # ========================================================================
    # SESSIONS
    # ========================================================================

    def login(self, data: LoginRequest, ip_address: Optional[str] = None) -> dict:
        user = self.repo.get_user_by_email(self.db, data.email)
        if not user:
            log_security_event("failed_login", None, ip_address, {"email": mask_email(data.email)})
            raise HTTPException(status_code=401, detail="Invalid email or password")

        now = datetime.utcnow()
        if user.lock_until and user.lock_until > now:
            minutes = math.ceil((user.lock_until - now).total_seconds() / 60)
            raise HTTPException(status_code=423, detail=f"Account is locked. Try again in {minutes} minutes.")

        if not user.is_active or user.is_deleted:
            raise HTTPException(status_code=401, detail="Account has been deactivated")

        if user.account_status in (ACCOUNT_SUSPENDED, ACCOUNT_BANNED):
            raise HTTPException(status_code=403, detail="Account has been suspended. Please contact support.")

        if not verify_password_bcrypt(data.password, user.password_hash):
            locked = self.repo.register_failed_login(self.db, user)
            log_security_event(
                "account_locked" if locked else "failed_login",
                str(user.id),
                ip_address,
                {"attempts": user.login_attempts},
            )
            raise HTTPException(status_code=401, detail="Invalid email or password")

        if ENFORCE_EMAIL_VERIFICATION and not user.email_verified:
            raise HTTPException(
                status_code=403,
                detail="Please verify your email before logging in. Check your inbox for the verification link.",
            )

        self.repo.reset_login_attempts(user)
        user.last_login = now
        tokens = self._issue_tokens(user)
        self._commit()
        self.db.refresh(user)

        log_security_event("login", str(user.id), ip_address)
        logger.info(f"✅ User {user.id} logged in ({user.role})")
        return self._auth_payload(user, tokens, "Login successful")

    def refresh_tokens(self, refresh_token: Optional[str]) -> dict:
        if not refresh_token:
            raise HTTPException(status_code=401, detail="Refresh token is required")

        try:
            payload = decode_jwt_token(refresh_token, expected_type="refresh")
            user_id = int(payload.get("sub"))
        except TokenExpiredError as e:
            raise HTTPException(status_code=401, detail="Refresh token has expired") from e
        except (TokenInvalidError, TypeError, ValueError) as e:
            raise HTTPException(status_code=401, detail="Invalid refresh token") from e

        user = self.repo.get_user_by_id(self.db, user_id)
        if not user:
            raise HTTPException(status_code=401, detail="Invalid refresh token")
        if refresh_token not in (user.refresh_tokens or []):
            # a genuine token that was already rotated or revoked: treat every session as compromised
            self.repo.clear_refresh_tokens(user)
            self._commit()
            logger.warning(f"🚨 Refresh token reuse for user {user.id}; all sessions revoked")
            log_security_event("refresh_token_reuse", str(user.id))
            raise HTTPException(status_code=401, detail="Invalid refresh token")

        if (
            not user.is_active
            or user.is_deleted
            or user.account_status in (ACCOUNT_SUSPENDED, ACCOUNT_BANNED)
        ):
            raise HTTPException(status_code=401, detail="User account is no longer active")

        self.repo.remove_refresh_token(user, refresh_token)
        tokens = self._issue_tokens(user)
        self._commit()

        return {
            "message": "Token refreshed successfully",
            "tokens": tokens,
            "user": serialize_user(user),
        }

    def logout(self, user: User, refresh_token: Optional[str]) -> dict:
        if refresh_token:
            self.repo.remove_refresh_token(user, refresh_token)
            self._commit()
        log_security_event("logout", str(user.id))
        return {"message": "Logged out successfully"}

    def logout_all(self, user: User) -> dict:
        self.repo.clear_refresh_tokens(user)
        self._commit()
        log_security_event("logout_all", str(user.id))
        return {"message": "Logged out from all devices successfully"}

    # ========================================================================
    # PASSWORDS
    # ========================================================================

    async def forgot_password(self, email: str, ip_address: Optional[str] = None) -> dict:
        user = self.repo.get_user_by_email(self.db, email)
        if not user or user.is_deleted:
            logger.info(f"ℹ️ Password reset requested for unknown email {mask_email(email)}")
            return {"message": FORGOT_PASSWORD_MESSAGE}

        reset_token = generate_secure_token(32)
        user.password_reset_token = hash_token(reset_token)
        user.password_reset_expires = datetime.utcnow() + timedelta(minutes=PASSWORD_RESET_EXPIRE_MINUTES)
        self._commit()

        reset_link = f"{FRONTEND_URL}/reset-password?token={reset_token}"
        try:
            await send_password_reset_email(user.email, reset_link)
        except EmailDeliveryError as e:
            logger.error(f"❌ Password reset email failed for user {user.id}: {e}")
            user.password_reset_token = None
            user.password_reset_expires = None
            self._commit()
            raise HTTPException(status_code=500, detail="Email could not be sent") from e

        log_security_event("password_reset_requested", str(user.id), ip_address)
        return {"message": FORGOT_PASSWORD_MESSAGE}

    def reset_password(self, data: ResetPasswordRequest, ip_address: Optional[str] = None) -> dict:
        user = self.repo.get_user_by_reset_token(self.db, hash_token(data.token))
        if not user:
            raise HTTPException(status_code=400, detail="Password reset token is invalid or has expired")

        self._set_password(user, data.password)
        user.password_reset_token = None
        user.password_reset_expires = None
        self.repo.reset_login_attempts(user)
        self.repo.clear_refresh_tokens(user)
        tokens = self._issue_tokens(user)
        self._commit()
        self.db.refresh(user)

        log_security_event("password_reset", str(user.id), ip_address)
        return {
            "message": "Password has been reset successfully",
            "user": serialize_user(user),
            "tokens": tokens,
        }

    def change_password(self, user: User, data: ChangePasswordRequest) -> dict:
        if not verify_password_bcrypt(data.currentPassword, user.password_hash):
            raise HTTPException(status_code=400, detail="Current password is incorrect")

        if data.newPassword == data.currentPassword:
            raise HTTPException(
                status_code=400, detail="New password must be different from the current password"
            )

        self._set_password(user, data.newPassword)
        self.repo.clear_refresh_tokens(user)
        tokens = self._issue_tokens(user)
        self._commit()

        log_security_event("password_changed", str(user.id))
        return {"message": "Password changed successfully", "tokens": tokens}

    # ========================================================================
    # EMAIL VERIFICATION
    # ========================================================================

    async def verify_email(self, token: str) -> dict:
        data = verify_email_verification_token(token)
        user = self.repo.get_user_by_id(self.db, data.get("userId")) if data else None
        if not user or user.email != data.get("email"):
            raise HTTPException(status_code=400, detail="Invalid or expired verification token")

        if user.email_verified:
            return {"message": "Email is already verified"}

        user.email_verified = True
        user.email_verification_token = None
        if user.role == ROLE_CUSTOMER and user.account_status == ACCOUNT_PENDING_VERIFICATION:
            user.account_status = ACCOUNT_ACTIVE
        self._commit()
        self.db.refresh(user)
        logger.info(f"✅ Email verified for user {user.id}")

        try:
            await send_welcome_email(user.email, user.first_name, dashboard_route(user.role))
        except EmailDeliveryError as e:
            logger.error(f"❌ Failed to send welcome email to user {user.id}: {e}")

        return {
            "message": "Email verified successfully! Welcome to our platform.",
            "user": serialize_user(user),
        }

    async def resend_verification(self, email: str) -> dict:
        user = self.repo.get_user_by_email(self.db, email)
        if not user:
            return {"message": RESEND_VERIFICATION_MESSAGE}
        if user.email_verified:
            return {"message": "Email is already verified"}

        await self._send_verification(user)
        return {"message": RESEND_VERIFICATION_MESSAGE}

    # ========================================================================
    # PROFILE
    # ========================================================================

    def get_me(self, user: User) -> dict:
        return {"user": serialize_user(user), **role_profile_payload(user)}

    def update_me(self, user: User, updates: dict) -> dict:
        if not updates or any(key not in PROFILE_UPDATE_FIELDS for key in updates):
            raise HTTPException(status_code=400, detail="Invalid updates provided")

        try:
            data = ProfileUpdate.model_validate(updates)
        except ValidationError as e:
            raise RequestValidationError(e.errors(include_url=False, include_context=False)) from e

        provided = data.model_dump(include=set(updates.keys()))
        column_map = {
            "firstName": "first_name",
            "lastName": "last_name",
            "phone": "phone",
            "dateOfBirth": "date_of_birth",
            "gender": "gender",
            "avatar": "avatar",
            "communicationPreferences": "communication_preferences",
        }
        for key, column in column_map.items():
            if key in provided:
                setattr(user, column, provided[key])
        if "bio" in provided:
            user.bio = sanitize_text(provided["bio"])
        if "address" in provided:
            address = provided["address"]
            user.address = {k: v for k, v in address.items() if v is not None} if address else None

        self._commit()
        self.db.refresh(user)
        return {"message": "Profile updated successfully", "user": serialize_user(user)}

    # ========================================================================
    # NAVIGATION
    # ========================================================================

    def route_access(
        self, user: Optional[User], path_roles: Optional[str], provider_verification: bool
    ) -> dict:
        roles = [r.strip() for r in (path_roles or "").split(",") if r.strip()]
        decision = resolve_route_access(user, roles or None, provider_verification)
        return decision.model_dump()
