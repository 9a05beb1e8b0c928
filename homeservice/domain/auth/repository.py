"""User repository - Database operations for accounts and their profiles"""

import secrets
import string
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...constants import LOCK_DURATION_HOURS, MAX_LOGIN_ATTEMPTS, MAX_STORED_REFRESH_TOKENS
from ...models import CustomerProfile, ProviderProfile, User

REFERRAL_CODE_ALPHABET = string.ascii_uppercase + string.digits


class UserRepository:
    """Repository for user database operations"""

    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email.lower()).first()

    @staticmethod
    def get_user_by_reset_token(db: Session, token_hash: str) -> Optional[User]:
        return (
            db.query(User)
            .filter(
                User.password_reset_token == token_hash,
                User.password_reset_expires > datetime.utcnow(),
            )
            .first()
        )

    @staticmethod
    def get_user_by_referral_code(db: Session, code: str) -> Optional[User]:
        return db.query(User).filter(User.referral_code == code.strip().upper()).first()

    @staticmethod
    def generate_referral_code(db: Session, length: int = 8) -> str:
        """Random upper-case code not yet used by another account"""
        while True:
            code = "".join(secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(length))
            if not db.query(User.id).filter(User.referral_code == code).first():
                return code

    @staticmethod
    def create_user(db: Session, **user_data) -> User:
        """Add a user to the session without committing; profiles are attached by the caller"""
        user = User(**user_data)
        db.add(user)
        db.flush()
        return user

    @staticmethod
    def create_customer_profile(db: Session, user: User, saved_addresses: Optional[list] = None) -> CustomerProfile:
        profile = CustomerProfile(
            user_id=user.id,
            preferences={},
            saved_addresses=saved_addresses or [],
            favorite_services=[],
        )
        db.add(profile)
        return profile

    @staticmethod
    def create_provider_profile(db: Session, user: User, **profile_data) -> ProviderProfile:
        profile = ProviderProfile(user_id=user.id, **profile_data)
        db.add(profile)
        return profile

    @staticmethod
    def save(db: Session, user: User) -> User:
        db.commit()
        db.refresh(user)
        return user

    # ========================================================================
    # LOGIN ATTEMPTS
    # ========================================================================

    @staticmethod
    def register_failed_login(db: Session, user: User) -> bool:
        """
        Count a failed password check and lock the account at the limit.
        An expired lock restarts the count at 1.

        Returns:
            True when this attempt locked the account
        """
        now = datetime.utcnow()
        if user.lock_until and user.lock_until <= now:
            user.login_attempts = 1
            user.lock_until = None
        else:
            user.login_attempts = (user.login_attempts or 0) + 1

        locked = user.login_attempts >= MAX_LOGIN_ATTEMPTS and not user.lock_until
        if locked:
            user.lock_until = now + timedelta(hours=LOCK_DURATION_HOURS)
        db.commit()
        return locked

    @staticmethod
    def reset_login_attempts(user: User) -> None:
        user.login_attempts = 0
        user.lock_until = None

    # ========================================================================
    # REFRESH TOKENS
    # ========================================================================

    @staticmethod
    def add_refresh_token(user: User, token: str) -> None:
        """Keep the newest MAX_STORED_REFRESH_TOKENS tokens"""
        tokens = list(user.refresh_tokens or []) + [token]
        user.refresh_tokens = tokens[-MAX_STORED_REFRESH_TOKENS:]

    @staticmethod
    def remove_refresh_token(user: User, token: str) -> None:
        user.refresh_tokens = [t for t in (user.refresh_tokens or []) if t != token]

    @staticmethod
    def clear_refresh_tokens(user: User) -> None:
        user.refresh_tokens = []

    # ========================================================================
    # LOYALTY
    # ========================================================================

    @staticmethod
    def add_loyalty_points(
        user: User,
        points: int,
        kind: str,
        description: str,
        booking_id: Optional[int] = None,
    ) -> None:
        if points <= 0:
            return
        user.loyalty_coins = (user.loyalty_coins or 0) + points
        user.loyalty_total_earned = (user.loyalty_total_earned or 0) + points
        user.loyalty_history = list(user.loyalty_history or []) + [
            {
                "points": points,
                "type": kind,
                "description": description,
                "bookingId": booking_id,
                "createdAt": datetime.utcnow().isoformat(),
            }
        ]
