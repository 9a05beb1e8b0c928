"""Admin repository - cross-account queries for the back office"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, cast, func, or_
from sqlalchemy.orm import Session, joinedload

from ...constants import ROLE_PROVIDER, SERVICE_PENDING_REVIEW
from ...models import Booking, ProviderProfile, Service, User
from ...shared.validators import LIKE_ESCAPE, contains_pattern

SERVICE_SORT_COLUMNS = {
    "createdAt": Service.created_at,
    "name": Service.name,
    "category": Service.category,
    "price": Service.price_amount,
    "status": Service.status,
    "popularity": Service.popularity_score,
}


class AdminRepository:
    """Repository for admin-only queries"""

    # ========================================================================
    # PROVIDERS
    # ========================================================================

    @staticmethod
    def provider_profiles_query(db: Session, verification_status: Optional[str] = None, search: Optional[str] = None):
        query = (
            db.query(ProviderProfile)
            .join(User, ProviderProfile.user_id == User.id)
            .options(joinedload(ProviderProfile.user))
            .filter(User.is_deleted.is_(False))
        )
        if verification_status and verification_status != "all":
            query = query.filter(ProviderProfile.verification_status == verification_status)
        if search:
            pattern = contains_pattern(search)
            query = query.filter(
                or_(
                    User.email.ilike(pattern, escape=LIKE_ESCAPE),
                    User.first_name.ilike(pattern, escape=LIKE_ESCAPE),
                    User.last_name.ilike(pattern, escape=LIKE_ESCAPE),
                    cast(ProviderProfile.business_info, String).ilike(pattern, escape=LIKE_ESCAPE),
                )
            )
        return query.order_by(ProviderProfile.created_at.desc(), ProviderProfile.id.desc())

    @staticmethod
    def get_provider(db: Session, user_id: int) -> Optional[User]:
        return (
            db.query(User)
            .options(joinedload(User.provider_profile))
            .filter(User.id == user_id, User.role == ROLE_PROVIDER, User.is_deleted.is_(False))
            .first()
        )

    @staticmethod
    def verification_counts(db: Session) -> dict[str, int]:
        rows = (
            db.query(ProviderProfile.verification_status, func.count(ProviderProfile.id))
            .group_by(ProviderProfile.verification_status)
            .all()
        )
        return {status: count for status, count in rows}

    @staticmethod
    def service_names(db: Session, provider_id: int) -> set[str]:
        return {name for (name,) in db.query(Service.name).filter(Service.provider_id == provider_id).all()}

    @staticmethod
    def services_for_providers(db: Session, provider_ids: list[int]) -> list[Service]:
        if not provider_ids:
            return []
        return (
            db.query(Service)
            .filter(Service.provider_id.in_(provider_ids))
            .order_by(Service.created_at.desc(), Service.id.desc())
            .all()
        )

    # ========================================================================
    # SERVICES
    # ========================================================================

    @staticmethod
    def services_query(
        db: Session,
        search: Optional[str] = None,
        category: Optional[str] = None,
        status: Optional[str] = None,
        provider_id: Optional[int] = None,
        sort_by: str = "createdAt",
        order: str = "desc",
    ):
        query = db.query(Service).options(joinedload(Service.provider).joinedload(User.provider_profile))
        if search:
            pattern = contains_pattern(search)
            query = query.filter(
                or_(
                    Service.name.ilike(pattern, escape=LIKE_ESCAPE),
                    Service.description.ilike(pattern, escape=LIKE_ESCAPE),
                )
            )
        if category:
            query = query.filter(Service.category == category)
        if status:
            query = query.filter(Service.status == status)
        if provider_id:
            query = query.filter(Service.provider_id == provider_id)

        column = SERVICE_SORT_COLUMNS.get(sort_by, Service.created_at)
        ordering = column.asc() if order == "asc" else column.desc()
        return query.order_by(ordering, Service.id.desc())

    @staticmethod
    def get_service(db: Session, service_id: int) -> Optional[Service]:
        return db.query(Service).filter(Service.id == service_id).first()

    @staticmethod
    def count_service_bookings(db: Session, service_id: int) -> int:
        return db.query(func.count(Booking.id)).filter(Booking.service_id == service_id).scalar()

    @staticmethod
    def pending_services_by_ids(db: Session, service_ids: list[int]) -> list[Service]:
        return db.query(Service).filter(Service.id.in_(service_ids), Service.status == SERVICE_PENDING_REVIEW).all()

    @staticmethod
    def service_status_counts(db: Session) -> dict[str, int]:
        rows = db.query(Service.status, func.count(Service.id)).group_by(Service.status).all()
        return {status: count for status, count in rows}

    @staticmethod
    def service_category_stats(db: Session) -> list:
        return (
            db.query(
                Service.category,
                func.count(Service.id).label("count"),
                func.avg(Service.price_amount).label("avg_price"),
            )
            .group_by(Service.category)
            .order_by(func.count(Service.id).desc())
            .all()
        )

    @staticmethod
    def recent_services(db: Session, limit: int = 5) -> list[Service]:
        return db.query(Service).order_by(Service.created_at.desc(), Service.id.desc()).limit(limit).all()

    # ========================================================================
    # USERS
    # ========================================================================

    @staticmethod
    def users_query(db: Session, search: Optional[str] = None, role: Optional[str] = None, status: Optional[str] = None):
        query = db.query(User).filter(User.is_deleted.is_(False))
        if search:
            pattern = contains_pattern(search)
            query = query.filter(
                or_(
                    User.first_name.ilike(pattern, escape=LIKE_ESCAPE),
                    User.last_name.ilike(pattern, escape=LIKE_ESCAPE),
                    User.email.ilike(pattern, escape=LIKE_ESCAPE),
                )
            )
        if role:
            query = query.filter(User.role == role)
        if status:
            query = query.filter(User.account_status == status)
        return query.order_by(User.created_at.desc(), User.id.desc())

    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id, User.is_deleted.is_(False)).first()

    @staticmethod
    def count_user_bookings(db: Session, user_id: int) -> int:
        """Bookings the user took part in, as customer or provider"""
        return (
            db.query(func.count(Booking.id))
            .filter(or_(Booking.customer_id == user_id, Booking.provider_id == user_id))
            .scalar()
        )

    @staticmethod
    def user_counts(db: Session, column) -> dict[str, int]:
        rows = db.query(column, func.count(User.id)).group_by(column).all()
        return {key: count for key, count in rows}

    @staticmethod
    def count_users_since(db: Session, since: datetime) -> int:
        return db.query(func.count(User.id)).filter(User.created_at >= since).scalar()

