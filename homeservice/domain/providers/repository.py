"""Public provider repository"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...constants import ROLE_PROVIDER, SERVICE_ACTIVE, VERIFICATION_APPROVED
from ...models import ProviderProfile, Service, User


class PublicProviderRepository:
    """Repository for publicly visible (approved) providers"""

    @staticmethod
    def approved_query(db: Session):
        return (
            db.query(User)
            .join(ProviderProfile, ProviderProfile.user_id == User.id)
            .options(joinedload(User.provider_profile))
            .filter(
                User.role == ROLE_PROVIDER,
                User.is_deleted.is_(False),
                User.is_active.is_(True),
                ProviderProfile.verification_status == VERIFICATION_APPROVED,
            )
        )

    @staticmethod
    def featured(db: Session, limit: int) -> list[User]:
        return (
            PublicProviderRepository.approved_query(db)
            .order_by(
                ProviderProfile.rating_average.desc(),
                ProviderProfile.rating_count.desc(),
                User.id.asc(),
            )
            .limit(limit)
            .all()
        )

    @staticmethod
    def get_approved(db: Session, provider_id: int) -> Optional[User]:
        return PublicProviderRepository.approved_query(db).filter(User.id == provider_id).first()

    @staticmethod
    def active_services(
        db: Session,
        provider_ids: Optional[list[int]] = None,
        category: Optional[str] = None,
        subcategory: Optional[str] = None,
    ) -> list[Service]:
        query = db.query(Service).filter(Service.is_active.is_(True), Service.status == SERVICE_ACTIVE)
        if provider_ids is not None:
            if not provider_ids:
                return []
            query = query.filter(Service.provider_id.in_(provider_ids))
        if category:
            query = query.filter(Service.category == category)
        if subcategory:
            query = query.filter(Service.subcategory == subcategory)
        return query.order_by(Service.price_amount.asc()).all()

    @staticmethod
    def providers_in(db: Session, provider_ids: list[int], min_rating: Optional[float], sort_by: str):
        query = PublicProviderRepository.approved_query(db).filter(User.id.in_(provider_ids))
        if min_rating:
            query = query.filter(ProviderProfile.rating_average >= min_rating)
        if sort_by == "newest":
            query = query.order_by(ProviderProfile.created_at.desc(), User.id.desc())
        else:
            query = query.order_by(
                ProviderProfile.rating_average.desc(), ProviderProfile.rating_count.desc(), User.id.asc()
            )
        return query
