"""Category repository"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...constants import SERVICE_ACTIVE
from ...models import Service, ServiceCategory, User


class CategoryRepository:
    """Repository for the category catalogue"""

    @staticmethod
    def list_active(db: Session, featured_only: bool = False) -> list[ServiceCategory]:
        query = db.query(ServiceCategory).filter(ServiceCategory.is_active.is_(True))
        if featured_only:
            query = query.filter(ServiceCategory.is_featured.is_(True))
        return query.order_by(ServiceCategory.sort_order.asc(), ServiceCategory.name.asc()).all()

    @staticmethod
    def get_by_slug(db: Session, slug: str) -> Optional[ServiceCategory]:
        return (
            db.query(ServiceCategory)
            .filter(ServiceCategory.slug == slug.lower(), ServiceCategory.is_active.is_(True))
            .first()
        )

    @staticmethod
    def active_services_query(db: Session, category_name: str):
        return (
            db.query(Service)
            .options(joinedload(Service.provider).joinedload(User.provider_profile))
            .filter(
                Service.category == category_name,
                Service.is_active.is_(True),
                Service.status == SERVICE_ACTIVE,
            )
        )

    @staticmethod
    def count_active_services(db: Session, category_name: str) -> int:
        return (
            db.query(func.count(Service.id))
            .filter(
                Service.category == category_name,
                Service.is_active.is_(True),
                Service.status == SERVICE_ACTIVE,
            )
            .scalar()
        )

    @staticmethod
    def active_service_counts(db: Session) -> dict[str, int]:
        rows = (
            db.query(Service.category, func.count(Service.id))
            .filter(Service.is_active.is_(True), Service.status == SERVICE_ACTIVE)
            .group_by(Service.category)
            .all()
        )
        return {category: count for category, count in rows}
