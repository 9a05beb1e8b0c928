"""Search repository - read queries over the public service catalogue"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, cast, func, or_
from sqlalchemy.orm import Session, joinedload

from ...constants import SERVICE_ACTIVE
from ...models import Service, ServiceCategory, User
from ...shared.validators import LIKE_ESCAPE, contains_pattern
from .schemas import SearchFilters

SORT_ORDERS = {
    "popularity": (Service.popularity_score.desc(), Service.rating_average.desc()),
    "price": (Service.price_amount.asc(),),
    "price_desc": (Service.price_amount.desc(),),
    "rating": (Service.rating_average.desc(), Service.rating_count.desc()),
    "newest": (Service.created_at.desc(),),
    # Re-sorted by distance in Python when an origin is given
    "distance": (Service.popularity_score.desc(),),
}


class SearchRepository:
    """Repository for public catalogue queries"""

    @staticmethod
    def active_services(db: Session):
        return (
            db.query(Service)
            .options(joinedload(Service.provider).joinedload(User.provider_profile))
            .filter(Service.is_active.is_(True), Service.status == SERVICE_ACTIVE)
        )

    @staticmethod
    def search_query(db: Session, filters: SearchFilters):
        query = SearchRepository.active_services(db)

        if filters.q:
            pattern = contains_pattern(filters.q)
            query = query.filter(
                or_(
                    Service.name.ilike(pattern, escape=LIKE_ESCAPE),
                    Service.description.ilike(pattern, escape=LIKE_ESCAPE),
                    Service.category.ilike(pattern, escape=LIKE_ESCAPE),
                    cast(Service.tags, String).ilike(pattern, escape=LIKE_ESCAPE),
                )
            )
        if filters.category:
            query = query.filter(Service.category == filters.category)
        if filters.subcategory:
            query = query.filter(func.lower(Service.subcategory) == filters.subcategory.lower())
        if filters.minPrice is not None:
            query = query.filter(Service.price_amount >= filters.minPrice)
        if filters.maxPrice is not None:
            query = query.filter(Service.price_amount <= filters.maxPrice)
        if filters.minRating:
            query = query.filter(Service.rating_average >= filters.minRating)

        return query.order_by(*SORT_ORDERS.get(filters.sortBy, SORT_ORDERS["popularity"]), Service.id.desc())

    @staticmethod
    def suggestion_candidates(db: Session, q: str) -> list[Service]:
        pattern = contains_pattern(q)
        return (
            db.query(Service)
            .filter(
                Service.is_active.is_(True),
                or_(
                    Service.name.ilike(pattern, escape=LIKE_ESCAPE),
                    Service.category.ilike(pattern, escape=LIKE_ESCAPE),
                    cast(Service.tags, String).ilike(pattern, escape=LIKE_ESCAPE),
                ),
            )
            .limit(50)
            .all()
        )

    @staticmethod
    def service_name_counts(db: Session, q: str, limit: int) -> list[tuple[str, int]]:
        return (
            db.query(Service.name, func.count(Service.id).label("count"))
            .filter(Service.is_active.is_(True), Service.name.ilike(contains_pattern(q), escape=LIKE_ESCAPE))
            .group_by(Service.name)
            .order_by(func.count(Service.id).desc(), Service.name.asc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def active_categories(db: Session) -> list[ServiceCategory]:
        return (
            db.query(ServiceCategory)
            .filter(ServiceCategory.is_active.is_(True))
            .order_by(ServiceCategory.sort_order.asc())
            .all()
        )

    @staticmethod
    def trending(db: Session, since: Optional[datetime], limit: int) -> list[Service]:
        query = SearchRepository.active_services(db)
        if since:
            query = query.filter(Service.last_searched >= since)
        return query.order_by(Service.popularity_score.desc(), Service.search_count.desc()).limit(limit).all()

    @staticmethod
    def popular(db: Session, category: Optional[str], limit: int) -> list[Service]:
        query = SearchRepository.active_services(db).filter(Service.is_popular.is_(True))
        if category:
            query = query.filter(Service.category == category)
        return query.order_by(Service.popularity_score.desc(), Service.rating_average.desc()).limit(limit).all()

    @staticmethod
    def category_stats(db: Session) -> list:
        return (
            db.query(
                Service.category,
                func.count(Service.id).label("count"),
                func.avg(Service.price_amount).label("avg_price"),
                func.avg(Service.rating_average).label("avg_rating"),
            )
            .filter(Service.is_active.is_(True))
            .group_by(Service.category)
            .order_by(func.count(Service.id).desc())
            .all()
        )

    @staticmethod
    def price_and_rating_stats(db: Session):
        return (
            db.query(
                func.min(Service.price_amount),
                func.max(Service.price_amount),
                func.avg(Service.price_amount),
                func.avg(Service.rating_average),
            )
            .filter(Service.is_active.is_(True))
            .one()
        )

    @staticmethod
    def get_active_service(db: Session, service_id: int) -> Optional[Service]:
        return SearchRepository.active_services(db).filter(Service.id == service_id).first()

    @staticmethod
    def get_service(db: Session, service_id: int) -> Optional[Service]:
        return db.query(Service).filter(Service.id == service_id).first()
