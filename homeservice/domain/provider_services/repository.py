"""Provider service repository - a provider's own catalogue"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Booking, ProviderProfile, Service

SORT_COLUMNS = {
    "name": Service.name,
    "category": Service.category,
    "price": Service.price_amount,
    "views": Service.search_count,
    "popularity": Service.popularity_score,
    "status": Service.status,
    "createdAt": Service.created_at,
}


class ProviderServiceRepository:
    """Repository for provider-owned service operations"""

    @staticmethod
    def get_profile(db: Session, provider_id: int) -> Optional[ProviderProfile]:
        return db.query(ProviderProfile).filter(ProviderProfile.user_id == provider_id).first()

    @staticmethod
    def get_owned_service(db: Session, service_id: int, provider_id: int) -> Optional[Service]:
        return db.query(Service).filter(Service.id == service_id, Service.provider_id == provider_id).first()

    @staticmethod
    def list_query(db: Session, provider_id: int, status: Optional[str], sort_by: str, order: str):
        query = db.query(Service).filter(Service.provider_id == provider_id)
        if status and status != "all":
            query = query.filter(Service.status == status)
        column = SORT_COLUMNS.get(sort_by, Service.created_at)
        ordering = column.asc() if order == "asc" else column.desc()
        return query.order_by(ordering, Service.id.desc())

    @staticmethod
    def all_services(db: Session, provider_id: int) -> list[Service]:
        return db.query(Service).filter(Service.provider_id == provider_id).all()

    @staticmethod
    def create_service(db: Session, **service_data) -> Service:
        service = Service(**service_data)
        db.add(service)
        db.flush()
        return service

    @staticmethod
    def count_bookings_since(db: Session, service_id: int, since: datetime) -> int:
        return db.query(Booking).filter(Booking.service_id == service_id, Booking.created_at >= since).count()
