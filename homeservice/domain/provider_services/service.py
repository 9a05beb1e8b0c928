"""Provider service catalogue - create, edit and measure a provider's own services"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...cache import invalidate_category_cache
from ...constants import (
    ASSIGNABLE_SERVICE_STATUSES,
    DEFAULT_COORDINATES,
    SERVICE_ACTIVE,
    SERVICE_DRAFT,
    SERVICE_INACTIVE,
    SERVICE_PENDING_REVIEW,
)
from ...models import ProviderProfile, Service, User
from ...security_utils import sanitize_text
from ...shared.serializers import serialize_service
from ...shared.validators import clamp_page, paginate, pagination_meta
from .repository import ProviderServiceRepository
from .schemas import ServiceCreate, ServiceUpdate

logger = logging.getLogger(__name__)

# ServiceUpdate field -> Service column for plain copies
UPDATE_COLUMNS = {
    "name": "name",
    "category": "category",
    "subcategory": "subcategory",
    "shortDescription": "short_description",
    "duration": "duration",
    "tags": "tags",
    "images": "images",
}


def _percentage(part: float, whole: float) -> float:
    return round(part / whole * 100, 2) if whole else 0


def inherited_location(profile: ProviderProfile) -> dict:
    """Service location copied from the provider's primary address, coordinates as [lng, lat]"""
    location_info = profile.location_info or {}
    address = dict(location_info.get("primaryAddress") or {})
    coords = address.pop("coordinates", None)

    if isinstance(coords, dict) and coords.get("lat") is not None and coords.get("lng") is not None:
        coordinates = [coords["lng"], coords["lat"]]
    elif isinstance(coords, (list, tuple)) and len(coords) == 2:
        coordinates = list(coords)
    else:
        coordinates = list(DEFAULT_COORDINATES)

    return {
        "address": address,
        "coordinates": coordinates,
        "serviceRadius": location_info.get("serviceRadius") or 25,
    }


class ProviderCatalogService:
    """Service layer for a provider's own catalogue"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ProviderServiceRepository()

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def _owned(self, service_id: int, provider: User) -> Service:
        service = self.repo.get_owned_service(self.db, service_id, provider.id)
        if not service:
            raise HTTPException(status_code=404, detail="Service not found or access denied")
        return service

    # ========================================================================
    # CRUD
    # ========================================================================

    def list_services(
        self,
        provider: User,
        status: Optional[str] = "all",
        sort_by: str = "createdAt",
        order: str = "desc",
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> dict:
        page, limit = clamp_page(page, limit)
        query = self.repo.list_query(self.db, provider.id, status, sort_by, order)
        services, total = paginate(query, page, limit)
        return {
            "services": [serialize_service(s) for s in services],
            "pagination": pagination_meta(page, limit, total, extended=True),
        }

    def get_service(self, service_id: int, provider: User) -> dict:
        return {"service": serialize_service(self._owned(service_id, provider))}

    def create_service(self, provider: User, data: ServiceCreate) -> dict:
        profile = self.repo.get_profile(self.db, provider.id)
        if not profile or not (profile.location_info or {}).get("primaryAddress"):
            raise HTTPException(
                status_code=400,
                detail="Provider location not found. Please complete your profile first.",
            )

        try:
            service = self.repo.create_service(
                self.db,
                provider_id=provider.id,
                name=data.name.strip(),
                category=data.category,
                subcategory=data.subcategory,
                description=sanitize_text(data.description),
                short_description=sanitize_text(data.shortDescription),
                price_amount=data.price.amount,
                price_currency=data.price.currency,
                price_type=data.price.type,
                duration=data.duration,
                tags=data.tags,
                images=data.images,
                add_ons=[a.model_dump() for a in data.addOns],
                location=inherited_location(profile),
                status=SERVICE_PENDING_REVIEW,
                is_active=False,
            )
            self.db.commit()
            self.db.refresh(service)
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"📥 Provider {provider.id} submitted service {service.id} for review")
        return {"message": "Service submitted for admin approval", "service": serialize_service(service)}

    def update_service(self, service_id: int, provider: User, data: ServiceUpdate) -> dict:
        service = self._owned(service_id, provider)
        updates = data.model_dump(exclude_unset=True)

        for field, column in UPDATE_COLUMNS.items():
            if updates.get(field) is not None:
                setattr(service, column, updates[field])
        if updates.get("description") is not None:
            service.description = sanitize_text(updates["description"])
        # nested models are read whole so their defaults apply
        if data.price is not None:
            service.price_amount = data.price.amount
            service.price_currency = data.price.currency
            service.price_type = data.price.type
        if data.addOns is not None:
            service.add_ons = [a.model_dump() for a in data.addOns]

        self._commit()
        self.db.refresh(service)
        return {"message": "Service updated successfully", "service": serialize_service(service)}

    def delete_service(self, service_id: int, provider: User) -> dict:
        service = self._owned(service_id, provider)
        service.is_active = False
        service.status = SERVICE_INACTIVE
        self._commit()
        invalidate_category_cache()
        logger.info(f"🗑️ Provider {provider.id} deactivated service {service.id}")
        return {"message": "Service deleted successfully"}

    def update_status(self, service_id: int, provider: User, status: str) -> dict:
        if status not in ASSIGNABLE_SERVICE_STATUSES:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid status. Must be: {', '.join(ASSIGNABLE_SERVICE_STATUSES)}",
            )

        service = self._owned(service_id, provider)
        service.status = status
        service.is_active = status == SERVICE_ACTIVE
        self._commit()
        self.db.refresh(service)
        invalidate_category_cache()
        return {"message": f"Service status updated to {status}", "service": serialize_service(service)}

    # ========================================================================
    # ANALYTICS
    # ========================================================================

    def overview_analytics(self, provider: User) -> dict:
        services = self.repo.all_services(self.db, provider.id)

        total_views = sum(s.search_count or 0 for s in services)
        total_clicks = sum(s.click_count or 0 for s in services)
        total_bookings = sum(s.booking_count or 0 for s in services)
        average_rating = sum(s.rating_average or 0 for s in services) / len(services) if services else 0

        top_services = sorted(services, key=lambda s: s.popularity_score or 0, reverse=True)[:5]

        return {
            "overview": {
                "serviceStats": {
                    "total": len(services),
                    "active": len([s for s in services if s.is_active and s.status == SERVICE_ACTIVE]),
                    "draft": len([s for s in services if s.status == SERVICE_DRAFT]),
                    "inactive": len([s for s in services if s.status == SERVICE_INACTIVE]),
                    "pendingReview": len([s for s in services if s.status == SERVICE_PENDING_REVIEW]),
                },
                "performanceStats": {
                    "totalViews": total_views,
                    "totalClicks": total_clicks,
                    "totalBookings": total_bookings,
                    "conversionRate": _percentage(total_clicks, total_views),
                    "bookingRate": _percentage(total_bookings, total_clicks),
                },
                "ratingStats": {
                    "averageRating": round(average_rating, 1),
                    "totalReviews": sum(s.rating_count or 0 for s in services),
                },
                "topServices": [
                    {
                        "id": s.id,
                        "name": s.name,
                        "category": s.category,
                        "views": s.search_count,
                        "clicks": s.click_count,
                        "bookings": s.booking_count,
                        "rating": s.rating_average,
                        "popularityScore": s.popularity_score,
                    }
                    for s in top_services
                ],
            }
        }

    def service_analytics(self, service_id: int, provider: User) -> dict:
        service = self._owned(service_id, provider)
        now = datetime.utcnow()
        recent_activity = [
            {
                "period": label,
                "bookings": self.repo.count_bookings_since(self.db, service.id, now - timedelta(days=days)),
            }
            for label, days in (("Last 7 days", 7), ("Last 30 days", 30))
        ]
        return {
            "analytics": {
                "totalViews": service.search_count,
                "totalClicks": service.click_count,
                "totalBookings": service.booking_count,
                "conversionRate": _percentage(service.click_count or 0, service.search_count or 0),
                "popularityScore": service.popularity_score,
                "lastSearched": service.last_searched,
                "recentActivity": recent_activity,
            }
        }
