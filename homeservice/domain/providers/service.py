"""Public provider service - provider cards and public profiles"""

from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...constants import DEFAULT_TIMEZONE
from ...models import Service, ServiceCategory, User
from ...shared.serializers import serialize_service
from ...shared.validators import paginate, pagination_meta
from ..availability.scheduling import default_weekly_schedule
from ..categories.repository import CategoryRepository
from .repository import PublicProviderRepository


def _location(profile) -> Optional[dict]:
    address = (profile.location_info or {}).get("primaryAddress") if profile else None
    if not address:
        return None
    return {"city": address.get("city"), "state": address.get("state"), "country": address.get("country")}


def provider_card(provider: User, services: list[Service]) -> dict:
    """Compact provider listing used by featured and category pages"""
    profile = provider.provider_profile
    business = profile.business_info or {}
    return {
        "id": provider.id,
        "firstName": provider.first_name,
        "lastName": provider.last_name,
        "businessName": business.get("businessName") or provider.full_name,
        "tagline": business.get("tagline") or "",
        "profilePhoto": (profile.instagram_style_profile or {}).get("profilePhoto") or provider.avatar or "",
        "isVerified": True,
        "location": _location(profile),
        "rating": profile.rating_average,
        "reviewCount": profile.rating_count,
        "startingPrice": min((s.price_amount for s in services), default=None),
        "servicesCount": len(services),
        "specializations": sorted({s.category for s in services}),
        "services": [
            {"id": s.id, "name": s.name, "subcategory": s.subcategory, "price": s.price_amount, "duration": s.duration}
            for s in services[:3]
        ],
    }


def _group_by_provider(services: list[Service]) -> dict[int, list[Service]]:
    grouped: dict[int, list[Service]] = {}
    for service in services:
        grouped.setdefault(service.provider_id, []).append(service)
    return grouped


class PublicProviderService:
    """Service layer for public provider pages"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PublicProviderRepository()
        self.categories = CategoryRepository()

    def _category_or_404(self, slug: str) -> ServiceCategory:
        category = self.categories.get_by_slug(self.db, slug)
        if not category:
            raise HTTPException(status_code=404, detail="Category not found")
        return category

    def featured(self, limit: int = 10) -> dict:
        providers = self.repo.featured(self.db, limit)
        services = _group_by_provider(self.repo.active_services(self.db, [p.id for p in providers]))
        return {"providers": [provider_card(p, services.get(p.id, [])) for p in providers]}

    def _providers_offering(
        self,
        services: list[Service],
        page: int,
        limit: int,
        min_rating: Optional[float],
        sort_by: str,
    ) -> tuple[list[dict], dict]:
        by_provider = _group_by_provider(services)
        query = self.repo.providers_in(self.db, list(by_provider), min_rating, sort_by)
        providers, total = paginate(query, page, limit)
        cards = [provider_card(p, by_provider.get(p.id, [])) for p in providers]
        if sort_by == "price":
            cards.sort(key=lambda c: c["startingPrice"] or 0)
        return cards, pagination_meta(page, limit, total, extended=True)

    def by_category(
        self,
        slug: str,
        page: int = 1,
        limit: int = 20,
        min_rating: Optional[float] = None,
        sort_by: str = "rating",
    ) -> dict:
        category = self._category_or_404(slug)
        services = self.repo.active_services(self.db, category=category.name)
        providers, pagination = self._providers_offering(services, page, limit, min_rating, sort_by)
        return {
            "category": {"name": category.name, "slug": category.slug},
            "providers": providers,
            "pagination": pagination,
        }

    def by_subcategory(
        self,
        category_slug: str,
        subcategory_slug: str,
        page: int = 1,
        limit: int = 20,
        min_rating: Optional[float] = None,
        sort_by: str = "rating",
    ) -> dict:
        category = self._category_or_404(category_slug)
        subcategory = next(
            (s for s in category.active_subcategories() if s.get("slug") == subcategory_slug.lower()),
            None,
        )
        if not subcategory:
            raise HTTPException(status_code=404, detail="Subcategory not found")

        services = self.repo.active_services(self.db, category=category.name, subcategory=subcategory["name"])
        providers, pagination = self._providers_offering(services, page, limit, min_rating, sort_by)
        return {
            "category": {"name": category.name, "slug": category.slug},
            "subcategory": {"name": subcategory["name"], "slug": subcategory["slug"]},
            "providers": providers,
            "pagination": pagination,
        }

    def get_provider(self, provider_id: int) -> dict:
        provider = self.repo.get_approved(self.db, provider_id)
        if not provider:
            raise HTTPException(status_code=404, detail="Provider not found")

        profile = provider.provider_profile
        business = profile.business_info or {}
        showcase = profile.instagram_style_profile or {}
        services = self.repo.active_services(self.db, [provider.id])
        availability = provider.availability

        return {
            "provider": {
                "id": provider.id,
                "firstName": provider.first_name,
                "lastName": provider.last_name,
                "businessName": business.get("businessName") or provider.full_name,
                "businessType": business.get("businessType") or "individual",
                "description": business.get("description") or "",
                "profilePhoto": showcase.get("profilePhoto") or provider.avatar or "",
                "bio": showcase.get("bio") or provider.bio or "",
                "isVerified": True,
                "contact": {"website": business.get("website")},
                "location": _location(profile),
                "services": [serialize_service(s) for s in services],
                "specializations": sorted({s.category for s in services}),
                "rating": {"average": profile.rating_average, "count": profile.rating_count},
                "availability": {
                    "weeklySchedule": availability.weekly_schedule if availability else default_weekly_schedule(),
                    "timezone": availability.timezone if availability else DEFAULT_TIMEZONE,
                    "maxAdvanceBookingDays": availability.max_advance_booking_days if availability else 30,
                    "instantBooking": bool(availability and availability.auto_accept_bookings),
                },
                "memberSince": profile.created_at,
            }
        }
