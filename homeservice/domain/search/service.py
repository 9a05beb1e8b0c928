"""Search service - public service discovery, suggestions and engagement tracking"""

import logging
import time
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...constants import normalize_category
from ...models import Service
from ...shared.serializers import serialize_service
from ...shared.validators import paginate, pagination_meta
from .geo import haversine_km, service_coordinates
from .repository import SearchRepository
from .schemas import SearchFilters

logger = logging.getLogger(__name__)

TRACKED_RESULTS = 10
NO_RESULT_SUGGESTIONS = 5
DEFAULT_MAX_PRICE = 500
TIMEFRAMES = {"1d": timedelta(days=1), "7d": timedelta(days=7), "30d": timedelta(days=30)}


def _contains(value: Optional[str], needle: str) -> bool:
    return needle.lower() in (value or "").lower()


class SearchService:
    """Service layer for catalogue search"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SearchRepository()

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    # ========================================================================
    # SEARCH
    # ========================================================================

    def _distance(self, service: Service, filters: SearchFilters) -> Optional[float]:
        coords = service_coordinates(service.location)
        if not filters.has_coordinates or not coords:
            return None
        return haversine_km(filters.lat, filters.lng, coords[0], coords[1])

    def _location_filtered(self, services: list[Service], filters: SearchFilters) -> list[tuple[Service, Optional[float]]]:
        results = []
        for service in services:
            address = (service.location or {}).get("address") or {}
            if filters.city and not _contains(address.get("city"), filters.city):
                continue
            if filters.state and not _contains(address.get("state"), filters.state):
                continue
            distance = self._distance(service, filters)
            if filters.has_coordinates and filters.radius and (distance is None or distance > filters.radius):
                continue
            results.append((service, distance))

        if filters.sortBy == "distance" and filters.has_coordinates:
            results.sort(key=lambda pair: (pair[1] is None, pair[1] or 0))
        return results

    def _track_search(self, services: list[Service]) -> None:
        """Bump search_count on the leading results; the model listener refreshes popularity"""
        now = datetime.utcnow()
        for service in services[:TRACKED_RESULTS]:
            service.search_count = (service.search_count or 0) + 1
            service.last_searched = now
        if services:
            self._commit()

    def no_result_suggestions(self, q: Optional[str]) -> list[str]:
        if not q or len(q) < 2:
            return []
        suggestions: list[str] = []
        for service in self.repo.suggestion_candidates(self.db, q):
            for text in [service.name, service.category, *(service.tags or [])]:
                if text and text not in suggestions:
                    suggestions.append(text)
        return suggestions[:NO_RESULT_SUGGESTIONS]

    def search_services(self, filters: SearchFilters) -> dict:
        started = time.perf_counter()
        if filters.category:
            filters.category = normalize_category(filters.category) or filters.category

        query = self.repo.search_query(self.db, filters)
        offset = (filters.page - 1) * filters.limit

        if filters.needs_python_filtering:
            matches = self._location_filtered(query.all(), filters)
            total = len(matches)
            page_items = matches[offset : offset + filters.limit]
        else:
            services, total = paginate(query, filters.page, filters.limit)
            page_items = [(s, self._distance(s, filters)) for s in services]

        results = []
        for service, distance in page_items:
            data = serialize_service(service, include_provider=True)
            if distance is not None:
                data["distance"] = distance
            results.append(data)

        self._track_search([service for service, _ in page_items])

        return {
            "services": results,
            "pagination": pagination_meta(filters.page, filters.limit, total, extended=True),
            "searchMetadata": {
                "query": filters.q,
                "resultCount": total,
                "searchTime": round((time.perf_counter() - started) * 1000),
                "suggestions": self.no_result_suggestions(filters.q) if total == 0 else None,
            },
        }

    def search_by_category(self, category: str, filters: SearchFilters) -> dict:
        normalized = normalize_category(category)
        if not normalized:
            raise HTTPException(status_code=404, detail="Category not found")
        filters.category = normalized
        return self.search_services(filters)

    # ========================================================================
    # DISCOVERY
    # ========================================================================

    def suggestions(self, q: Optional[str], limit: int = 10) -> dict:
        q = (q or "").strip()
        if len(q) < 2:
            return {"suggestions": []}

        half = max(1, limit // 2)
        suggestions = [{"text": name, "type": "service"} for name, _ in self.repo.service_name_counts(self.db, q, half)]

        category_matches = []
        for category in self.repo.active_categories(self.db):
            subcategory_names = [s.get("name") for s in category.active_subcategories()]
            if _contains(category.name, q) or any(_contains(name, q) for name in subcategory_names):
                category_matches.append({"text": category.name, "type": "category"})
            for name in subcategory_names:
                if _contains(name, q):
                    category_matches.append({"text": name, "type": "subcategory"})

        suggestions.extend(category_matches[:half])
        return {"suggestions": suggestions[:limit]}

    def trending(self, limit: int = 10, timeframe: str = "7d") -> dict:
        delta = TIMEFRAMES.get(timeframe)
        since = datetime.utcnow() - delta if delta else None
        services = self.repo.trending(self.db, since, limit)
        return {"services": [serialize_service(s, include_provider=True) for s in services], "timeframe": timeframe}

    def popular(self, limit: int = 20, category: Optional[str] = None) -> dict:
        normalized = normalize_category(category) if category else None
        if category and not normalized:
            return {"services": []}
        services = self.repo.popular(self.db, normalized, limit)
        return {"services": [serialize_service(s, include_provider=True) for s in services]}

    def filters(self) -> dict:
        min_price, max_price, avg_price, avg_rating = self.repo.price_and_rating_stats(self.db)
        return {
            "filters": {
                "categories": [
                    {
                        "name": row.category,
                        "count": row.count,
                        "avgPrice": round(row.avg_price or 0),
                        "avgRating": round(row.avg_rating or 0, 1),
                    }
                    for row in self.repo.category_stats(self.db)
                ],
                "priceRange": {
                    "min": min_price or 0,
                    "max": max_price or DEFAULT_MAX_PRICE,
                    "average": round(avg_price or 0),
                },
                "averageRating": round(avg_rating or 0, 1),
            }
        }

    # ========================================================================
    # ENGAGEMENT
    # ========================================================================

    def get_service(self, service_id: int) -> dict:
        service = self.repo.get_active_service(self.db, service_id)
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")

        data = serialize_service(service, include_provider=True)
        profile = service.provider.provider_profile if service.provider else None
        if data["provider"] is not None and profile:
            data["provider"]["businessInfo"] = profile.business_info
            data["provider"]["profilePhoto"] = (profile.instagram_style_profile or {}).get("profilePhoto")

        service.click_count = (service.click_count or 0) + 1
        self._commit()
        return {"service": data}

    def track_click(self, service_id: int) -> dict:
        service = self.repo.get_service(self.db, service_id)
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")

        service.click_count = (service.click_count or 0) + 1
        service.last_searched = datetime.utcnow()
        self._commit()
        return {"message": "Click tracked successfully"}
