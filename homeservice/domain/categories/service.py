"""Category service - master categories, subcategories and category listings"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...cache import CATEGORY_CACHE_TTL, cached
from ...models import Service, ServiceCategory
from ...shared.serializers import serialize_service
from ...shared.validators import paginate, pagination_meta
from ..search.repository import SORT_ORDERS
from .repository import CategoryRepository

logger = logging.getLogger(__name__)

MAX_SEARCH_RESULTS = 10


def serialize_subcategory(sub: dict) -> dict:
    return {
        "name": sub.get("name"),
        "slug": sub.get("slug"),
        "description": sub.get("description"),
        "icon": sub.get("icon"),
        "color": sub.get("color"),
    }


def serialize_category(category: ServiceCategory) -> dict:
    subcategories = category.active_subcategories()
    return {
        "id": category.id,
        "name": category.name,
        "slug": category.slug,
        "description": category.description,
        "icon": category.icon,
        "color": category.color,
        "imageUrl": category.image_url,
        "sortOrder": category.sort_order,
        "isFeatured": category.is_featured,
        "subcategoryCount": len(subcategories),
        "subcategories": [serialize_subcategory(s) for s in subcategories],
    }


class CategoryService:
    """Service layer for the public category catalogue"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CategoryRepository()

    def _get_or_404(self, slug: str) -> ServiceCategory:
        category = self.repo.get_by_slug(self.db, slug)
        if not category:
            raise HTTPException(status_code=404, detail="Category not found")
        return category

    @cached("categories", ttl=CATEGORY_CACHE_TTL, key_builder=lambda self, featured=False: f"list:{featured}")
    def list_categories(self, featured: bool = False) -> dict:
        categories = self.repo.list_active(self.db, featured_only=featured)
        return {"categories": [serialize_category(c) for c in categories], "total": len(categories)}

    @cached("categories", ttl=CATEGORY_CACHE_TTL, key_builder=lambda self: "stats")
    def category_stats(self) -> dict:
        counts = self.repo.active_service_counts(self.db)
        return {
            "categories": [
                {
                    "id": c.id,
                    "name": c.name,
                    "slug": c.slug,
                    "icon": c.icon,
                    "color": c.color,
                    "serviceCount": counts.get(c.name, 0),
                }
                for c in self.repo.list_active(self.db)
            ]
        }

    def search_categories(self, q: Optional[str]) -> dict:
        q = (q or "").strip()
        if len(q) < 2:
            raise HTTPException(status_code=400, detail="Search query must be at least 2 characters")

        needle = q.lower()
        results = []
        for category in self.repo.list_active(self.db):
            if needle in category.name.lower():
                results.append({"type": "category", "name": category.name, "slug": category.slug})
            for sub in category.active_subcategories():
                if needle in (sub.get("name") or "").lower():
                    results.append(
                        {
                            "type": "subcategory",
                            "name": sub.get("name"),
                            "slug": sub.get("slug"),
                            "parentCategory": category.name,
                            "parentSlug": category.slug,
                        }
                    )
        return {"results": results[:MAX_SEARCH_RESULTS]}

    @cached("categories", ttl=CATEGORY_CACHE_TTL, key_builder=lambda self, slug: f"detail:{slug.lower()}")
    def get_category(self, slug: str) -> dict:
        category = self._get_or_404(slug)
        data = serialize_category(category)
        data["serviceCount"] = self.repo.count_active_services(self.db, category.name)
        return {"category": data}

    @cached("categories", ttl=CATEGORY_CACHE_TTL, key_builder=lambda self, slug: f"subcategories:{slug.lower()}")
    def get_subcategories(self, slug: str) -> dict:
        category = self._get_or_404(slug)
        return {
            "categoryName": category.name,
            "categorySlug": category.slug,
            "subcategories": [serialize_subcategory(s) for s in category.active_subcategories()],
        }

    def get_category_services(
        self,
        slug: str,
        subcategory: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
        sort_by: str = "popularity",
    ) -> dict:
        category = self._get_or_404(slug)
        query = self.repo.active_services_query(self.db, category.name)

        if subcategory:
            # Accept either the subcategory name or its slug
            wanted = subcategory.lower()
            match = next(
                (s for s in category.active_subcategories() if wanted in (s.get("slug"), (s.get("name") or "").lower())),
                None,
            )
            query = query.filter(Service.subcategory == (match.get("name") if match else subcategory))

        order = SORT_ORDERS.get(sort_by, SORT_ORDERS["popularity"])
        services, total = paginate(query.order_by(*order), page, limit)
        return {
            "category": {"name": category.name, "slug": category.slug},
            "services": [serialize_service(s, include_provider=True) for s in services],
            "pagination": pagination_meta(page, limit, total),
        }
