"""Search domain schemas"""

from typing import Optional

from fastapi import Query
from pydantic import BaseModel

SEARCH_SORTS = ("popularity", "price", "price_desc", "rating", "distance", "newest")
TRENDING_TIMEFRAMES = ("1d", "7d", "30d", "all")


class SearchFilters(BaseModel):
    q: Optional[str] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    minPrice: Optional[float] = None
    maxPrice: Optional[float] = None
    minRating: Optional[float] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    radius: Optional[float] = None
    city: Optional[str] = None
    state: Optional[str] = None
    sortBy: str = "popularity"
    page: int = 1
    limit: int = 20

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None

    @property
    def needs_python_filtering(self) -> bool:
        """Filters over JSON location data are applied after the SQL query"""
        return bool(self.city or self.state or self.sortBy == "distance" or (self.has_coordinates and self.radius))


def search_filters(
    q: Optional[str] = Query(None, max_length=100),
    category: Optional[str] = Query(None),
    subcategory: Optional[str] = Query(None),
    minPrice: Optional[float] = Query(None, ge=0),
    maxPrice: Optional[float] = Query(None, ge=0),
    minRating: Optional[float] = Query(None, ge=0, le=5),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    radius: Optional[float] = Query(None, gt=0, le=500, description="Kilometres"),
    city: Optional[str] = Query(None, max_length=100),
    state: Optional[str] = Query(None, max_length=100),
    sortBy: str = Query("popularity", pattern="^(" + "|".join(SEARCH_SORTS) + ")$"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> SearchFilters:
    """Query-string dependency shared by /services and /category/{category_slug}"""
    return SearchFilters(
        q=q.strip() if q and q.strip() else None,
        category=category,
        subcategory=subcategory,
        minPrice=minPrice,
        maxPrice=maxPrice,
        minRating=minRating,
        lat=lat,
        lng=lng,
        radius=radius,
        city=city,
        state=state,
        sortBy=sortBy,
        page=page,
        limit=limit,
    )
