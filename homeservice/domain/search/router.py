"""Search router - public catalogue search and discovery"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...rate_limiter import create_rate_limiter
from .schemas import TRENDING_TIMEFRAMES, SearchFilters, search_filters
from .service import SearchService

search_limit = create_rate_limiter(limit=100, window_seconds=60, key_prefix="search")
suggestion_limit = create_rate_limiter(limit=200, window_seconds=60, key_prefix="search_suggestions")

router = APIRouter(prefix="/search", tags=["Search"])


def get_search_service(db: Session = Depends(get_db)) -> SearchService:
    """Dependency injection for SearchService"""
    return SearchService(db)


@router.get("/services", dependencies=[Depends(search_limit)])
async def search_services(
    filters: SearchFilters = Depends(search_filters),
    service: SearchService = Depends(get_search_service),
):
    return service.search_services(filters)


@router.get("/suggestions", dependencies=[Depends(suggestion_limit)])
async def search_suggestions(
    q: Optional[str] = Query(None, max_length=100),
    limit: int = Query(10, ge=1, le=20),
    service: SearchService = Depends(get_search_service),
):
    return service.suggestions(q, limit)


@router.get("/trending")
async def trending_services(
    limit: int = Query(10, ge=1, le=50),
    timeframe: str = Query("7d", pattern="^(" + "|".join(TRENDING_TIMEFRAMES) + ")$"),
    service: SearchService = Depends(get_search_service),
):
    return service.trending(limit, timeframe)


@router.get("/filters")
async def search_filter_options(service: SearchService = Depends(get_search_service)):
    return service.filters()


@router.get("/popular")
async def popular_services(
    limit: int = Query(20, ge=1, le=50),
    category: Optional[str] = Query(None),
    service: SearchService = Depends(get_search_service),
):
    return service.popular(limit, category)


@router.get("/category/{category_slug}", dependencies=[Depends(search_limit)])
async def search_by_category(
    category_slug: str,
    filters: SearchFilters = Depends(search_filters),
    service: SearchService = Depends(get_search_service),
):
    return service.search_by_category(category_slug, filters)


@router.get("/service/{service_id}")
async def get_service_details(service_id: int, service: SearchService = Depends(get_search_service)):
    return service.get_service(service_id)


@router.post("/service/{service_id}/click")
async def track_service_click(service_id: int, service: SearchService = Depends(get_search_service)):
    return service.track_click(service_id)


__all__ = ["router"]
