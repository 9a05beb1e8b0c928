"""Public provider router - provider discovery pages"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...rate_limiter import create_rate_limiter
from .service import PublicProviderService

public_limit = create_rate_limiter(limit=100, window_seconds=60, key_prefix="public_providers")

router = APIRouter(prefix="/providers", tags=["Providers"], dependencies=[Depends(public_limit)])

PROVIDER_SORTS = "^(rating|newest|price)$"


def get_public_provider_service(db: Session = Depends(get_db)) -> PublicProviderService:
    """Dependency injection for PublicProviderService"""
    return PublicProviderService(db)


@router.get("/featured")
async def featured_providers(
    limit: int = Query(10, ge=1, le=50),
    service: PublicProviderService = Depends(get_public_provider_service),
):
    return service.featured(limit)


@router.get("/category/{slug}")
async def providers_by_category(
    slug: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    minRating: Optional[float] = Query(None, ge=0, le=5),
    sortBy: str = Query("rating", pattern=PROVIDER_SORTS),
    service: PublicProviderService = Depends(get_public_provider_service),
):
    return service.by_category(slug, page, limit, minRating, sortBy)


@router.get("/subcategory/{category_slug}/{subcategory_slug}")
async def providers_by_subcategory(
    category_slug: str,
    subcategory_slug: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    minRating: Optional[float] = Query(None, ge=0, le=5),
    sortBy: str = Query("rating", pattern=PROVIDER_SORTS),
    service: PublicProviderService = Depends(get_public_provider_service),
):
    return service.by_subcategory(category_slug, subcategory_slug, page, limit, minRating, sortBy)


@router.get("/{provider_id}")
async def get_provider(provider_id: int, service: PublicProviderService = Depends(get_public_provider_service)):
    return service.get_provider(provider_id)


__all__ = ["router"]
