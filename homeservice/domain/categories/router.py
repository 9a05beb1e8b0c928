"""Category router - public category catalogue"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from .service import CategoryService

router = APIRouter(prefix="/categories", tags=["Categories"])


def get_category_service(db: Session = Depends(get_db)) -> CategoryService:
    """Dependency injection for CategoryService"""
    return CategoryService(db)


@router.get("")
async def list_categories(
    featured: bool = Query(False),
    service: CategoryService = Depends(get_category_service),
):
    return service.list_categories(featured)


@router.get("/stats")
async def category_stats(service: CategoryService = Depends(get_category_service)):
    return service.category_stats()


@router.get("/search")
async def search_categories(
    q: Optional[str] = Query(None, max_length=100),
    service: CategoryService = Depends(get_category_service),
):
    return service.search_categories(q)


@router.get("/{slug}")
async def get_category(slug: str, service: CategoryService = Depends(get_category_service)):
    return service.get_category(slug)


@router.get("/{slug}/subcategories")
async def get_subcategories(slug: str, service: CategoryService = Depends(get_category_service)):
    return service.get_subcategories(slug)


@router.get("/{slug}/services")
async def get_category_services(
    slug: str,
    subcategory: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sortBy: str = Query("popularity", pattern="^(popularity|price|price_desc|rating|newest)$"),
    service: CategoryService = Depends(get_category_service),
):
    return service.get_category_services(slug, subcategory, page, limit, sortBy)


__all__ = ["router"]
