"""Provider service router - a provider managing and measuring their own services"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_approved_provider
from ...constants import ROLE_PROVIDER
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from .schemas import SORT_FIELDS, ServiceCreate, ServiceStatusUpdate, ServiceUpdate
from .service import ProviderCatalogService

provider_limit = create_rate_limiter(limit=100, window_seconds=900, key_prefix="provider_services")

router = APIRouter(prefix="/provider", tags=["Provider Services"], dependencies=[Depends(provider_limit)])


def get_catalog_service(db: Session = Depends(get_db)) -> ProviderCatalogService:
    """Dependency injection for ProviderCatalogService"""
    return ProviderCatalogService(db)


async def require_provider(user: User = Depends(get_current_user)) -> User:
    if user.role != ROLE_PROVIDER:
        raise HTTPException(status_code=403, detail="Only providers can access this endpoint")
    return user


# ============================================================================
# SERVICES
# ============================================================================


@router.get("/services")
async def list_my_services(
    status: str = Query("all"),
    sortBy: str = Query("createdAt", pattern="^(" + "|".join(SORT_FIELDS) + ")$"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(require_provider),
    service: ProviderCatalogService = Depends(get_catalog_service),
):
    return service.list_services(current_user, status, sortBy, order, page, limit)


@router.get("/services/{service_id}")
async def get_my_service(
    service_id: int,
    current_user: User = Depends(require_provider),
    service: ProviderCatalogService = Depends(get_catalog_service),
):
    return service.get_service(service_id, current_user)


@router.post("/services", status_code=201)
async def create_service(
    data: ServiceCreate,
    current_user: User = Depends(require_provider),
    service: ProviderCatalogService = Depends(get_catalog_service),
):
    return service.create_service(current_user, data)


@router.put("/services/{service_id}")
async def update_service(
    service_id: int,
    data: ServiceUpdate,
    current_user: User = Depends(require_provider),
    service: ProviderCatalogService = Depends(get_catalog_service),
):
    return service.update_service(service_id, current_user, data)


@router.delete("/services/{service_id}")
async def delete_service(
    service_id: int,
    current_user: User = Depends(require_provider),
    service: ProviderCatalogService = Depends(get_catalog_service),
):
    return service.delete_service(service_id, current_user)


@router.patch("/services/{service_id}/status")
async def update_service_status(
    service_id: int,
    data: ServiceStatusUpdate,
    current_user: User = Depends(require_approved_provider),
    service: ProviderCatalogService = Depends(get_catalog_service),
):
    return service.update_status(service_id, current_user, data.status)


# ============================================================================
# ANALYTICS
# ============================================================================


@router.get("/analytics")
async def overview_analytics(
    current_user: User = Depends(require_provider),
    service: ProviderCatalogService = Depends(get_catalog_service),
):
    return service.overview_analytics(current_user)


@router.get("/services/{service_id}/analytics")
async def service_analytics(
    service_id: int,
    current_user: User = Depends(require_provider),
    service: ProviderCatalogService = Depends(get_catalog_service),
):
    return service.service_analytics(service_id, current_user)


__all__ = ["router"]
