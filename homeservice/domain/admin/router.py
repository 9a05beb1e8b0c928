"""Admin router - back office endpoints, admin role required"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import User
from .repository import SERVICE_SORT_COLUMNS
from .schemas import (
    AdminServiceStatusUpdate,
    ApproveProviderRequest,
    BatchServiceAction,
    RejectProviderRequest,
    UserStatusUpdate,
)
from .service import AdminService

router = APIRouter(prefix="/admin", tags=["Admin"])


def get_admin_service(db: Session = Depends(get_db)) -> AdminService:
    """Dependency injection for AdminService"""
    return AdminService(db)


# ============================================================================
# PROVIDERS
# ============================================================================


@router.get("/providers/pending")
async def pending_providers(
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    _: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.pending_providers(search, page, limit)


@router.get("/providers/stats")
async def provider_stats(_: User = Depends(require_admin), service: AdminService = Depends(get_admin_service)):
    return service.provider_stats()


@router.get("/providers-with-services")
async def providers_with_services(
    status: Optional[str] = Query("all"),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.providers_with_services(status, search, page, limit)


@router.get("/providers/{provider_id}")
async def get_provider(
    provider_id: int,
    _: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.get_provider(provider_id)


@router.get("/providers/{provider_id}/services")
async def provider_services(
    provider_id: int,
    _: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.provider_services(provider_id)


@router.post("/providers/{provider_id}/approve")
async def approve_provider(
    provider_id: int,
    data: Optional[ApproveProviderRequest] = None,
    current_user: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return await service.approve_provider(provider_id, current_user, data or ApproveProviderRequest())


@router.post("/providers/{provider_id}/reject")
async def reject_provider(
    provider_id: int,
    data: RejectProviderRequest,
    current_user: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return await service.reject_provider(provider_id, current_user, data)


# ============================================================================
# SERVICES
# ============================================================================


@router.get("/services")
async def list_services(
    search: Optional[str] = Query(None, max_length=100),
    category: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    provider: Optional[int] = Query(None),
    sortBy: str = Query("createdAt", pattern="^(" + "|".join(SERVICE_SORT_COLUMNS) + ")$"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.list_services(search, category, status, provider, sortBy, order, page, limit)


@router.get("/services/pending")
async def pending_services(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.pending_services(page, limit)


@router.get("/services/stats")
async def service_stats(_: User = Depends(require_admin), service: AdminService = Depends(get_admin_service)):
    return service.service_stats()


@router.post("/services/batch-action")
async def batch_service_action(
    data: BatchServiceAction,
    current_user: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.batch_service_action(data, current_user)


@router.patch("/services/{service_id}/status")
async def update_service_status(
    service_id: int,
    data: AdminServiceStatusUpdate,
    current_user: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.update_service_status(service_id, current_user, data.status, data.notes)


@router.delete("/services/{service_id}")
async def delete_service(
    service_id: int,
    current_user: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.delete_service(service_id, current_user)


# ============================================================================
# USERS
# ============================================================================


@router.get("/users")
async def list_users(
    search: Optional[str] = Query(None, max_length=100),
    role: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.list_users(search, role, status, page, limit)


@router.get("/users/stats")
async def user_stats(_: User = Depends(require_admin), service: AdminService = Depends(get_admin_service)):
    return service.user_stats()


@router.patch("/users/{user_id}/status")
async def update_user_status(
    user_id: int,
    data: UserStatusUpdate,
    current_user: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.update_user_status(user_id, current_user, data.status)


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: int,
    current_user: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.delete_user(user_id, current_user)


__all__ = ["router"]
