"""Availability router - provider schedule settings and public slot lookups"""

from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...constants import MAX_SERVICE_DURATION, MIN_SERVICE_DURATION, ROLE_PROVIDER
from ...database import get_db
from ...models import User
from .schemas import BlockPeriodCreate, DateOverrideCreate, WeeklyScheduleUpdate
from .service import AvailabilityService

router = APIRouter(prefix="/availability", tags=["Availability"])


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    """Dependency injection for AvailabilityService"""
    return AvailabilityService(db)


async def require_provider(user: User = Depends(get_current_user)) -> User:
    if user.role != ROLE_PROVIDER:
        raise HTTPException(status_code=403, detail="Only providers can access availability settings")
    return user


# ============================================================================
# PROVIDER SETTINGS
# ============================================================================


@router.get("")
async def get_availability(
    current_user: User = Depends(require_provider),
    service: AvailabilityService = Depends(get_availability_service),
):
    return service.get_availability(current_user)


@router.put("/schedule")
async def update_weekly_schedule(
    data: WeeklyScheduleUpdate,
    current_user: User = Depends(require_provider),
    service: AvailabilityService = Depends(get_availability_service),
):
    return service.update_weekly_schedule(current_user, data)


@router.post("/override")
async def add_date_override(
    data: DateOverrideCreate,
    current_user: User = Depends(require_provider),
    service: AvailabilityService = Depends(get_availability_service),
):
    return service.add_date_override(current_user, data)


@router.delete("/override/{override_date}")
async def remove_date_override(
    override_date: str,
    current_user: User = Depends(require_provider),
    service: AvailabilityService = Depends(get_availability_service),
):
    return service.remove_date_override(current_user, override_date)


@router.post("/block")
async def block_period(
    data: BlockPeriodCreate,
    current_user: User = Depends(require_provider),
    service: AvailabilityService = Depends(get_availability_service),
):
    return service.block_period(current_user, data)


@router.delete("/block/{block_id}")
async def remove_blocked_period(
    block_id: str,
    current_user: User = Depends(require_provider),
    service: AvailabilityService = Depends(get_availability_service),
):
    return service.remove_blocked_period(current_user, block_id)


# ============================================================================
# PUBLIC
# ============================================================================


@router.get("/provider/{provider_id}/slots")
async def get_available_slots(
    provider_id: int,
    day: date = Query(..., alias="date", description="YYYY-MM-DD"),
    duration: int = Query(60, ge=MIN_SERVICE_DURATION, le=MAX_SERVICE_DURATION),
    service: AvailabilityService = Depends(get_availability_service),
):
    return service.get_available_slots(provider_id, day, duration)


@router.get("/provider/{provider_id}/check")
async def check_time_slot(
    provider_id: int,
    startTime: datetime = Query(...),
    endTime: datetime = Query(...),
    service: AvailabilityService = Depends(get_availability_service),
):
    return service.check_time_slot(provider_id, startTime, endTime)


__all__ = ["router"]
