from __future__ import annotations

from fastapi import APIRouter, Depends

from pathshala.common.deps import CurrentUser, get_app_settings, get_registry, require_admin
from pathshala.core.config import Settings
from pathshala.db.binding import BindingRegistry

from .schemas import DashboardStats
from .service import DashboardService

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


def get_dashboard_service(
    registry: BindingRegistry = Depends(get_registry),
    settings: Settings = Depends(get_app_settings),
) -> DashboardService:
    return DashboardService(registry, wait_seconds=settings.query_timeout)


@router.get("/stats", response_model=DashboardStats)
async def dashboard_stats(
    admin: CurrentUser = Depends(require_admin()),
    service: DashboardService = Depends(get_dashboard_service),
):
    return await service.stats()
