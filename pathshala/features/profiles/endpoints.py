from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from pathshala.common.deps import CurrentUser, get_current_user, get_registry
from pathshala.db.binding import BindingRegistry
from pathshala.db.records import UserProfile

from .schemas import Leaderboard, ProfileUpdate
from .service import ProfileService

router = APIRouter(tags=["Profiles"])


def get_profile_service(registry: BindingRegistry = Depends(get_registry)) -> ProfileService:
    return ProfileService(registry)


@router.get("/profiles/me", response_model=UserProfile)
async def get_my_profile(
    current_user: CurrentUser = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    return await service.ensure_profile(current_user.id, current_user.email)


@router.put("/profiles/me", response_model=UserProfile)
async def update_my_profile(
    payload: ProfileUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    return await service.upsert_profile(current_user.id, current_user.email, payload)


@router.get("/leaderboard", response_model=Leaderboard)
async def leaderboard(
    limit: Optional[int] = Query(default=None, ge=1),
    current_user: CurrentUser = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
):
    return await service.leaderboard(current_user.id, limit)
