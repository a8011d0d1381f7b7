from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query

from pathshala.common.deps import CurrentUser, get_current_user, get_registry, require_admin
from pathshala.db.binding import BindingRegistry
from pathshala.db.records import UserProgress

from .schemas import (
    CompletionOutcome,
    CompletionSubmit,
    ProgressListing,
    QuizOutcome,
    QuizSubmit,
    VideoSession,
)
from .service import ProgressService

router = APIRouter(prefix="/progress", tags=["Progress"])


def get_progress_service(registry: BindingRegistry = Depends(get_registry)) -> ProgressService:
    return ProgressService(registry)


@router.get("/me", response_model=List[UserProgress])
async def my_progress(
    current_user: CurrentUser = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service),
):
    return await service.my_progress(current_user.id)


@router.post("/videos/{video_id}/open", response_model=VideoSession)
async def open_video(
    video_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service),
):
    return await service.open_video(current_user.id, video_id)


@router.post("/videos/{video_id}/complete", response_model=CompletionOutcome)
async def submit_completion(
    video_id: str,
    payload: CompletionSubmit,
    current_user: CurrentUser = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service),
):
    return await service.submit_completion(current_user.id, current_user.email, video_id, payload)


@router.post("/videos/{video_id}/quiz", response_model=QuizOutcome)
async def submit_quiz(
    video_id: str,
    payload: QuizSubmit,
    current_user: CurrentUser = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service),
):
    return await service.submit_quiz(current_user.id, current_user.email, video_id, payload)


@router.get("/", response_model=ProgressListing)
async def list_progress(
    status: str = Query(default="all"),
    admin: CurrentUser = Depends(require_admin()),
    service: ProgressService = Depends(get_progress_service),
):
    return await service.listing(status)
