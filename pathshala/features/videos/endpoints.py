from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, status

from pathshala.common.deps import CurrentUser, get_current_user, get_registry, require_admin
from pathshala.db.binding import BindingRegistry
from pathshala.db.records import FileAttachment, Video
from pathshala.storage.endpoints import get_uploader
from pathshala.storage.upload import StorageUploader

from .schemas import VideoCreate, VideoOut, VideoUpdate
from .service import VideoService

router = APIRouter(prefix="/videos", tags=["Videos"])


def get_video_service(
    registry: BindingRegistry = Depends(get_registry),
    uploader: StorageUploader = Depends(get_uploader),
) -> VideoService:
    return VideoService(registry, uploader)


@router.get("/", response_model=List[VideoOut])
async def list_videos(
    topic_id: Optional[str] = None,
    current_user: CurrentUser = Depends(get_current_user),
    service: VideoService = Depends(get_video_service),
):
    return await service.list_videos(topic_id)


@router.post("/", response_model=Video, status_code=status.HTTP_201_CREATED)
async def create_video(
    payload: VideoCreate,
    admin: CurrentUser = Depends(require_admin()),
    service: VideoService = Depends(get_video_service),
):
    return await service.create_video(payload)


@router.patch("/{video_id}", response_model=Video)
async def update_video(
    video_id: str,
    payload: VideoUpdate,
    admin: CurrentUser = Depends(require_admin()),
    service: VideoService = Depends(get_video_service),
):
    return await service.update_video(video_id, payload)


@router.post("/{video_id}/files", response_model=Video)
async def attach_files(
    video_id: str,
    files: List[FileAttachment],
    admin: CurrentUser = Depends(require_admin()),
    service: VideoService = Depends(get_video_service),
):
    return await service.attach_files(video_id, files)


@router.delete("/{video_id}/files/{file_id}", response_model=Video)
async def remove_file(
    video_id: str,
    file_id: str,
    admin: CurrentUser = Depends(require_admin()),
    service: VideoService = Depends(get_video_service),
):
    return await service.remove_file(video_id, file_id)


@router.delete("/{video_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_video(
    video_id: str,
    admin: CurrentUser = Depends(require_admin()),
    service: VideoService = Depends(get_video_service),
):
    await service.delete_video(video_id)
