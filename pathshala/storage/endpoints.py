"""File upload endpoint used by the topic, video, community and challenge forms."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from pathshala.common.deps import CurrentUser, get_current_user
from pathshala.db.records import FileAttachment

from .upload import StorageUploader

router = APIRouter(prefix="/files", tags=["files"])


def get_uploader(request: Request) -> StorageUploader:
    return request.app.state.uploader


@router.post("/upload", response_model=FileAttachment)
async def upload_file(
    folder: str = Form(...),
    file: UploadFile = File(...),
    current_user: CurrentUser = Depends(get_current_user),
    uploader: StorageUploader = Depends(get_uploader),
) -> FileAttachment:
    data = await file.read()
    return await uploader.upload_attachment(
        data,
        file.filename or "file",
        folder,
        current_user.identity(),
        content_type=file.content_type,
    )
