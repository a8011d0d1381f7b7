from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from pathshala.db.records import FileAttachment, Video


class VideoCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    youtube_url: str
    topic_id: str
    files: List[FileAttachment] = Field(default_factory=list)


class VideoUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    youtube_url: Optional[str] = None
    topic_id: Optional[str] = None
    order: Optional[int] = Field(default=None, ge=0)
    files: Optional[List[FileAttachment]] = None


class VideoOut(Video):
    thumbnail_url: str = ""
    topic_name: str = ""
