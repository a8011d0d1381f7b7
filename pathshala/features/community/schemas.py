from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from pathshala.db.records import FileAttachment, Post


class CategoryCreate(BaseModel):
    name: str = ""
    description: str = ""
    color: str = "#3B82F6"


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None


class PostCreate(BaseModel):
    title: str = ""
    content: str = ""
    category_id: str = ""
    image_url: Optional[str] = None
    youtube_url: Optional[str] = None
    files: List[FileAttachment] = Field(default_factory=list)


class CommentCreate(BaseModel):
    content: str = ""


class PostOut(Post):
    category_name: str = ""
    liked: bool = False


class LikeResult(BaseModel):
    liked: bool
    likes_count: int
