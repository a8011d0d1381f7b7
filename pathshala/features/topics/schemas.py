from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class TopicCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    thumbnail: Optional[str] = None


class TopicUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    order: Optional[int] = Field(default=None, ge=0)
