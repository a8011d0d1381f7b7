from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from pathshala.db.records import EventType


class EventCreate(BaseModel):
    title: str = ""
    description: str = ""
    date: datetime
    time: str = ""
    live_link: Optional[str] = None
    type: EventType = EventType.other


class EventUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[datetime] = None
    time: Optional[str] = None
    live_link: Optional[str] = None
    type: Optional[EventType] = None
