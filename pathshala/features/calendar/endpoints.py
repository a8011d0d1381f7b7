from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from pathshala.common.deps import CurrentUser, get_app_settings, get_current_user, get_registry, require_admin
from pathshala.core.config import Settings
from pathshala.db.binding import BindingRegistry
from pathshala.db.records import Event

from .schemas import EventCreate, EventUpdate
from .service import CalendarService

router = APIRouter(prefix="/events", tags=["Calendar"])


def get_calendar_service(
    registry: BindingRegistry = Depends(get_registry),
    settings: Settings = Depends(get_app_settings),
) -> CalendarService:
    return CalendarService(registry, settings.tz)


@router.get("/", response_model=List[Event])
async def list_events(
    day: Optional[date] = None,
    current_user: CurrentUser = Depends(get_current_user),
    service: CalendarService = Depends(get_calendar_service),
):
    if day is not None:
        return await service.events_on(day)
    return await service.list_events()


@router.get("/upcoming", response_model=List[Event])
async def upcoming_events(
    limit: int = Query(default=5, ge=1, le=50),
    current_user: CurrentUser = Depends(get_current_user),
    service: CalendarService = Depends(get_calendar_service),
):
    return await service.upcoming(limit=limit)


@router.post("/", response_model=Event, status_code=status.HTTP_201_CREATED)
async def create_event(
    payload: EventCreate,
    admin: CurrentUser = Depends(require_admin()),
    service: CalendarService = Depends(get_calendar_service),
):
    return await service.create_event(payload)


@router.patch("/{event_id}", response_model=Event)
async def update_event(
    event_id: str,
    payload: EventUpdate,
    admin: CurrentUser = Depends(require_admin()),
    service: CalendarService = Depends(get_calendar_service),
):
    return await service.update_event(event_id, payload)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: str,
    admin: CurrentUser = Depends(require_admin()),
    service: CalendarService = Depends(get_calendar_service),
):
    await service.delete_event(event_id)
