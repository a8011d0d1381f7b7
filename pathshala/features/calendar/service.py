from __future__ import annotations

import logging
from datetime import date, tzinfo
from typing import List, Optional

from pathshala.common import views
from pathshala.common.errors import ValidationError
from pathshala.common.utils import current_timestamp
from pathshala.db.binding import BindingRegistry, CollectionBinding
from pathshala.db.records import Event

from .schemas import EventCreate, EventUpdate

logger = logging.getLogger("calendar.service")


class CalendarService:
    def __init__(self, registry: BindingRegistry, tz: Optional[tzinfo] = None) -> None:
        self.registry = registry
        self.tz = tz

    async def _events(self) -> CollectionBinding[Event]:
        return await self.registry.bind(Event, order="date")

    async def list_events(self) -> List[Event]:
        return list((await self._events()).records)

    async def events_on(self, day: date) -> List[Event]:
        return views.events_on((await self._events()).records, day, self.tz)

    async def upcoming(self, today: Optional[date] = None, limit: Optional[int] = 5) -> List[Event]:
        if today is None:
            now = current_timestamp()
            today = (now.astimezone(self.tz) if self.tz is not None else now).date()
        return views.upcoming_events((await self._events()).records, today, limit, self.tz)

    async def create_event(self, payload: EventCreate) -> Event:
        title = payload.title.strip()
        if not title:
            raise ValidationError("ইভেন্টের শিরোনাম লিখুন!", field="title")
        events = await self._events()
        event = await events.create(
            {
                "title": title,
                "description": payload.description.strip(),
                "date": payload.date,
                "time": payload.time,
                "live_link": (payload.live_link or "").strip() or None,
                "type": payload.type,
            }
        )
        logger.info("calendar.created id=%s type=%s date=%s", event.id, event.type.value, event.date.date())
        return event

    async def update_event(self, event_id: str, payload: EventUpdate) -> Event:
        changes = payload.model_dump(exclude_unset=True)
        if "title" in changes and not (changes["title"] or "").strip():
            raise ValidationError("ইভেন্টের শিরোনাম লিখুন!", field="title")
        events = await self._events()
        events.require(event_id)
        if changes:
            await events.update(event_id, changes)
        return events.require(event_id)

    async def delete_event(self, event_id: str) -> None:
        await (await self._events()).remove(event_id)
        logger.info("calendar.deleted id=%s", event_id)
