from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Type

from pathshala.common import views
from pathshala.db.binding import BindingRegistry, CollectionBinding
from pathshala.db.records import Event, Post, Record, Topic, UserProfile, Video

from .schemas import DashboardStats

logger = logging.getLogger("dashboard.service")

TILES: Dict[str, Type[Record]] = {
    "users": UserProfile,
    "videos": Video,
    "topics": Topic,
    "posts": Post,
    "events": Event,
}
TOP_USERS = 10


class DashboardService:
    def __init__(self, registry: BindingRegistry, *, wait_seconds: float = 2.0) -> None:
        self.registry = registry
        self.wait_seconds = wait_seconds

    async def _binding(self, schema: Type[Record]) -> Optional[CollectionBinding[Any]]:
        # A slow collection shows as loading; its binding keeps resolving in the background
        try:
            return await asyncio.wait_for(asyncio.shield(self.registry.bind(schema)), timeout=self.wait_seconds)
        except asyncio.TimeoutError:
            logger.info("dashboard.tile_loading table=%s", schema.table)
            return None

    async def stats(self) -> DashboardStats:
        names = list(TILES)
        resolved = await asyncio.gather(*(self._binding(TILES[name]) for name in names))
        bindings = dict(zip(names, resolved))
        counts = views.aggregate_counts(bindings)
        profiles = bindings["users"]
        return DashboardStats(
            counts={name: None if value is views.LOADING else value for name, value in counts.items()},
            loading=[name for name, value in counts.items() if value is views.LOADING],
            errors={name: b.error for name, b in bindings.items() if b is not None and b.error},
            top_users=views.top(profiles.records, "points", TOP_USERS) if profiles is not None else [],
        )
