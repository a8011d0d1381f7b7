"""Profiles, point awards and the leaderboard."""

from __future__ import annotations

import logging
from typing import List, Optional

from pathshala.common import views
from pathshala.common.errors import ValidationError
from pathshala.common.utils import KeyedLocks, current_timestamp, display_name_for
from pathshala.db.binding import BindingRegistry, CollectionBinding
from pathshala.db.records import UserProfile

from .schemas import Leaderboard, LeaderboardEntry, ProfileUpdate

logger = logging.getLogger("profiles.service")

_award_locks = KeyedLocks()


class ProfileService:
    def __init__(self, registry: BindingRegistry) -> None:
        self.registry = registry

    async def _profiles(self) -> CollectionBinding[UserProfile]:
        return await self.registry.bind(UserProfile)

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        profiles = await self._profiles()
        return profiles.find(lambda p: p.user_id == user_id)

    async def ensure_profile(self, user_id: str, email: Optional[str]) -> UserProfile:
        profiles = await self._profiles()
        existing = profiles.find(lambda p: p.user_id == user_id)
        if existing is not None:
            return existing
        # Not cached; confirm against the store before inserting
        await profiles.refresh(raise_errors=True)
        existing = profiles.find(lambda p: p.user_id == user_id)
        if existing is not None:
            return existing
        now = current_timestamp()
        profile = await profiles.create(
            {
                "user_id": user_id,
                "display_name": display_name_for(email),
                "points": 0,
                "completed_videos": 0,
                "joined_at": now,
                "updated_at": now,
            }
        )
        logger.info("profiles.created user_id=%s", user_id)
        return profile

    async def upsert_profile(self, user_id: str, email: Optional[str], payload: ProfileUpdate) -> UserProfile:
        changes = payload.model_dump(exclude_unset=True)
        if "display_name" in changes:
            name = (changes["display_name"] or "").strip()
            if not name:
                raise ValidationError("নাম লিখুন!", field="display_name")
            changes["display_name"] = name
        profile = await self.ensure_profile(user_id, email)
        if changes:
            # points and completed_videos are never taken from the form
            changes["updated_at"] = current_timestamp()
            profiles = await self._profiles()
            await profiles.update(profile.id, changes)
            profile = profiles.require(profile.id)
        return profile

    async def award(self, user_id: str, email: Optional[str], points: int, completed_videos: int = 1) -> UserProfile:
        # One award per user at a time
        async with _award_locks.hold(user_id):
            profile = await self.ensure_profile(user_id, email)
            profiles = await self._profiles()
            await profiles.update(
                profile.id,
                {
                    "points": profile.points + points,
                    "completed_videos": profile.completed_videos + completed_videos,
                    "updated_at": current_timestamp(),
                },
            )
            logger.info("profiles.awarded user_id=%s points=%d videos=%d", user_id, points, completed_videos)
            return profiles.require(profile.id)

    async def leaderboard(self, user_id: Optional[str] = None, limit: Optional[int] = None) -> Leaderboard:
        profiles = await self._profiles()
        ranked = views.rank(profiles.records, "points")
        my_rank = next((r.rank for r in ranked if r.record.user_id == user_id), None) if user_id else None
        if limit is not None:
            ranked = ranked[:limit]
        return Leaderboard(
            entries=[LeaderboardEntry(rank=r.rank, profile=r.record) for r in ranked],
            my_rank=my_rank,
        )

    async def my_rank(self, user_id: str) -> Optional[int]:
        return (await self.leaderboard(user_id)).my_rank
