from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel

from pathshala.db.records import UserProfile


class ProfileUpdate(BaseModel):
    display_name: Optional[str] = None
    avatar: Optional[str] = None
    bio: Optional[str] = None


class LeaderboardEntry(BaseModel):
    rank: int
    profile: UserProfile


class Leaderboard(BaseModel):
    entries: List[LeaderboardEntry]
    my_rank: Optional[int] = None
