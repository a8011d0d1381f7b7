from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel

from pathshala.db.records import UserProfile


class DashboardStats(BaseModel):
    """Tile counts; ``None`` while the collection is still loading."""

    counts: Dict[str, Optional[int]]
    loading: List[str]
    errors: Dict[str, str]
    top_users: List[UserProfile]
