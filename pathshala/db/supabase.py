"""Shared async Supabase client for the store, realtime feeds and storage.

The backend talks to PostgREST on behalf of every signed-in user, so the
service role key is used when configured; the anon key is the fallback for
projects whose row level security already allows the backend's writes.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from supabase import AsyncClient, create_async_client

from pathshala.core.config import get_settings

logger = logging.getLogger("supabase")

_client: Optional[AsyncClient] = None
_lock = asyncio.Lock()


async def get_supabase() -> AsyncClient:
    """Create the client on first use and hand out the same instance afterwards."""
    global _client
    if _client is not None:
        return _client
    async with _lock:
        if _client is None:
            settings = get_settings()
            if not settings.supabase_url:
                raise RuntimeError("SUPABASE_URL not configured")
            key = settings.supabase_service_role_key or settings.supabase_key
            try:
                _client = await create_async_client(settings.supabase_url, key)
            except Exception as exc:  # pragma: no cover (network/init failure)
                raise RuntimeError("Could not create Supabase async client") from exc
            logger.info(
                "supabase.client_created service_role=%s", bool(settings.supabase_service_role_key)
            )
    return _client


__all__ = ["get_supabase"]
