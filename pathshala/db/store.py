"""Store contract consumed by the collection bindings, and its Supabase implementation."""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence

from postgrest.exceptions import APIError

from pathshala.common.errors import StoreError

logger = logging.getLogger("store")

ChangeCallback = Callable[[], None]

_OPERATORS = {"eq", "neq", "gt", "gte", "lt", "lte", "like", "ilike", "is", "in"}
_PERMISSION_CODES = {"42501", "PGRST301", "PGRST302", "401", "403"}


@dataclass(frozen=True)
class Filter:
    """A server-side predicate ``(field, operator, value)``."""

    field: str
    operator: str
    value: Any

    def __post_init__(self) -> None:
        if self.operator not in _OPERATORS:
            raise ValueError(f"Unsupported filter operator: {self.operator}")

    def key(self) -> tuple:
        value = tuple(self.value) if isinstance(self.value, (list, tuple, set)) else self.value
        return (self.field, self.operator, value)


class Subscription(Protocol):
    async def close(self) -> None: ...


class RecordStore(Protocol):
    async def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        order: Optional[str] = None,
        ascending: bool = True,
    ) -> List[Dict[str, Any]]: ...

    async def insert(self, table: str, record: Dict[str, Any]) -> Dict[str, Any]: ...

    async def update(self, table: str, record_id: str, partial: Dict[str, Any]) -> None: ...

    async def delete(self, table: str, record_id: str) -> None: ...

    async def watch(self, table: str, on_change: ChangeCallback) -> Subscription: ...


def translate_error(exc: BaseException, table: Optional[str] = None) -> StoreError:
    """Map a client/transport exception onto the store taxonomy."""
    if isinstance(exc, StoreError):
        return exc
    if isinstance(exc, asyncio.TimeoutError):
        return StoreError("সার্ভার সাড়া দিচ্ছে না!", kind="transient", table=table)
    if isinstance(exc, APIError):
        code = str(getattr(exc, "code", "") or "")
        message = getattr(exc, "message", None) or str(exc)
        if code in _PERMISSION_CODES or "permission denied" in str(message).lower():
            return StoreError("এই কাজের অনুমতি নেই।", kind="permission_denied", table=table)
        logger.warning("store.api_error table=%s code=%s message=%s", table, code, message)
        return StoreError(kind="transient", table=table)
    return StoreError(kind="transient", table=table)


class _ChannelSubscription:
    def __init__(self, client: Any, channel: Any) -> None:
        self._client = client
        self._channel = channel

    async def close(self) -> None:
        if self._channel is None:
            return
        channel, self._channel = self._channel, None
        try:
            await self._client.remove_channel(channel)
        except Exception as exc:  # noqa: BLE001
            logger.warning("store.channel_close_failed error=%s", exc)


class _NullSubscription:
    async def close(self) -> None:
        return None


class SupabaseStore:
    """``RecordStore`` backed by the async Supabase client.

    ``client_factory`` is awaited lazily so importing this module never opens
    a connection.
    """

    def __init__(
        self,
        client_factory: Callable[[], Awaitable[Any]],
        *,
        timeout: float = 5.0,
        schema: str = "public",
    ) -> None:
        self._client_factory = client_factory
        self._timeout = timeout
        self._schema = schema

    async def _client(self) -> Any:
        return await self._client_factory()

    async def _run(self, table: str, op: str, builder: Any) -> Any:
        t0 = time.perf_counter()
        try:
            resp = await asyncio.wait_for(builder.execute(), timeout=self._timeout)
        except Exception as exc:
            raise translate_error(exc, table) from exc
        ms = int((time.perf_counter() - t0) * 1000)
        if ms > 50:
            logger.info("supabase_%s.%s_ms=%d", table, op, ms)
        return resp

    async def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        order: Optional[str] = None,
        ascending: bool = True,
    ) -> List[Dict[str, Any]]:
        client = await self._client()
        query = client.table(table).select("*")
        for f in filters:
            if f.operator == "in":
                query = query.in_(f.field, list(f.value))
            else:
                query = query.filter(f.field, f.operator, f.value)
        if order:
            query = query.order(order, desc=not ascending)
        resp = await self._run(table, "select", query)
        return list(getattr(resp, "data", None) or [])

    async def insert(self, table: str, record: Dict[str, Any]) -> Dict[str, Any]:
        client = await self._client()
        resp = await self._run(table, "insert", client.table(table).insert(record))
        data = getattr(resp, "data", None) or []
        if not data:
            raise StoreError(kind="transient", table=table)
        return data[0]

    async def update(self, table: str, record_id: str, partial: Dict[str, Any]) -> None:
        client = await self._client()
        await self._run(table, "update", client.table(table).update(partial).eq("id", record_id))

    async def delete(self, table: str, record_id: str) -> None:
        client = await self._client()
        await self._run(table, "delete", client.table(table).delete().eq("id", record_id))

    async def watch(self, table: str, on_change: ChangeCallback) -> Subscription:
        client = await self._client()

        def _on_postgres_change(_payload: Dict[str, Any]) -> None:
            on_change()

        try:
            channel = client.channel(f"{table}_changes")
            channel.on_postgres_changes("*", schema=self._schema, table=table, callback=_on_postgres_change)
            result = channel.subscribe()
            if inspect.isawaitable(result):
                await result
        except Exception as exc:  # noqa: BLE001
            # Bindings still refresh after their own writes and on the poll timer
            logger.warning("store.realtime_unavailable table=%s error=%s", table, exc)
            return _NullSubscription()
        return _ChannelSubscription(client, channel)


__all__ = ["Filter", "RecordStore", "Subscription", "SupabaseStore", "translate_error"]
