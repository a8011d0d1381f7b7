"""Live collection bindings.

A ``CollectionBinding`` mirrors one remote table (optionally filtered and
ordered server-side) as a list of validated records. It re-resolves the whole
list whenever the store reports a change, after each of its own writes, and on
an optional poll timer. Failures never blank the list: ``error`` is set and the
previous ``records`` stay available.

Typical use::

    topics = await bind(store, Topic, order="order")
    topics.records          # [Topic, ...]
    await topics.add({"name": "পাইথন", "order": 0})
    await topics.close()
"""

from __future__ import annotations

import asyncio
import logging
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Type,
    TypeVar,
)

from pydantic import ValidationError as PydanticValidationError

from pathshala.common.errors import NotFound, SchemaError, StoreError
from pathshala.common.utils import current_timestamp
from pathshala.db.codec import decode_dates, encode_dates
from pathshala.db.records import Record
from pathshala.db.store import Filter, RecordStore, Subscription, translate_error

logger = logging.getLogger("bindings")

R = TypeVar("R", bound=Record)
Listener = Callable[["CollectionBinding[Any]"], None]


class Disposable:
    """Handle returned by ``subscribe``; ``dispose()`` is idempotent."""

    def __init__(self, fn: Callable[[], None]) -> None:
        self._fn: Optional[Callable[[], None]] = fn

    @property
    def disposed(self) -> bool:
        return self._fn is None

    def dispose(self) -> None:
        fn, self._fn = self._fn, None
        if fn is not None:
            fn()


class CollectionBinding(Generic[R]):
    def __init__(
        self,
        store: RecordStore,
        schema: Type[R],
        *,
        order: Optional[str] = None,
        ascending: bool = True,
        filters: Sequence[Filter] = (),
        poll_seconds: float = 0.0,
    ) -> None:
        self.store = store
        self.schema = schema
        self.table = schema.table
        self.order = order
        self.ascending = ascending
        self.filters: Tuple[Filter, ...] = tuple(filters)
        self.poll_seconds = poll_seconds

        self.records: List[R] = []
        self.loading: bool = True
        self.error: Optional[str] = None
        self.last_error: Optional[StoreError] = None

        self._listeners: List[Listener] = []
        self._subscription: Optional[Subscription] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._refresh_task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._loaded = asyncio.Event()
        self._dirty = False
        self._started = False
        self._closed = False

    def __repr__(self) -> str:
        return f"<CollectionBinding table={self.table} records={len(self.records)} loading={self.loading}>"

    # ---- lifecycle -----------------------------------------------------------

    async def start(self) -> "CollectionBinding[R]":
        if self._started:
            return self
        self._started = True
        self._loop = asyncio.get_running_loop()
        await self.refresh()
        self._subscription = await self.store.watch(self.table, self._on_change)
        if self.poll_seconds > 0:
            self._poll_task = self._loop.create_task(self._poll_loop())
        return self

    async def ready(self) -> "CollectionBinding[R]":
        if not self._started:
            await self.start()
        await self._loaded.wait()
        return self

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for task in (self._poll_task, self._refresh_task):
            if task is not None and not task.done():
                task.cancel()
        self._poll_task = None
        self._refresh_task = None
        if self._subscription is not None:
            subscription, self._subscription = self._subscription, None
            await subscription.close()
        self._listeners.clear()
        logger.debug("binding.closed table=%s", self.table)

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> "CollectionBinding[R]":
        return await self.start()

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ---- reactive feed -------------------------------------------------------

    def subscribe(self, listener: Listener) -> Disposable:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return Disposable(_remove)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:  # noqa: BLE001
                logger.exception("binding.listener_failed table=%s", self.table)

    def _on_change(self) -> None:
        """Store change callback; may arrive from the realtime thread."""
        if self._closed or self._loop is None:
            return
        self._loop.call_soon_threadsafe(self._schedule_refresh)

    def _schedule_refresh(self) -> None:
        if self._closed:
            return
        self._dirty = True
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        # One fetch in flight; changes arriving meanwhile collapse into one more
        while self._dirty and not self._closed:
            self._dirty = False
            await self.refresh()

    async def _poll_loop(self) -> None:
        while not self._closed:
            await asyncio.sleep(self.poll_seconds)
            self._schedule_refresh()

    # ---- reads ---------------------------------------------------------------

    def _decode(self, row: Mapping[str, Any]) -> R:
        try:
            return self.schema.model_validate(decode_dates(row, self.schema.date_fields()))
        except PydanticValidationError as exc:
            raise SchemaError(table=self.table) from exc

    def _fail(self, exc: StoreError) -> None:
        self.error = exc.message
        self.last_error = exc

    async def refresh(self, *, raise_errors: bool = False) -> List[R]:
        try:
            rows = await self.store.select(self.table, self.filters, self.order, self.ascending)
            records = [self._decode(row) for row in rows]
        except Exception as exc:  # noqa: BLE001
            err = translate_error(exc, self.table)
            self._fail(err)
            self.loading = False
            self._loaded.set()
            logger.warning("binding.refresh_failed table=%s kind=%s error=%s", self.table, err.kind, exc)
            self._notify()
            if raise_errors:
                if err is exc:
                    raise
                raise err from exc
            return self.records
        self.records = records
        self.error = None
        self.last_error = None
        self.loading = False
        self._loaded.set()
        self._notify()
        return records

    def get(self, record_id: str) -> Optional[R]:
        for record in self.records:
            if record.id == record_id:
                return record
        return None

    def find(self, predicate: Callable[[R], bool]) -> Optional[R]:
        return next((r for r in self.records if predicate(r)), None)

    def where(self, predicate: Callable[[R], bool]) -> List[R]:
        return [r for r in self.records if predicate(r)]

    # ---- writes --------------------------------------------------------------

    async def _mutate(self, op: str, call: Callable[[], Any]) -> Any:
        try:
            return await call()
        except Exception as exc:
            err = translate_error(exc, self.table)
            self._fail(err)
            logger.warning("binding.%s_failed table=%s kind=%s error=%s", op, self.table, err.kind, exc)
            if err is exc:
                raise
            raise err from exc

    async def add(self, data: Mapping[str, Any]) -> str:
        payload: Dict[str, Any] = dict(data)
        if payload.get("created_at") is None:
            payload["created_at"] = current_timestamp()
        encoded = encode_dates(payload)
        row = await self._mutate("add", lambda: self.store.insert(self.table, encoded))
        new_id = str(row.get("id")) if row.get("id") is not None else str(payload.get("id", ""))
        await self.refresh()
        return new_id

    async def create(self, data: Mapping[str, Any]) -> R:
        """``add`` and return the stored record as seen by this binding."""
        new_id = await self.add(data)
        return self.require(new_id)

    def require(self, record_id: str) -> R:
        record = self.get(record_id)
        if record is None:
            raise NotFound(table=self.table)
        return record

    async def update(self, record_id: str, partial: Mapping[str, Any]) -> None:
        encoded = encode_dates(dict(partial))
        await self._mutate("update", lambda: self.store.update(self.table, record_id, encoded))
        await self.refresh()

    async def remove(self, record_id: str) -> None:
        await self._mutate("remove", lambda: self.store.delete(self.table, record_id))
        await self.refresh()


async def bind(
    store: RecordStore,
    schema: Type[R],
    order: Optional[str] = None,
    filters: Sequence[Filter] = (),
    ascending: bool = True,
    *,
    poll_seconds: float = 0.0,
) -> CollectionBinding[R]:
    """Create and start a binding; the first resolution has completed on return."""
    binding: CollectionBinding[R] = CollectionBinding(
        store, schema, order=order, ascending=ascending, filters=filters, poll_seconds=poll_seconds
    )
    return await binding.start()


class BindingRegistry:
    """Coalesces bindings by ``(table, order, direction, filters)``."""

    def __init__(self, store: RecordStore, *, poll_seconds: float = 0.0) -> None:
        self.store = store
        self.poll_seconds = poll_seconds
        self._bindings: Dict[tuple, CollectionBinding[Any]] = {}
        self._lock = asyncio.Lock()

    async def bind(
        self,
        schema: Type[R],
        *,
        order: Optional[str] = None,
        ascending: bool = True,
        filters: Sequence[Filter] = (),
    ) -> CollectionBinding[R]:
        key = (schema.table, order, ascending, tuple(f.key() for f in filters))
        binding = self._bindings.get(key)
        if binding is not None and not binding.closed:
            await binding.ready()
            if binding.error is not None:
                # last load failed; retry before serving it again
                await binding.refresh()
            return binding
        async with self._lock:
            binding = self._bindings.get(key)
            if binding is None or binding.closed:
                binding = CollectionBinding(
                    self.store,
                    schema,
                    order=order,
                    ascending=ascending,
                    filters=filters,
                    poll_seconds=self.poll_seconds,
                )
                self._bindings[key] = binding
                await binding.start()
        return await binding.ready()

    def __len__(self) -> int:
        return len(self._bindings)

    async def close(self) -> None:
        bindings = list(self._bindings.values())
        self._bindings.clear()
        for binding in bindings:
            await binding.close()


__all__ = ["BindingRegistry", "CollectionBinding", "Disposable", "bind"]
