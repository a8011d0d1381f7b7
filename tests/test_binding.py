import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from fakestore import FakeStore
from pathshala.common.errors import NotFound, SchemaError, StoreError
from pathshala.db.binding import BindingRegistry, CollectionBinding, bind
from pathshala.db.records import Event, Topic
from pathshala.db.store import Filter

pytestmark = pytest.mark.anyio("asyncio")


async def _settle():
    for _ in range(5):
        await asyncio.sleep(0)


async def test_binding_starts_loading_then_resolves():
    store = FakeStore({"topics": [{"id": "t2", "name": "খ", "order": 1}, {"id": "t1", "name": "ক", "order": 0}]})
    binding = CollectionBinding(store, Topic, order="order")
    assert binding.loading is True
    assert binding.records == []
    await binding.start()
    assert binding.loading is False
    assert binding.error is None
    assert [t.id for t in binding.records] == ["t1", "t2"]
    await binding.close()


async def test_add_sets_created_at_and_returns_id():
    store = FakeStore()
    async with CollectionBinding(store, Topic, order="order") as topics:
        new_id = await topics.add({"name": "পাইথন", "order": 0})
        assert new_id
        row = store.rows("topics")[0]
        assert row["created_at"]
        assert topics.require(new_id).created_at is not None


async def test_failed_refresh_keeps_stale_records():
    store = FakeStore({"topics": [{"id": "t1", "name": "ক"}]})
    binding = await bind(store, Topic)
    store.fail("topics", "select", TimeoutError())
    records = await binding.refresh()
    assert [t.id for t in records] == ["t1"]
    assert binding.error
    assert binding.last_error.kind == "transient"
    await binding.refresh()
    assert binding.error is None
    await binding.close()


async def test_initial_failure_sets_error_and_finishes_loading():
    store = FakeStore()
    store.fail("topics", "select", StoreError(kind="permission_denied"))
    binding = await bind(store, Topic)
    assert binding.loading is False
    assert binding.records == []
    assert binding.last_error.kind == "permission_denied"
    await binding.close()


async def test_refresh_can_raise():
    store = FakeStore()
    binding = await bind(store, Topic)
    store.fail("topics", "select", StoreError(kind="transient"))
    with pytest.raises(StoreError):
        await binding.refresh(raise_errors=True)
    await binding.close()


async def test_malformed_row_is_a_schema_error():
    store = FakeStore({"topics": [{"id": "t1"}]})
    binding = await bind(store, Topic)
    assert isinstance(binding.last_error, SchemaError)
    await binding.close()


async def test_external_change_triggers_refresh_and_notifies():
    store = FakeStore()
    binding = await bind(store, Topic)
    seen = []
    handle = binding.subscribe(lambda b: seen.append(len(b.records)))

    await store.insert("topics", {"id": "t9", "name": "বাইরে থেকে"})
    await _settle()
    assert [t.id for t in binding.records] == ["t9"]
    assert seen and seen[-1] == 1

    handle.dispose()
    handle.dispose()
    assert handle.disposed
    count = len(seen)
    await store.insert("topics", {"id": "t10", "name": "আরও"})
    await _settle()
    assert len(seen) == count
    await binding.close()


async def test_close_releases_subscription():
    store = FakeStore()
    binding = await bind(store, Topic)
    assert len(store.watchers["topics"]) == 1
    await binding.close()
    await binding.close()
    assert store.watchers["topics"] == []
    assert binding.closed


async def test_write_failures_surface_as_store_errors():
    store = FakeStore({"topics": [{"id": "t1", "name": "ক"}]})
    binding = await bind(store, Topic)
    store.fail("topics", "update", StoreError(kind="permission_denied"))
    with pytest.raises(StoreError) as info:
        await binding.update("t1", {"name": "খ"})
    assert info.value.kind == "permission_denied"
    assert binding.records[0].name == "ক"
    with pytest.raises(NotFound):
        binding.require("missing")
    await binding.close()


async def test_filtered_binding_and_remove():
    store = FakeStore(
        {"topics": [{"id": "t1", "name": "ক", "order": 0}, {"id": "t2", "name": "খ", "order": 1}]}
    )
    binding = await bind(store, Topic, filters=[Filter("order", "gte", 1)])
    assert [t.id for t in binding.records] == ["t2"]
    await binding.remove("t2")
    assert binding.records == []
    await binding.close()


async def test_registry_coalesces_identical_bindings():
    store = FakeStore()
    registry = BindingRegistry(store)
    first = await registry.bind(Topic, order="order")
    second = await registry.bind(Topic, order="order")
    other = await registry.bind(Topic, order="name")
    assert first is second
    assert other is not first
    assert len(registry) == 2
    await registry.close()
    assert first.closed and other.closed


def test_filter_rejects_unknown_operator():
    with pytest.raises(ValueError):
        Filter("name", "contains", "x")


async def test_registry_reloads_a_binding_whose_load_failed():
    store = FakeStore({"topics": [{"id": "t1", "name": "ক"}]})
    registry = BindingRegistry(store)
    store.fail("topics", "select", StoreError(kind="transient"))
    first = await registry.bind(Topic)
    assert first.error
    assert first.records == []
    second = await registry.bind(Topic)
    assert second is first
    assert second.error is None
    assert [t.id for t in second.records] == ["t1"]
    await registry.close()


async def test_event_date_keeps_its_instant_through_add_and_update():
    store = FakeStore()
    dhaka = timezone(timedelta(hours=6))
    async with CollectionBinding(store, Event, order="date") as events:
        when = datetime(2024, 5, 1, 0, 0, tzinfo=dhaka)
        event_id = await events.add({"title": "লাইভ ক্লাস", "date": when})
        assert isinstance(store.rows("events")[0]["date"], str)
        stored = events.require(event_id).date
        assert stored == when
        assert stored.utcoffset() is not None

        later = datetime(2024, 5, 2, 20, 30, tzinfo=dhaka)
        await events.update(event_id, {"date": later})
        assert events.require(event_id).date == later
        assert events.require(event_id).date == datetime(2024, 5, 2, 14, 30, tzinfo=timezone.utc)
