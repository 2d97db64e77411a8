"""Tests for the in-memory store adapter."""

from datetime import timedelta

import pytest

from mnemo.domain.errors import ValidationError
from mnemo.domain.models import ItemFilters, LearningParameters, ReviewSession, SessionStatus
from mnemo.infrastructure.adapters import InMemoryStore


@pytest.mark.asyncio
async def test_parameters_roundtrip_is_copied(store):
    assert await store.load_parameters("user-1") is None

    params = LearningParameters()
    await store.save_parameters("user-1", params)
    params.new_cards_per_day = 1

    assert (await store.load_parameters("user-1")).new_cards_per_day == 20


@pytest.mark.asyncio
async def test_upsert_rejects_invalid_item(store, item_factory):
    with pytest.raises(ValidationError):
        await store.upsert_item_state(item_factory(front=""))


@pytest.mark.asyncio
async def test_due_ties_broken_by_id(item_factory, now):
    due_at = now - timedelta(hours=1)
    store = InMemoryStore(
        [item_factory("b", next_review_at=due_at), item_factory("a", next_review_at=due_at)]
    )

    items = await store.query_due_items("user-1", now, ItemFilters(), 10)

    assert [i.id for i in items] == ["a", "b"]


@pytest.mark.asyncio
async def test_get_items_skips_unknown_ids(item_factory):
    store = InMemoryStore([item_factory("a")])

    assert [i.id for i in await store.get_items(["a", "zzz"])] == ["a"]
    assert await store.get_item("zzz") is None
    assert await store.count_items("user-1") == 1


@pytest.mark.asyncio
async def test_review_records_newest_first(store, record_factory, now):
    old = record_factory(1, now - timedelta(days=1), id="old")
    first = record_factory(4, now, id="first")
    second = record_factory(5, now, id="second")
    for record in (old, first, second):
        await store.append_review_record(record)

    records = await store.list_review_records("user-1")
    recent = await store.list_review_records("user-1", since=now - timedelta(hours=1), limit=1)

    assert [r.id for r in records] == ["second", "first", "old"]
    assert [r.id for r in recent] == ["second"]


@pytest.mark.asyncio
async def test_session_records(store, now):
    session = ReviewSession(
        id="s1", user_id="user-1", items=(), started_at=now, item_shown_at=now
    )
    await store.create_session_record(session)

    with pytest.raises(ValueError):
        await store.create_session_record(session)

    session.status = SessionStatus.COMPLETED
    await store.update_session_record(session)

    completed = await store.list_session_records("user-1", status=SessionStatus.COMPLETED)
    assert [s.id for s in completed] == ["s1"]

    with pytest.raises(KeyError):
        await store.update_session_record(
            ReviewSession(id="s2", user_id="user-1", items=(), started_at=now, item_shown_at=now)
        )
