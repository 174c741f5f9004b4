from __future__ import annotations

import asyncio
import threading

import pytest

from conftest import FakeSource
from news_reader.coordinator import QueryCoordinator, normalize_query
from news_reader.paging import PagingData
from news_reader.repository import NewsRepository


def _coordinator(store, source=None, **kwargs):
    repo = NewsRepository(source or FakeSource(), store)
    return QueryCoordinator(repo, **kwargs)


def test_normalize_query():
    assert normalize_query(None) is None
    assert normalize_query("   ") is None
    assert normalize_query(" bitcoin ") == "bitcoin"


@pytest.mark.asyncio
async def test_debounce_forwards_only_last_value(store):
    coordinator = _coordinator(store, debounce=0.4)
    loop = asyncio.get_running_loop()
    forwarded = []
    coordinator.queries.subscribe(lambda q: forwarded.append((q, loop.time())))

    start = loop.time()
    coordinator.set_query("b")
    await asyncio.sleep(0.1)
    coordinator.set_query("bi")
    await asyncio.sleep(0.05)
    coordinator.set_query("bit")
    await asyncio.sleep(0.3)
    assert forwarded == []

    await asyncio.sleep(0.3)
    assert [q for q, _ in forwarded] == ["bit"]
    elapsed = forwarded[0][1] - start
    assert 0.5 <= elapsed < 0.7


@pytest.mark.asyncio
async def test_same_text_twice_switches_once(store):
    source = FakeSource()
    coordinator = _coordinator(store, source=source, debounce=0.05)
    snapshots = []
    coordinator.articles.subscribe(snapshots.append)
    await coordinator.pager.wait_until_idle()
    switches = []
    coordinator.queries.subscribe(switches.append)

    coordinator.set_query("bitcoin")
    await asyncio.sleep(0.1)
    first = coordinator.pager
    coordinator.set_query("bitcoin ")
    await asyncio.sleep(0.1)

    assert switches == [None, "bitcoin"]
    assert coordinator.pager is first
    await first.wait_until_idle()
    assert [c for c in source.calls if c[0] == "bitcoin"] == [("bitcoin", 1, 20)]
    coordinator.close()


@pytest.mark.asyncio
async def test_first_subscription_starts_headlines(store):
    source = FakeSource()
    coordinator = _coordinator(store, source=source)
    assert coordinator.pager is None

    snapshots = []
    coordinator.articles.subscribe(snapshots.append)
    await coordinator.pager.wait_until_idle()

    assert coordinator.pager.source.is_headlines
    assert len(snapshots[-1].articles) == 20
    assert source.calls == [(None, 1, 20)]
    coordinator.close()


@pytest.mark.asyncio
async def test_initial_query_selects_search(store):
    source = FakeSource()
    coordinator = _coordinator(store, source=source, initial_query="bitcoin")
    coordinator.articles.subscribe(lambda _: None)
    await coordinator.pager.wait_until_idle()

    assert coordinator.query == "bitcoin"
    assert source.calls == [("bitcoin", 1, 20)]
    coordinator.close()


@pytest.mark.asyncio
async def test_switch_resets_and_discards_superseded_results(store):
    source = FakeSource()
    gate = threading.Event()
    source.gates[1] = gate
    coordinator = _coordinator(store, source=source, debounce=0.01)
    snapshots = []
    coordinator.articles.subscribe(snapshots.append)
    old = coordinator.pager
    await asyncio.sleep(0.05)

    # The headlines page is stuck; switch to search meanwhile.
    del source.gates[1]
    coordinator.set_query("bitcoin")
    await asyncio.sleep(0.05)
    new = coordinator.pager
    assert new is not old
    assert old.closed
    await new.wait_until_idle()

    gate.set()
    await asyncio.sleep(0.1)

    final = coordinator.articles.value
    assert len(final.articles) == 20
    assert all("bitcoin" in a.url for a in final.articles)
    # Observers saw a reset between the engines.
    assert snapshots.count(PagingData()) >= 3
    coordinator.close()


@pytest.mark.asyncio
async def test_shared_feed_survives_quick_resubscribe(store):
    source = FakeSource()
    coordinator = _coordinator(store, source=source, grace=0.2)
    first = coordinator.articles.subscribe(lambda _: None)
    await coordinator.pager.wait_until_idle()
    pager = coordinator.pager

    first.cancel()
    await asyncio.sleep(0.05)
    seen = []
    coordinator.articles.subscribe(seen.append)

    assert coordinator.pager is pager
    assert len(seen[0].articles) == 20
    assert len(source.calls) == 1
    coordinator.close()


@pytest.mark.asyncio
async def test_engine_closed_after_grace_without_observers(store):
    coordinator = _coordinator(store, grace=0.05)
    subscription = coordinator.articles.subscribe(lambda _: None)
    pager = coordinator.pager
    await pager.wait_until_idle()

    subscription.cancel()
    await asyncio.sleep(0.1)

    assert pager.closed
    assert coordinator.pager is None


@pytest.mark.asyncio
async def test_retry_forwards_to_active_pager(store):
    source = FakeSource()
    source.failures[1] = RuntimeError("offline")
    coordinator = _coordinator(store, source=source)
    coordinator.articles.subscribe(lambda _: None)
    await coordinator.pager.wait_until_idle()
    assert coordinator.articles.value.errors

    del source.failures[1]
    coordinator.retry()
    await coordinator.pager.wait_until_idle()
    assert not coordinator.articles.value.errors
    assert len(coordinator.articles.value.articles) == 20
    coordinator.close()
