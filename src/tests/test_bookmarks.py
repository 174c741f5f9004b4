from __future__ import annotations

import asyncio

import pytest

from conftest import FakeSource, make_article
from news_reader.bookmarks import BookmarkEvent, BookmarkJoin
from news_reader.coordinator import QueryCoordinator
from news_reader.errors import PersistenceError
from news_reader.repository import NewsRepository


def _join(store, source=None, grace=0.05):
    repo = NewsRepository(source or FakeSource(), store)
    coordinator = QueryCoordinator(repo, grace=grace)
    return repo, coordinator, BookmarkJoin(repo, coordinator.articles, grace=grace)


@pytest.mark.asyncio
async def test_bookmark_then_remove(store):
    repo, _, _ = _join(store)
    article = make_article(1, url="https://x/1")
    lists = []
    repo.get_bookmarks().subscribe(lists.append)

    await repo.bookmark_article(article)
    assert [a.url for a in lists[-1]] == ["https://x/1"]
    assert lists[-1][0] == article
    assert await repo.is_bookmarked("https://x/1")

    await repo.remove_bookmark("https://x/1")
    assert lists[-1] == []
    assert not await repo.is_bookmarked("https://x/1")


@pytest.mark.asyncio
async def test_toggle_twice_restores_state(store):
    _, _, join = _join(store)
    article = make_article(1)
    messages = []
    join.notifications.subscribe(messages.append)

    assert await join.toggle_bookmark(article) is BookmarkEvent.ADDED
    assert store.is_bookmarked(article.url)
    assert await join.toggle_bookmark(article) is BookmarkEvent.REMOVED
    assert not store.is_bookmarked(article.url)
    assert messages == [None, "Bookmarked", "Removed from bookmarks"]

    join.clear_notification()
    assert join.notifications.value is None


@pytest.mark.asyncio
async def test_concurrent_toggles_of_different_articles(store):
    _, _, join = _join(store)
    articles = [make_article(i) for i in range(10)]

    events = await asyncio.gather(*(join.toggle_bookmark(a) for a in articles))

    assert set(events) == {BookmarkEvent.ADDED}
    assert store.count() == 10


@pytest.mark.asyncio
async def test_bookmarked_urls_follow_the_store(store):
    repo, _, join = _join(store)
    seen = []
    join.bookmarked_urls.subscribe(seen.append)
    await asyncio.sleep(0.05)
    assert seen[-1] == frozenset()

    await join.toggle_bookmark(make_article(1, url="https://x/1"))
    assert seen[-1] == frozenset({"https://x/1"})

    await repo.remove_bookmark("https://x/1")
    assert seen[-1] == frozenset()


@pytest.mark.asyncio
async def test_bookmarks_list_is_ordered_by_date(store):
    _, _, join = _join(store)
    lists = []
    join.bookmarks.subscribe(lists.append)

    await join.toggle_bookmark(make_article(1, published_at="2024-01-01"))
    await join.toggle_bookmark(make_article(2, published_at="2024-06-01"))

    assert [a.published_at for a in lists[-1]] == ["2024-06-01", "2024-01-01"]


@pytest.mark.asyncio
async def test_annotated_articles_mark_bookmarks(store):
    source = FakeSource()
    _, coordinator, join = _join(store, source=source)
    feeds = []
    join.annotated_articles.subscribe(feeds.append)
    await coordinator.pager.wait_until_idle()
    await asyncio.sleep(0.02)

    items = feeds[-1].items
    assert len(items) == 20
    assert not any(i.bookmarked for i in items)

    await join.toggle_bookmark(items[3].article)
    items = feeds[-1].items
    assert [i.bookmarked for i in items].count(True) == 1
    assert items[3].bookmarked
    coordinator.close()


@pytest.mark.asyncio
async def test_bookmark_feeds_survive_quick_resubscribe(store):
    repo, _, join = _join(store, grace=0.2)
    subscription = join.bookmarked_urls.subscribe(lambda _: None)
    await asyncio.sleep(0.02)
    subscription.cancel()

    await asyncio.sleep(0.05)
    assert join.bookmarked_urls.active
    await asyncio.sleep(0.25)
    assert not join.bookmarked_urls.active


@pytest.mark.asyncio
async def test_toggle_surfaces_persistence_errors(store, monkeypatch):
    _, _, join = _join(store)

    def broken(article):
        raise PersistenceError("disk full")

    monkeypatch.setattr(store, "upsert", broken)
    with pytest.raises(PersistenceError):
        await join.toggle_bookmark(make_article(1))
    assert join.notifications.value is None
