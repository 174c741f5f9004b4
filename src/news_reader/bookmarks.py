from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple

from .config import SHARE_GRACE_SECONDS
from .datamodels import AnnotatedArticle, Article
from .feed import Feed, SharedFeed, Subscription
from .paging import PagingData
from .repository import NewsRepository

logger = logging.getLogger("news")


class BookmarkEvent(Enum):
    ADDED = "added"
    REMOVED = "removed"


MESSAGES = {
    BookmarkEvent.ADDED: "Bookmarked",
    BookmarkEvent.REMOVED: "Removed from bookmarks",
}


@dataclass(frozen=True)
class AnnotatedFeed:
    items: Tuple[AnnotatedArticle, ...]
    paging: PagingData


class BookmarkJoin:
    """Joins the live bookmark set with the article feed."""

    def __init__(
        self,
        repository: NewsRepository,
        articles: Feed[PagingData],
        grace: float = SHARE_GRACE_SECONDS,
    ):
        self.repository = repository
        self.articles = articles
        self._toggle_lock = asyncio.Lock()
        self._store_subscription: Optional[Subscription] = None
        self._list_subscription: Optional[Subscription] = None
        self._join_subscriptions: List[Subscription] = []

        self.bookmarked_urls: SharedFeed[FrozenSet[str]] = SharedFeed(
            on_start=self._start_urls,
            on_stop=self._stop_urls,
            grace=grace,
            initial=frozenset(),
        )
        self.bookmarks: SharedFeed[List[Article]] = SharedFeed(
            on_start=self._start_list, on_stop=self._stop_list, grace=grace
        )
        self.annotated_articles: SharedFeed[AnnotatedFeed] = SharedFeed(
            on_start=self._start_join, on_stop=self._stop_join, grace=grace
        )
        self.notifications: Feed[Optional[str]] = Feed(None)

    async def toggle_bookmark(self, article: Article) -> BookmarkEvent:
        async with self._toggle_lock:
            if await self.repository.is_bookmarked(article.url):
                await self.repository.remove_bookmark(article.url)
                event = BookmarkEvent.REMOVED
            else:
                await self.repository.bookmark_article(article)
                event = BookmarkEvent.ADDED
        logger.info("Bookmark %s: %s", event.value, article.url)
        self.notifications.emit(MESSAGES[event])
        return event

    async def remove(self, url: str) -> None:
        async with self._toggle_lock:
            await self.repository.remove_bookmark(url)
        self.notifications.emit(MESSAGES[BookmarkEvent.REMOVED])

    def clear_notification(self) -> None:
        self.notifications.emit(None)

    def _start_urls(self) -> None:
        self._store_subscription = self.repository.get_bookmarks().subscribe(
            lambda items: self.bookmarked_urls.emit(frozenset(a.url for a in items))
        )

    def _stop_urls(self) -> None:
        if self._store_subscription is not None:
            self._store_subscription.cancel()
            self._store_subscription = None

    def _start_list(self) -> None:
        self._list_subscription = self.repository.get_bookmarks().subscribe(
            self.bookmarks.emit
        )

    def _stop_list(self) -> None:
        if self._list_subscription is not None:
            self._list_subscription.cancel()
            self._list_subscription = None

    def _start_join(self) -> None:
        self._join_subscriptions = [
            self.bookmarked_urls.subscribe(lambda _: self._emit_join()),
            self.articles.subscribe(lambda _: self._emit_join()),
        ]

    def _stop_join(self) -> None:
        for subscription in self._join_subscriptions:
            subscription.cancel()
        self._join_subscriptions = []

    def _emit_join(self) -> None:
        if not (self.bookmarked_urls.has_value and self.articles.has_value):
            return
        urls = self.bookmarked_urls.value
        paging = self.articles.value
        self.annotated_articles.emit(
            AnnotatedFeed(
                items=tuple(
                    AnnotatedArticle(article=a, bookmarked=a.url in urls)
                    for a in paging.articles
                ),
                paging=paging,
            )
        )
