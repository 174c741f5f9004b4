from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Set

from .datamodels import Article
from .feed import Feed
from .paging import NewsPagingSource, Pager, PagingConfig
from .sources.base import Source
from .store import BookmarkStore

logger = logging.getLogger("news")


class NewsRepository:
    """Remote pages and local bookmarks behind one interface.

    Store calls run in worker threads; the bookmarks feed is republished on the
    event loop after every write made through the repository.
    """

    def __init__(
        self,
        source: Source,
        store: BookmarkStore,
        paging_config: Optional[PagingConfig] = None,
    ):
        self.source = source
        self.store = store
        self.paging_config = paging_config or PagingConfig()
        self._bookmarks: Feed[List[Article]] = Feed()
        self._bookmarks_requested = False
        self._publish_lock = asyncio.Lock()
        self._background: Set[asyncio.Task] = set()

    def get_headlines_stream(self) -> Pager:
        return Pager(
            NewsPagingSource(self.source, query=None, max_page_size=self.paging_config.max_page_size),
            self.paging_config,
        )

    def search_articles_stream(self, query: str) -> Pager:
        return Pager(
            NewsPagingSource(self.source, query=query, max_page_size=self.paging_config.max_page_size),
            self.paging_config,
        )

    async def bookmark_article(self, article: Article) -> None:
        await asyncio.to_thread(self.store.upsert, article)
        await self._publish_bookmarks()

    async def remove_bookmark(self, url: str) -> None:
        await asyncio.to_thread(self.store.delete_by_url, url)
        await self._publish_bookmarks()

    async def is_bookmarked(self, url: str) -> bool:
        return await asyncio.to_thread(self.store.is_bookmarked, url)

    def get_bookmarks(self) -> Feed[List[Article]]:
        """Live bookmarks, newest publish date first."""
        if not self._bookmarks_requested:
            self._bookmarks_requested = True
            task = asyncio.get_running_loop().create_task(self._publish_bookmarks())
            self._background.add(task)
            task.add_done_callback(self._background_done)
        return self._bookmarks

    def _background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            self._bookmarks_requested = False
            logger.error("Loading bookmarks failed: %s", task.exception())

    async def _publish_bookmarks(self) -> None:
        # Reads are serialised so an older list never overwrites a newer one.
        async with self._publish_lock:
            articles = await asyncio.to_thread(self.store.get_all)
            self._bookmarks.emit(articles)
        logger.debug("Published %d bookmarks", len(articles))
