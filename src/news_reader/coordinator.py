"""
Query coordination.

Raw search text is debounced and de-duplicated. Every distinct effective query
replaces the active pager with a new one; observers of ``articles`` only see
a reset to an empty ``PagingData`` followed by the new pager's snapshots.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from .config import QUERY_DEBOUNCE_SECONDS, SHARE_GRACE_SECONDS
from .feed import Feed, SharedFeed, Subscription
from .paging import Pager, PagingData
from .repository import NewsRepository

logger = logging.getLogger("news")

_UNSET: Any = object()


def normalize_query(text: Optional[str]) -> Optional[str]:
    """Blank text means headlines mode, represented by None."""
    if text is None:
        return None
    text = text.strip()
    return text or None


class QueryCoordinator:
    def __init__(
        self,
        repository: NewsRepository,
        initial_query: Optional[str] = None,
        debounce: float = QUERY_DEBOUNCE_SECONDS,
        grace: float = SHARE_GRACE_SECONDS,
    ):
        self.repository = repository
        self.debounce = debounce
        self._pending: Optional[str] = initial_query
        self._forwarded: Any = _UNSET
        self._timer: Optional[asyncio.TimerHandle] = None
        self._pager: Optional[Pager] = None
        self._pager_subscription: Optional[Subscription] = None
        # Effective queries, one emission per engine switch.
        self.queries: Feed[Optional[str]] = Feed()
        self.articles: SharedFeed[PagingData] = SharedFeed(
            on_start=self._activate,
            on_stop=self._deactivate,
            grace=grace,
            initial=PagingData(),
        )

    @property
    def query(self) -> Optional[str]:
        return None if self._forwarded is _UNSET else self._forwarded

    @property
    def pager(self) -> Optional[Pager]:
        return self._pager

    def set_query(self, text: Optional[str]) -> None:
        """Record raw input; it is forwarded once input has been quiet."""
        self._pending = text
        if self._timer is not None:
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().call_later(self.debounce, self._forward)

    def _forward(self) -> None:
        self._timer = None
        query = normalize_query(self._pending)
        if self._forwarded is not _UNSET and query == self._forwarded:
            logger.debug("Query unchanged (%r), keeping current feed", query)
            return
        self._forwarded = query
        logger.debug("Forwarding query %r", query)
        self.queries.emit(query)
        if self.articles.active:
            self._switch()

    def _switch(self) -> None:
        self._close_pager()
        query = self.query
        if query is None:
            pager = self.repository.get_headlines_stream()
        else:
            pager = self.repository.search_articles_stream(query)
        logger.info("Switched feed to %s", "headlines" if query is None else repr(query))
        self._pager = pager
        self.articles.emit(PagingData())
        self._pager_subscription = pager.snapshots.subscribe(self._on_snapshot(pager))
        pager.start()

    def _on_snapshot(self, pager: Pager):
        def deliver(data: PagingData) -> None:
            # A superseded pager may still publish while it winds down.
            if pager is self._pager:
                self.articles.emit(data)
        return deliver

    def _activate(self) -> None:
        if self._forwarded is _UNSET:
            self._forwarded = normalize_query(self._pending)
            self.queries.emit(self._forwarded)
        self._switch()

    def _deactivate(self) -> None:
        logger.debug("No observers left, closing feed")
        self._close_pager()

    def _close_pager(self) -> None:
        if self._pager_subscription is not None:
            self._pager_subscription.cancel()
            self._pager_subscription = None
        if self._pager is not None:
            self._pager.close()
            self._pager = None

    def refresh(self) -> None:
        if self._pager is not None:
            self._pager.refresh()

    def retry(self) -> None:
        if self._pager is not None:
            self._pager.retry()

    def access(self, position: int) -> None:
        if self._pager is not None:
            self._pager.access(position)

    def close(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self.articles.close()
