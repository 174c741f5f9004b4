"""
Paging engine.

``NewsPagingSource`` knows how to load one page by key. ``Pager`` drives a
source: it keeps the loaded pages, tracks a load state per edge (refresh,
prepend, append) and publishes ``PagingData`` snapshots on a ``Feed``.

One pager is bound to one mode for its whole life, headlines or a fixed
search term. A new query needs a new pager.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

from .config import INITIAL_PAGE, MAX_PAGE_SIZE, PAGE_SIZE
from .datamodels import Article, Page
from .feed import Feed
from .sources.base import Source

logger = logging.getLogger("news")

REFRESH = "refresh"
PREPEND = "prepend"
APPEND = "append"
EDGES = (REFRESH, PREPEND, APPEND)


# --- Load states ---
@dataclass(frozen=True)
class Idle:
    end_of_pagination: bool = False


@dataclass(frozen=True)
class Loading:
    pass


@dataclass(frozen=True)
class Error:
    cause: BaseException = field(compare=False)


LoadState = Union[Idle, Loading, Error]


# --- Load results ---
@dataclass(frozen=True)
class PageResult:
    page: Page


@dataclass(frozen=True)
class ErrorResult:
    cause: BaseException = field(compare=False)


LoadResult = Union[PageResult, ErrorResult]


@dataclass(frozen=True)
class PagingConfig:
    """Every load, refresh included, asks for ``page_size`` items.

    Keys are API page numbers, so the server places page ``n`` at offset
    ``(n - 1) * pageSize``. A different size on any one load would make pages
    overlap or leave gaps.
    """

    page_size: int = PAGE_SIZE
    prefetch_distance: Optional[int] = None
    max_page_size: int = MAX_PAGE_SIZE
    enable_placeholders: bool = False

    def __post_init__(self) -> None:
        if self.page_size < 1:
            raise ValueError("page_size must be positive")
        if self.enable_placeholders:
            raise ValueError("placeholders are not supported")

    @property
    def effective_prefetch_distance(self) -> int:
        if self.prefetch_distance is None:
            return self.page_size
        return self.prefetch_distance


@dataclass(frozen=True)
class PagingState:
    pages: Tuple[Page, ...] = ()
    anchor_position: Optional[int] = None

    def closest_page_to_position(self, position: int) -> Optional[Page]:
        """Page holding item ``position`` of the deduplicated article list.

        A page only counts the articles it contributes after deduplication.
        Positions past the end clamp to the last page.
        """
        if not self.pages:
            return None
        seen: Set[str] = set()
        offset = 0
        for page in self.pages:
            for article in page.articles:
                if article.url and article.url not in seen:
                    seen.add(article.url)
                    offset += 1
            if position < offset:
                return page
        return self.pages[-1]


@dataclass(frozen=True)
class PagingData:
    """What an observer sees: the merged articles plus per-edge load states."""

    articles: Tuple[Article, ...] = ()
    refresh: LoadState = Idle()
    prepend: LoadState = Idle()
    append: LoadState = Idle()

    def load_state(self, edge: str) -> LoadState:
        return getattr(self, edge)

    @property
    def errors(self) -> Dict[str, Error]:
        out = {}
        for edge in EDGES:
            state = self.load_state(edge)
            if isinstance(state, Error):
                out[edge] = state
        return out


def unique_articles(items: Iterable[Article]) -> List[Article]:
    seen = set()
    out: List[Article] = []
    for a in items:
        if a.url and a.url not in seen:
            seen.add(a.url)
            out.append(a)
    return out


class NewsPagingSource:
    """Loads pages of headlines, or of search results for one fixed query."""

    def __init__(
        self,
        source: Source,
        query: Optional[str] = None,
        max_page_size: int = MAX_PAGE_SIZE,
    ):
        self.source = source
        self.query = query
        self.max_page_size = max_page_size

    @property
    def is_headlines(self) -> bool:
        return not (self.query and self.query.strip())

    def __repr__(self) -> str:
        mode = "headlines" if self.is_headlines else f"search {self.query!r}"
        return f"<NewsPagingSource {mode}>"

    async def load(self, key: Optional[int], load_size: int) -> LoadResult:
        page = key if key is not None else INITIAL_PAGE
        size = min(load_size, self.max_page_size)
        try:
            if self.is_headlines:
                response = await asyncio.to_thread(self.source.fetch_headlines, page, size)
            else:
                response = await asyncio.to_thread(
                    self.source.fetch_search, self.query, page, size
                )
        except Exception as e:
            logger.warning("%r failed to load page %d: %s", self, page, e)
            return ErrorResult(e)

        items = tuple(response.articles)
        return PageResult(
            Page(
                key=page,
                articles=items,
                prev_key=None if page == INITIAL_PAGE else page - 1,
                # An empty page ends the stream.
                next_key=page + 1 if items else None,
            )
        )

    def refresh_key(self, state: PagingState) -> Optional[int]:
        if state.anchor_position is None:
            return None
        page = state.closest_page_to_position(state.anchor_position)
        if page is None:
            return None
        if page.prev_key is not None:
            return page.prev_key + 1
        if page.next_key is not None:
            return page.next_key - 1
        return None


class Pager:
    def __init__(self, source: NewsPagingSource, config: Optional[PagingConfig] = None):
        self.source = source
        self.config = config or PagingConfig()
        self.snapshots: Feed[PagingData] = Feed(PagingData())
        self._pages: Dict[int, Page] = {}
        self._articles: Tuple[Article, ...] = ()
        self._states: Dict[str, LoadState] = {edge: Idle() for edge in EDGES}
        self._failed_keys: Dict[str, Optional[int]] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        self._anchor: Optional[int] = None
        self._generation = 0
        self._started = False
        self.closed = False

    @property
    def state(self) -> PagingState:
        return PagingState(
            pages=tuple(self._pages[k] for k in sorted(self._pages)),
            anchor_position=self._anchor,
        )

    @property
    def articles(self) -> Tuple[Article, ...]:
        return self._articles

    def load_state(self, edge: str) -> LoadState:
        return self._states[edge]

    def start(self) -> None:
        if self._started:
            return
        self._started = True
        self.refresh()

    def refresh(self) -> None:
        if self.closed:
            return
        self._restart(self.source.refresh_key(self.state))

    def load_next(self) -> None:
        if not self._can_extend(APPEND):
            return
        last = self._pages[max(self._pages)]
        if last.next_key is None:
            return
        self._launch(APPEND, last.next_key, self.config.page_size)

    def load_previous(self) -> None:
        if not self._can_extend(PREPEND):
            return
        first = self._pages[min(self._pages)]
        if first.prev_key is None:
            return
        self._launch(PREPEND, first.prev_key, self.config.page_size)

    def retry(self) -> None:
        """Re-run every edge that is in error, with the key that failed."""
        if self.closed:
            return
        if isinstance(self._states[REFRESH], Error):
            self._restart(self._failed_keys.get(REFRESH))
            return
        for edge in (PREPEND, APPEND):
            if isinstance(self._states[edge], Error) and not self._in_flight(edge):
                self._launch(edge, self._failed_keys.get(edge), self.config.page_size)

    def access(self, position: int) -> None:
        """Record that the consumer looked at ``position`` and prefetch near edges."""
        self._anchor = position
        distance = self.config.effective_prefetch_distance
        if len(self._articles) - 1 - position < distance:
            self.load_next()
        if position < distance:
            self.load_previous()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        for edge in EDGES:
            self._cancel(edge)
        logger.debug("Closed pager for %r", self.source)

    async def wait_until_idle(self) -> None:
        while True:
            pending = [t for t in self._tasks.values() if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def _in_flight(self, edge: str) -> bool:
        task = self._tasks.get(edge)
        return task is not None and not task.done()

    def _restart(self, key: Optional[int]) -> None:
        self._generation += 1
        for edge in EDGES:
            self._cancel(edge)
        self._states[PREPEND] = Idle()
        self._states[APPEND] = Idle()
        self._launch(REFRESH, key, self.config.page_size)

    def _can_extend(self, edge: str) -> bool:
        if self.closed or not self._pages:
            return False
        if self._in_flight(REFRESH) or self._in_flight(edge):
            return False
        return not isinstance(self._states[edge], Error)

    def _launch(self, edge: str, key: Optional[int], load_size: int) -> None:
        loop = asyncio.get_running_loop()
        self._set_state(edge, Loading())
        logger.debug("%r loading %s page %s", self.source, edge, key)
        task = loop.create_task(self._run(edge, key, load_size, self._generation))
        self._tasks[edge] = task

    def _cancel(self, edge: str) -> None:
        task = self._tasks.pop(edge, None)
        if task is not None and not task.done():
            task.cancel()

    async def _run(self, edge: str, key: Optional[int], load_size: int, generation: int) -> None:
        result = await self.source.load(key, load_size)
        if self.closed or generation != self._generation:
            logger.debug("Discarding stale %s result for page %s", edge, key)
            return
        if self._tasks.get(edge) is asyncio.current_task():
            del self._tasks[edge]

        if isinstance(result, ErrorResult):
            self._failed_keys[edge] = key
            self._set_state(edge, Error(result.cause))
            return

        page = result.page
        self._failed_keys.pop(edge, None)
        if edge == REFRESH:
            self._pages = {page.key: page}
            self._states[PREPEND] = Idle(end_of_pagination=page.prev_key is None)
            self._states[APPEND] = Idle(end_of_pagination=page.next_key is None)
            self._states[REFRESH] = Idle()
        elif edge == APPEND:
            self._pages[page.key] = page
            self._states[APPEND] = Idle(end_of_pagination=page.next_key is None)
        else:
            self._pages[page.key] = page
            self._states[PREPEND] = Idle(end_of_pagination=page.prev_key is None)
        # Pages are merged by key so completion order never matters.
        self._articles = tuple(
            unique_articles(
                a for k in sorted(self._pages) for a in self._pages[k].articles
            )
        )
        logger.debug(
            "%r applied page %d (%d items, %d total)",
            self.source,
            page.key,
            len(page.articles),
            len(self._articles),
        )
        self._publish()

    def _set_state(self, edge: str, state: LoadState) -> None:
        self._states[edge] = state
        self._publish()

    def _publish(self) -> None:
        self.snapshots.emit(
            PagingData(
                articles=self._articles,
                refresh=self._states[REFRESH],
                prepend=self._states[PREPEND],
                append=self._states[APPEND],
            )
        )
