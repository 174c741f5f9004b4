from __future__ import annotations

import threading
from typing import Dict, List, Optional, Tuple

import pytest

from news_reader.datamodels import Article, ArticlesPage, Source as ArticleSource
from news_reader.errors import FetchError
from news_reader.sources.base import Source
from news_reader.store import BookmarkStore


def make_article(n: int, prefix: str = "https://news.example/a", **kwargs) -> Article:
    defaults = dict(
        title=f"Story {n}",
        url=f"{prefix}/{n}",
        description=f"Description {n}",
        published_at=f"2024-01-{(n % 28) + 1:02d}T00:00:00Z",
        source=ArticleSource(id="wire", name="Wire"),
    )
    defaults.update(kwargs)
    return Article(**defaults)


def make_page(page: int, size: int = 20, prefix: str = "https://news.example/a") -> List[Article]:
    start = (page - 1) * size
    return [make_article(start + i, prefix=prefix) for i in range(size)]


class FakeSource(Source):
    """In-memory source. Pages default to ``total_pages`` full pages, then empty."""

    def __init__(self, total_pages: int = 3, page_size: int = 20):
        super().__init__({})
        self.total_pages = total_pages
        self.page_size = page_size
        self.calls: List[Tuple[Optional[str], int, int]] = []
        self.failures: Dict[int, Exception] = {}
        self.gates: Dict[int, threading.Event] = {}

    def _page(self, query: Optional[str], page: int, page_size: int) -> ArticlesPage:
        self.calls.append((query, page, page_size))
        gate = self.gates.get(page)
        if gate is not None:
            gate.wait(timeout=5)
        if page in self.failures:
            raise self.failures[page]
        if page > self.total_pages:
            return ArticlesPage(articles=[])
        prefix = "https://news.example/a" if query is None else f"https://news.example/{query}"
        count = min(page_size, self.page_size)
        return ArticlesPage(articles=make_page(page, count, prefix), total_results=None)

    def fetch_headlines(self, page: int, page_size: int) -> ArticlesPage:
        return self._page(None, page, page_size)

    def fetch_search(self, query: str, page: int, page_size: int) -> ArticlesPage:
        return self._page(query, page, page_size)


def http_500() -> FetchError:
    return FetchError("top-headlines returned HTTP 500: boom", status_code=500)


@pytest.fixture
def fake_source():
    return FakeSource()


@pytest.fixture
def store(tmp_path):
    return BookmarkStore(tmp_path / "news.db")
