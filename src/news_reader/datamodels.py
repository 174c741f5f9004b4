from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Tuple


# --- Data models ---
@dataclass(frozen=True)
class Source:
    id: Optional[str] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class Article:
    """A single news article. ``url`` is its identity."""

    title: str
    url: str
    description: Optional[str] = None
    content: Optional[str] = None
    image_url: Optional[str] = None
    published_at: Optional[str] = None
    source: Optional[Source] = None


@dataclass(frozen=True)
class ArticlesPage:
    """One decoded response from the remote API."""

    articles: List[Article]
    total_results: Optional[int] = None
    status: Optional[str] = None


@dataclass(frozen=True)
class Page:
    key: int
    articles: Tuple[Article, ...]
    prev_key: Optional[int] = None
    next_key: Optional[int] = None


@dataclass(frozen=True)
class AnnotatedArticle:
    article: Article
    bookmarked: bool = False
