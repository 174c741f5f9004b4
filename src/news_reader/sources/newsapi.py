from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import (
    CONNECT_RETRIES,
    DEFAULT_BASE_URL,
    DEFAULT_COUNTRY,
    HTTP_TIMEOUT,
    REQUEST_HEADERS,
    RETRY_BACKOFF,
)
from ..datamodels import Article, ArticlesPage, Source as ArticleSource
from ..errors import FetchError
from .base import Source

logger = logging.getLogger("news")

REMOVED_MARKER = "[Removed]"


class NewsApiSource(Source):
    """Fetches pages from a NewsAPI compatible ``/top-headlines`` and ``/everything``."""

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.api_key = self.config.get("api_key") or ""
        self.base_url = self.config.get("base_url") or DEFAULT_BASE_URL
        if not self.base_url.endswith("/"):
            self.base_url += "/"
        self.country = self.config.get("country") or DEFAULT_COUNTRY
        self.timeout = self.config.get("timeout", HTTP_TIMEOUT)
        self.session = self._create_session()

    def _create_session(self) -> requests.Session:
        s = requests.Session()
        s.headers.update(REQUEST_HEADERS)
        # Only connection setup is retried here. A failed page has to surface
        # as an error so the caller can decide to retry it.
        retries = Retry(
            total=CONNECT_RETRIES,
            connect=CONNECT_RETRIES,
            read=0,
            status=0,
            backoff_factor=RETRY_BACKOFF,
        )
        adapter = HTTPAdapter(max_retries=retries)
        s.mount("https://", adapter)
        s.mount("http://", adapter)
        return s

    def fetch_headlines(self, page: int, page_size: int) -> ArticlesPage:
        return self._get(
            "top-headlines",
            {"country": self.country, "page": page, "pageSize": page_size},
        )

    def fetch_search(self, query: str, page: int, page_size: int) -> ArticlesPage:
        return self._get("everything", {"q": query, "page": page, "pageSize": page_size})

    def _get(self, endpoint: str, params: Dict[str, Any]) -> ArticlesPage:
        url = urljoin(self.base_url, endpoint)
        # The key is added last and never logged.
        logger.debug("Fetching %s page=%s pageSize=%s", url, params.get("page"), params.get("pageSize"))
        try:
            resp = self.session.get(
                url, params={**params, "apiKey": self.api_key}, timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.warning("Request to %s failed: %s", url, e)
            raise FetchError(f"Network error fetching {endpoint}: {e}") from e

        try:
            payload = resp.json()
        except ValueError as e:
            payload = None
            if resp.ok:
                raise FetchError(
                    f"Malformed response from {endpoint}", status_code=resp.status_code
                ) from e

        if not resp.ok:
            message = _error_message(payload) or resp.reason or "HTTP error"
            logger.warning("%s returned HTTP %s: %s", url, resp.status_code, message)
            raise FetchError(
                f"{endpoint} returned HTTP {resp.status_code}: {message}",
                status_code=resp.status_code,
            )
        return parse_articles_page(payload, status_code=resp.status_code)


def parse_articles_page(payload: Any, status_code: Optional[int] = None) -> ArticlesPage:
    """Decode a NewsAPI response body. Raises FetchError for unusable payloads."""
    if not isinstance(payload, dict):
        raise FetchError("Response body is not a JSON object", status_code=status_code)
    status = payload.get("status")
    if status == "error":
        raise FetchError(
            _error_message(payload) or "API reported an error", status_code=status_code
        )
    raw_articles = payload.get("articles") or []
    if not isinstance(raw_articles, list):
        raise FetchError("'articles' is not a list", status_code=status_code)
    total = payload.get("totalResults")
    return ArticlesPage(
        articles=list(_map_articles(raw_articles)),
        total_results=total if isinstance(total, int) else None,
        status=status,
    )


def _map_articles(items: Iterable[Any]) -> Iterable[Article]:
    for item in items:
        if not isinstance(item, dict):
            continue
        article = article_from_dto(item)
        if not article.url or article.title == REMOVED_MARKER:
            continue
        yield article


def article_from_dto(dto: Dict[str, Any]) -> Article:
    src = dto.get("source")
    source = None
    if isinstance(src, dict) and (src.get("id") or src.get("name")):
        source = ArticleSource(id=src.get("id"), name=src.get("name"))
    return Article(
        title=dto.get("title") or "",
        url=dto.get("url") or "",
        description=_plain_text(dto.get("description")),
        content=_plain_text(dto.get("content")),
        image_url=dto.get("urlToImage"),
        published_at=dto.get("publishedAt"),
        source=source,
    )


def _plain_text(value: Optional[str]) -> Optional[str]:
    if not value or "<" not in value:
        return value
    return BeautifulSoup(value, "lxml").get_text(" ", strip=True)


def _error_message(payload: Any) -> Optional[str]:
    if isinstance(payload, dict):
        return payload.get("message") or payload.get("code")
    return None
