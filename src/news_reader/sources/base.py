from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict

from ..datamodels import ArticlesPage


class Source(ABC):
    """Abstract base class for a paged news source."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config

    @abstractmethod
    def fetch_headlines(self, page: int, page_size: int) -> ArticlesPage:
        """Return one page of top headlines. Raises FetchError."""
        pass

    @abstractmethod
    def fetch_search(self, query: str, page: int, page_size: int) -> ArticlesPage:
        """Return one page of articles matching ``query``. Raises FetchError."""
        pass
