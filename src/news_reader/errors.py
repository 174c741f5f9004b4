from __future__ import annotations

from typing import Optional


class NewsError(Exception):
    """Base class for errors raised by the news reader."""


class FetchError(NewsError):
    """A page could not be fetched: network failure, non-2xx or bad payload."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PersistenceError(NewsError):
    """A bookmark store operation failed."""
