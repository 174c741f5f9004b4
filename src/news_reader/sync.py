"""
Background sync pass.

Meant to be run by an outside scheduler (cron, a systemd timer, a task
queue) every few hours. It fetches the first headline page on its own,
independent of any pager, and notifies when the newest headline changed.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, Optional

from .config import INITIAL_PAGE, PAGE_SIZE
from .sources.base import Source
from .store import BookmarkStore

logger = logging.getLogger("news")

LAST_HEADLINE_KEY = "last_headline_url"
NEW_HEADLINES_MESSAGE = "New headlines are available."


class SyncResult(Enum):
    SUCCESS = "success"
    RETRY = "retry"


def log_notifier(message: str) -> None:
    logger.info("Notification: %s", message)


class SyncWorker:
    def __init__(
        self,
        source: Source,
        store: BookmarkStore,
        notifier: Optional[Callable[[str], None]] = None,
        page_size: int = PAGE_SIZE,
    ):
        self.source = source
        self.store = store
        self.notifier = notifier or log_notifier
        self.page_size = page_size
        self._lock = threading.Lock()

    def __call__(self) -> SyncResult:
        return self.run()

    def run(self) -> SyncResult:
        """Run one sync pass. Never raises."""
        if not self._lock.acquire(blocking=False):
            logger.info("Sync already in progress, skipping")
            return SyncResult.SUCCESS
        try:
            return self._sync()
        except Exception as e:
            logger.warning("Sync pass failed, will retry: %s", e)
            return SyncResult.RETRY
        finally:
            self._lock.release()

    def _sync(self) -> SyncResult:
        page = self.source.fetch_headlines(INITIAL_PAGE, self.page_size)
        if not page.articles:
            logger.info("Sync found no headlines")
            return SyncResult.SUCCESS
        newest = page.articles[0].url
        if self.store.get_state(LAST_HEADLINE_KEY) == newest:
            logger.debug("No new headlines since last sync")
            return SyncResult.SUCCESS
        self.notifier(NEW_HEADLINES_MESSAGE)
        self.store.set_state(LAST_HEADLINE_KEY, newest)
        logger.info("Sync recorded newest headline %s", newest)
        return SyncResult.SUCCESS
