from __future__ import annotations

from typing import List

from textual.message import Message

from .bookmarks import AnnotatedFeed
from .datamodels import Article


class StatusUpdate(Message):
    """A message to update the status bar."""
    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__()


class FeedUpdated(Message):
    """The annotated article feed published a new snapshot."""
    def __init__(self, feed: AnnotatedFeed) -> None:
        self.feed = feed
        super().__init__()


class BookmarksUpdated(Message):
    def __init__(self, bookmarks: List[Article]) -> None:
        self.bookmarks = bookmarks
        super().__init__()
