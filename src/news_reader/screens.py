from __future__ import annotations

import webbrowser
from typing import Optional

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import VerticalScroll
from textual.screen import Screen
from textual.widgets import DataTable, Footer, Header, Label, Markdown

from .bookmarks import BookmarkJoin
from .config import logger
from .datamodels import Article
from .errors import PersistenceError
from .feed import Subscription
from .messages import BookmarksUpdated
from .widgets import StatusBar


def article_markdown(article: Article) -> str:
    parts = [f"# {article.title or 'No Title'}\n"]
    meta = [
        x
        for x in (
            article.source.name if article.source else None,
            article.published_at,
        )
        if x
    ]
    if meta:
        parts.append(f"*{' | '.join(meta)}*\n")
    if article.description:
        parts.append(f"{article.description}\n")
    if article.content:
        parts.append(f"{article.content}\n")
    parts.append(f"[Read the full article]({article.url})")
    return "\n".join(parts)


# --- Article screen (separate) ---
class ArticleViewScreen(Screen):
    BINDINGS = [
        Binding("escape,q,left", "app.pop_screen", "Back"),
        Binding("o", "open_in_browser", "Open in browser"),
        Binding("b", "bookmark", "Bookmark"),
        Binding("down", "scroll_down", "Scroll Down"),
        Binding("up", "scroll_up", "Scroll Up"),
    ]

    def __init__(self, article: Article, join: BookmarkJoin):
        super().__init__()
        self.article = article
        self.join = join

    def compose(self) -> ComposeResult:
        yield Header()
        yield StatusBar()
        yield VerticalScroll(
            Markdown(article_markdown(self.article), id="article-markdown"),
            id="article-scroll",
        )

    def on_mount(self) -> None:
        self.title = self.article.title
        self.query_one("#article-scroll").focus()
        self.query_one(StatusBar).set_keybindings(
            "[b $accent]o[/] to open, [b $accent]b[/] to bookmark"
        )

    def action_open_in_browser(self) -> None:
        webbrowser.open(self.article.url)

    async def action_bookmark(self) -> None:
        try:
            await self.join.toggle_bookmark(self.article)
        except PersistenceError as e:
            logger.error("Bookmark toggle failed for %s: %s", self.article.url, e)
            self.notify(f"Bookmark not saved: {e}", severity="error")

    def action_scroll_down(self) -> None:
        self.query_one("#article-scroll").scroll_down()

    def action_scroll_up(self) -> None:
        self.query_one("#article-scroll").scroll_up()


class ErrorScreen(Screen):
    BINDINGS = [Binding("q,escape", "app.quit", "Quit")]

    def __init__(self, title: str, message: str):
        super().__init__()
        self.error_title = title
        self.message = message

    def compose(self) -> ComposeResult:
        yield Header()
        yield Label(self.error_title, classes="error-title")
        yield Markdown(self.message)
        yield Footer()


class BookmarksScreen(Screen):
    BINDINGS = [
        Binding("escape,q,left", "app.pop_screen", "Back"),
        Binding("d", "delete_bookmark", "Delete"),
        Binding("o", "open_in_browser", "Open in browser"),
    ]

    def __init__(self, join: BookmarkJoin):
        super().__init__()
        self.join = join
        self._subscription: Optional[Subscription] = None

    def compose(self) -> ComposeResult:
        yield Header()
        yield Footer()
        yield DataTable(id="bookmarks-table")

    def on_mount(self) -> None:
        self.title = "Bookmarks"
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.add_column("Title", key="title")
        table.add_column("Source", key="source")
        table.add_column("Published", key="published")
        self._subscription = self.join.bookmarks.subscribe(
            lambda items: self.post_message(BookmarksUpdated(items))
        )

    def on_unmount(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None

    def on_bookmarks_updated(self, message: BookmarksUpdated) -> None:
        table = self.query_one(DataTable)
        table.clear()
        for article in message.bookmarks:
            table.add_row(
                article.title,
                article.source.name if article.source and article.source.name else "",
                article.published_at or "",
                key=article.url,
            )
        logger.debug("Bookmarks screen shows %d rows", len(message.bookmarks))

    def _selected_url(self) -> Optional[str]:
        table = self.query_one(DataTable)
        if not table.is_valid_row_index(table.cursor_row):
            return None
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        return str(row_key.value)

    async def action_delete_bookmark(self) -> None:
        """Delete the selected bookmark."""
        url = self._selected_url()
        if url is None:
            return
        try:
            await self.join.remove(url)
        except PersistenceError as e:
            logger.error("Removing bookmark %s failed: %s", url, e)
            self.notify(f"Bookmark not removed: {e}", severity="error")

    def action_open_in_browser(self) -> None:
        url = self._selected_url()
        if url:
            webbrowser.open(url)
