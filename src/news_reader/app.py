from __future__ import annotations

from typing import Any, List, Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.widgets import Header, Input, ListView, LoadingIndicator, Static

from .bookmarks import AnnotatedFeed, BookmarkJoin
from .config import UI_DEFAULTS, logger
from .coordinator import QueryCoordinator
from .errors import PersistenceError
from .feed import Subscription
from .messages import FeedUpdated, StatusUpdate
from .paging import Error, Idle, Loading
from .screens import ArticleViewScreen, BookmarksScreen, ErrorScreen
from .widgets import ErrorMessage, HeadlineItem, StatusBar


class NewsApp(App):
    TITLE = "News"
    SUB_TITLE = "Headlines"

    DEFAULT_CSS = """
    #headlines-list { height: 1fr; }
    .headline-container { height: auto; }
    .headline-flag { width: 2; }
    .headline-source { width: 16; color: $text-muted; text-style: italic; }
    .headline-title { width: 1fr; }
    StatusBar { dock: bottom; height: 1; }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("r", "retry", "Retry / Refresh"),
        Binding("b", "bookmark", "Bookmark"),
        Binding("B", "show_bookmarks", "Show Bookmarks"),
        Binding("/", "focus_search", "Search"),
        Binding("escape", "focus_list", "Headlines", show=False),
    ]

    def __init__(
        self,
        coordinator: QueryCoordinator,
        join: BookmarkJoin,
        config: Optional[dict[str, Any]] = None,
        initial_query: Optional[str] = None,
        configuration_error: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self.coordinator = coordinator
        self.join = join
        self.config = config or {}
        self.initial_query = initial_query
        self.configuration_error = configuration_error
        self.feed: Optional[AnnotatedFeed] = None
        self._shown_urls: List[str] = []
        self._subscriptions: List[Subscription] = []

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="main"):
            yield Input(
                value=self.initial_query or "",
                placeholder="Search articles (empty for top headlines)...",
                id="search",
            )
            yield ListView(id="headlines-list")
        yield StatusBar()

    def on_mount(self) -> None:
        if self.configuration_error:
            self.push_screen(ErrorScreen("News source not configured", self.configuration_error))
            return

        self._subscriptions = [
            self.join.annotated_articles.subscribe(
                lambda feed: self.post_message(FeedUpdated(feed))
            ),
            self.join.notifications.subscribe(self._on_notification),
            self.coordinator.queries.subscribe(
                lambda q: self.post_message(
                    StatusUpdate("Top headlines" if q is None else f"Search: {q}")
                )
            ),
        ]
        keybindings_text = self.config.get("ui", {}).get(
            "statusbar_keybindings", UI_DEFAULTS["statusbar_keybindings"]
        )
        self.query_one(StatusBar).set_keybindings(keybindings_text.format(color="$accent"))
        self.query_one("#headlines-list", ListView).focus()

    def on_unmount(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        self.coordinator.close()

    def _on_notification(self, message: Optional[str]) -> None:
        if message:
            self.notify(message)
            self.join.clear_notification()

    def on_status_update(self, message: StatusUpdate) -> None:
        self.sub_title = message.text

    def on_feed_updated(self, message: FeedUpdated) -> None:
        feed = message.feed
        self.feed = feed
        headlines = self.query_one("#headlines-list", ListView)
        urls = [item.article.url for item in feed.items]
        shown = len(self._shown_urls)

        for widget in headlines.query("LoadingIndicator, ErrorMessage, .empty-message"):
            widget.remove()

        if shown and urls[:shown] == self._shown_urls:
            # Appended pages or bookmark changes: keep the cursor where it is.
            for widget, item in zip(headlines.query(HeadlineItem), feed.items):
                widget.set_bookmarked(item.bookmarked)
            for item in feed.items[shown:]:
                headlines.append(HeadlineItem(item))
        else:
            headlines.clear()
            for item in feed.items:
                headlines.append(HeadlineItem(item))
        self._shown_urls = urls

        paging = feed.paging
        if not feed.items:
            if isinstance(paging.refresh, Loading):
                headlines.mount(LoadingIndicator())
            elif isinstance(paging.refresh, Error):
                logger.error("Headlines failed to load: %s", paging.refresh.cause)
                headlines.mount(ErrorMessage(paging.refresh.cause))
            elif paging.append == Idle(end_of_pagination=True):
                headlines.mount(Static("No articles found.", classes="empty-message"))
        self.query_one(StatusBar).show_paging(paging)

    def _highlighted_article(self):
        headlines = self.query_one("#headlines-list", ListView)
        item = headlines.highlighted_child
        if isinstance(item, HeadlineItem):
            return item.article
        return None

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "search":
            self.coordinator.set_query(event.value)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "search":
            self.query_one("#headlines-list", ListView).focus()

    def on_list_view_highlighted(self, event: ListView.Highlighted) -> None:
        if event.list_view.id == "headlines-list" and event.list_view.index is not None:
            self.coordinator.access(event.list_view.index)

    def on_list_view_selected(self, event: ListView.Selected) -> None:
        if isinstance(event.item, HeadlineItem):
            self.push_screen(ArticleViewScreen(event.item.article, self.join))

    def action_retry(self) -> None:
        if self.feed is not None and self.feed.paging.errors:
            self.coordinator.retry()
        else:
            self.coordinator.refresh()

    async def action_bookmark(self) -> None:
        if self.query_one("#search", Input).has_focus:
            return
        article = self._highlighted_article()
        if article is None:
            return
        try:
            await self.join.toggle_bookmark(article)
        except PersistenceError as e:
            logger.error("Bookmark toggle failed for %s: %s", article.url, e)
            self.notify(f"Bookmark not saved: {e}", severity="error")

    def action_show_bookmarks(self) -> None:
        self.push_screen(BookmarksScreen(self.join))

    def action_focus_search(self) -> None:
        self.query_one("#search", Input).focus()

    def action_focus_list(self) -> None:
        self.query_one("#headlines-list", ListView).focus()
