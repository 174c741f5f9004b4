from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.widgets import ListItem, Static
from textual.reactive import reactive
from rich.markup import escape
from rich.text import Text

from .datamodels import AnnotatedArticle
from .paging import Error, Idle, Loading, LoadState, PagingData

BOOKMARK_MARK = "★"


# --- UI Widgets ---
class HeadlineItem(ListItem):
    def __init__(self, item: AnnotatedArticle):
        super().__init__()
        self.article = item.article
        self.bookmarked = item.bookmarked

    def compose(self) -> ComposeResult:
        source = self.article.source.name if self.article.source else None
        with Horizontal(classes="headline-container"):
            yield Static(self._mark(), classes="headline-flag")
            yield Static(source or "", classes="headline-source")
            yield Static(self.article.title or self.article.url, classes="headline-title")

    def _mark(self) -> str:
        return BOOKMARK_MARK if self.bookmarked else " "

    def set_bookmarked(self, bookmarked: bool) -> None:
        if bookmarked == self.bookmarked:
            return
        self.bookmarked = bookmarked
        if self.is_mounted:
            self.query_one(".headline-flag", Static).update(self._mark())


def describe_load_state(edge: str, state: LoadState) -> str:
    if isinstance(state, Loading):
        return f"Loading {edge}..."
    if isinstance(state, Error):
        return f"[b red]{edge} failed:[/] {escape(str(state.cause))} (r to retry)"
    if isinstance(state, Idle):
        return ""
    raise TypeError(f"unknown load state {state!r}")


def describe_paging(paging: PagingData) -> str:
    parts = [
        text
        for edge in ("refresh", "prepend", "append")
        if (text := describe_load_state(edge, paging.load_state(edge)))
    ]
    if not parts and paging.append == Idle(end_of_pagination=True) and paging.articles:
        parts.append("End of results")
    return " | ".join(parts)


class StatusBar(Static):
    """Paging state followed by the key hints, on one line."""

    paging_status = reactive("")
    keybinding_hint = reactive("")

    def on_mount(self) -> None:
        self._redraw()

    def show_paging(self, paging: PagingData) -> None:
        self.paging_status = describe_paging(paging)

    def set_keybindings(self, hint: str) -> None:
        self.keybinding_hint = hint

    def _redraw(self) -> None:
        self.update(" | ".join(p for p in (self.paging_status, self.keybinding_hint) if p))

    def watch_paging_status(self, paging_status: str) -> None:
        self._redraw()

    def watch_keybinding_hint(self, keybinding_hint: str) -> None:
        self._redraw()


class ErrorMessage(Static):
    """Inline failure of a whole feed load, with the retry key."""

    def __init__(self, cause: BaseException, what: str = "headlines"):
        super().__init__(
            Text.assemble(
                (f"Failed to load {what}: ", "bold red"),
                str(cause),
                ("  Press r to retry.", "dim"),
            )
        )
        self.cause = cause
