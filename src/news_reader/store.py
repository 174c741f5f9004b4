"""
Bookmark persistence.

A single sqlite table keyed by article URL. Writes go through one lock so two
concurrent toggles never interleave partial writes.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Union

from .datamodels import Article, Source
from .errors import PersistenceError

logger = logging.getLogger("news")

_COLUMNS = (
    "url, title, description, content, image_url, published_at, source_id, source_name"
)


class BookmarkStore:
    """Durable keyed set of bookmarked articles."""

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._write_lock = threading.Lock()
        self._init_schema()

    @contextmanager
    def conn(self) -> Iterator[sqlite3.Connection]:
        """Get database connection with row factory."""
        try:
            connection = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot open {self.db_path}: {e}") from e
        connection.row_factory = sqlite3.Row
        try:
            yield connection
            connection.commit()
        except sqlite3.Error as e:
            logger.error("Bookmark store operation failed: %s", e)
            raise PersistenceError(str(e)) from e
        finally:
            connection.close()

    def _init_schema(self) -> None:
        with self.conn() as connection:
            connection.executescript("""
                CREATE TABLE IF NOT EXISTS bookmarks (
                    url TEXT PRIMARY KEY NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT,
                    content TEXT,
                    image_url TEXT,
                    published_at TEXT,
                    source_id TEXT,
                    source_name TEXT,
                    bookmarked_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                );

                CREATE TABLE IF NOT EXISTS sync_state (
                    key TEXT PRIMARY KEY,
                    value TEXT
                );
            """)

    def upsert(self, article: Article) -> None:
        """Insert or replace the record for ``article.url``."""
        source = article.source or Source()
        with self._write_lock, self.conn() as connection:
            connection.execute(
                f"INSERT OR REPLACE INTO bookmarks ({_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    article.url,
                    article.title or "",
                    article.description,
                    article.content,
                    article.image_url,
                    article.published_at,
                    source.id,
                    source.name,
                ),
            )
        logger.debug("Bookmarked %s", article.url)

    def delete_by_url(self, url: str) -> None:
        with self._write_lock, self.conn() as connection:
            connection.execute("DELETE FROM bookmarks WHERE url = ?", (url,))
        logger.debug("Removed bookmark %s", url)

    def is_bookmarked(self, url: str) -> bool:
        with self.conn() as connection:
            row = connection.execute(
                "SELECT EXISTS(SELECT 1 FROM bookmarks WHERE url = ? LIMIT 1)", (url,)
            ).fetchone()
        return bool(row[0])

    def get_all(self) -> List[Article]:
        """All bookmarks, newest publish date first.

        Dates compare as strings. Rows without a date go last and ties are
        broken by URL, so the order is total.
        """
        with self.conn() as connection:
            rows = connection.execute(
                f"SELECT {_COLUMNS} FROM bookmarks "
                "ORDER BY published_at IS NULL, published_at DESC, url ASC"
            ).fetchall()
        return [_row_to_article(row) for row in rows]

    def count(self) -> int:
        with self.conn() as connection:
            return connection.execute("SELECT COUNT(*) FROM bookmarks").fetchone()[0]

    def get_state(self, key: str) -> Optional[str]:
        with self.conn() as connection:
            row = connection.execute(
                "SELECT value FROM sync_state WHERE key = ?", (key,)
            ).fetchone()
        return row["value"] if row else None

    def set_state(self, key: str, value: str) -> None:
        with self._write_lock, self.conn() as connection:
            connection.execute(
                "INSERT OR REPLACE INTO sync_state (key, value) VALUES (?, ?)",
                (key, value),
            )


def _row_to_article(row: sqlite3.Row) -> Article:
    source = None
    if row["source_id"] is not None or row["source_name"] is not None:
        source = Source(id=row["source_id"], name=row["source_name"])
    return Article(
        title=row["title"],
        url=row["url"],
        description=row["description"],
        content=row["content"],
        image_url=row["image_url"],
        published_at=row["published_at"],
        source=source,
    )
