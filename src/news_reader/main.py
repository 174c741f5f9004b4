#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

from .app import NewsApp
from .bookmarks import BookmarkJoin
from .config import (
    CONFIG_PATH,
    SYNC_INTERVAL_HOURS,
    database_path_from_config,
    load_config,
    page_size_from_config,
    setup_logging,
)
from .coordinator import QueryCoordinator
from .paging import PagingConfig
from .repository import NewsRepository
from .source_manager import get_source
from .store import BookmarkStore
from .sync import SyncResult, SyncWorker

logger = logging.getLogger("news")

EX_TEMPFAIL = 75


class Components:
    """Everything the app needs, wired by hand."""

    def __init__(self, config: Dict[str, Any], initial_query: Optional[str] = None):
        self.config = config
        self.source = get_source(config)
        self.store = BookmarkStore(database_path_from_config(config))
        page_size = page_size_from_config(config)
        self.repository = NewsRepository(
            self.source, self.store, PagingConfig(page_size=page_size)
        )
        self.coordinator = QueryCoordinator(self.repository, initial_query=initial_query)
        self.join = BookmarkJoin(self.repository, self.coordinator.articles)
        self.sync_worker = SyncWorker(self.source, self.store, notifier=print_notifier, page_size=page_size)


def print_notifier(message: str) -> None:
    print(message)


def missing_api_key_message(name: str) -> str:
    return (
        f"No API key configured for source `{name}`.\n\n"
        f"Set `NEWS_API_KEY` or add `api_key` under `sources.{name}` in `{CONFIG_PATH}`."
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="News reader")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--query", type=str, help="Start with this search instead of top headlines")
    parser.add_argument(
        "--sync",
        action="store_true",
        help=(
            "Run one background sync pass and exit (0 on success, "
            f"{EX_TEMPFAIL} to ask the scheduler to retry). "
            f"Meant to be scheduled about every {SYNC_INTERVAL_HOURS} hours."
        ),
    )
    return parser


# --- Entrypoint ---
def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    debug_path = setup_logging(args.debug)
    if debug_path:
        print(f"Debug logging enabled: {debug_path}", file=sys.stderr)

    config = load_config()
    try:
        components = Components(config, initial_query=args.query)
    except Exception as e:
        logger.exception("Failed to start: %s", e)
        print(f"Failed to start: {e}", file=sys.stderr)
        return 1

    if args.sync:
        result = components.sync_worker.run()
        return 0 if result is SyncResult.SUCCESS else EX_TEMPFAIL

    error = None
    if not getattr(components.source, "api_key", True):
        error = missing_api_key_message(config.get("source", "newsapi"))

    try:
        app = NewsApp(
            components.coordinator,
            components.join,
            config=config,
            initial_query=args.query,
            configuration_error=error,
        )
        app.run()
    except Exception as e:
        logger.exception("Application crashed: %s", e)
        print(f"Application crashed: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
