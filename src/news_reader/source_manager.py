from __future__ import annotations

from typing import Any, Dict

from .config import source_config
from .sources.base import Source
from .sources.newsapi import NewsApiSource

SOURCES = {"newsapi": NewsApiSource}


def get_source(config: Dict[str, Any]) -> Source:
    source_name = config.get("source", "newsapi")
    source_class = SOURCES.get(source_name)
    if not source_class:
        raise ValueError(f"Unknown source: {source_name}")
    return source_class(source_config(config, source_name))
