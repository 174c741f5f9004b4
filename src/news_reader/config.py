from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime
from typing import Any, Dict, Optional

# --- Configuration ---
DEFAULT_BASE_URL = "https://newsapi.org/v2/"
DEFAULT_COUNTRY = "us"
HTTP_TIMEOUT = 15
CONNECT_RETRIES = 3
RETRY_BACKOFF = 0.3

PAGE_SIZE = 20
MAX_PAGE_SIZE = 20
INITIAL_PAGE = 1

QUERY_DEBOUNCE_SECONDS = 0.4
SHARE_GRACE_SECONDS = 5.0
SYNC_INTERVAL_HOURS = 6

CONFIG_PATH = os.path.expanduser("~/.config/news/config.json")
DATABASE_PATH = os.path.expanduser("~/.config/news/news.db")
API_KEY_ENV = "NEWS_API_KEY"

REQUEST_HEADERS = {
    "User-Agent": "news-reader/0.1 (+https://newsapi.org)",
    "Accept": "application/json",
}

DEFAULT_CONFIG: Dict[str, Any] = {
    "source": "newsapi",
    "sources": {
        "newsapi": {
            "api_key": "",
            "base_url": DEFAULT_BASE_URL,
            "country": DEFAULT_COUNTRY,
        }
    },
    "page_size": PAGE_SIZE,
    "database": DATABASE_PATH,
}

# Default UI settings
UI_DEFAULTS = {
    "statusbar_keybindings": (
        "[b {color}]/[/] search, [b {color}]b[/] bookmark, [b {color}]r[/] retry"
    ),
}

# --- Logging ---
logger = logging.getLogger("news")

def setup_logging(debug: bool = False, log_dir: Optional[str] = None) -> Optional[str]:
    """Send DEBUG records to a per-run file when ``debug`` is set, else silence logging.

    urllib3 is held at INFO: its DEBUG lines carry full request URLs and with
    them the `apiKey` query parameter.
    """
    if not debug:
        logging.basicConfig(level=logging.CRITICAL, handlers=[logging.NullHandler()])
        return None

    ts = datetime.now().strftime("%Y%m%dT%H%M%S")
    debug_path = os.path.join(log_dir or tempfile.gettempdir(), f"news_debug_{ts}_{os.getpid()}.log")

    logging.basicConfig(
        level=logging.DEBUG,
        filename=debug_path,
        filemode="a",
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    logging.getLogger("urllib3").setLevel(logging.INFO)

    logger.debug("Debug logging enabled to %s", debug_path)
    return debug_path


def ensure_config_file_exists(path: str = CONFIG_PATH) -> None:
    """Write the default config file if the user's config file is not found."""
    if os.path.exists(path):
        return
    logger.info("Config file not found at %s, creating default.", path)
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w") as f:
            json.dump(DEFAULT_CONFIG, f, indent=2)
    except (IOError, OSError) as e:
        logger.error("Failed to create default config file: %s", e)


def load_config(path: str = CONFIG_PATH) -> Dict[str, Any]:
    """Load the main configuration file."""
    ensure_config_file_exists(path)
    try:
        with open(path, "r") as f:
            config = json.load(f)
            logger.info("Loaded config from %s", path)
            return config
    except (IOError, json.JSONDecodeError) as e:
        logger.error("Failed to load config from %s: %s", path, e)
        return {}


def save_config(config: Dict[str, Any], path: str = CONFIG_PATH) -> None:
    """Save the main configuration file."""
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w") as f:
            json.dump(config, f, indent=2)
        logger.info("Saved config to %s", path)
    except IOError as e:
        logger.error("Failed to save config to %s: %s", path, e)


def source_config(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    """Return the settings block for source ``name`` with env overrides applied."""
    settings = dict(config.get("sources", {}).get(name, {}))
    env_key = os.environ.get(API_KEY_ENV)
    if env_key:
        settings["api_key"] = env_key
    return settings


def page_size_from_config(config: Dict[str, Any]) -> int:
    try:
        size = int(config.get("page_size", PAGE_SIZE))
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid page_size %r", config.get("page_size"))
        return PAGE_SIZE
    return max(1, min(size, MAX_PAGE_SIZE))


def database_path_from_config(config: Dict[str, Any]) -> str:
    return os.path.expanduser(config.get("database") or DATABASE_PATH)
