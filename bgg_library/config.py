"""
Configuration settings for the BGG library sync engine.
"""

import os
from pathlib import Path

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent  # Go up one level to workspace root
DATABASE_PATH = Path(os.environ.get("BGG_LIBRARY_DB", PROJECT_ROOT / "bgg_library.db"))
# Logs directory for per-run logs
LOGS_DIR = Path(os.environ.get("BGG_LIBRARY_LOGS", PROJECT_ROOT / "bgg_library_cache" / "logs"))

# BoardGameGeek XML API2
BGG_API_BASE_URL = os.environ.get("BGG_API_BASE_URL", "https://boardgamegeek.com/xmlapi2")
BGG_API_TOKEN = os.environ.get("BGG_API_TOKEN")
USER_AGENT = os.environ.get("BGG_USER_AGENT", "BoardGameLibrary/1.0 (+https://boardgamegeek.com)")

# HTTP behaviour
REQUEST_TIMEOUT = float(os.environ.get("BGG_REQUEST_TIMEOUT", 30))
REQUEST_INTERVAL = float(os.environ.get("BGG_REQUEST_INTERVAL", 1.0))  # min seconds between requests
MAX_RETRIES = int(os.environ.get("BGG_MAX_RETRIES", 3))
RETRY_DELAY = float(os.environ.get("BGG_RETRY_DELAY", 1.0))  # base for exponential backoff

# Collection export is queued by BGG and answered with 202 until ready
COLLECTION_POLL_ATTEMPTS = int(os.environ.get("BGG_COLLECTION_POLL_ATTEMPTS", 6))
COLLECTION_POLL_DELAY = float(os.environ.get("BGG_COLLECTION_POLL_DELAY", 5.0))

# Sync engine
SYNC_WORKERS = int(os.environ.get("BGG_SYNC_WORKERS", 3))
SEARCH_RESULT_LIMIT = 10
EXPANSION_HEURISTICS = os.environ.get("BGG_EXPANSION_HEURISTICS", "1").lower() not in ("0", "false", "no")

# SQLite busy timeout in seconds
DB_TIMEOUT = float(os.environ.get("BGG_DB_TIMEOUT", 30))

# Library statuses, in display order
GAME_STATUSES = (
    "owned",
    "wishlist",
    "played_unowned",
    "want_trade_sell",
    "on_order",
)
DEFAULT_STATUS = "owned"

# Words in a title that suggest the item extends another game
EXPANSION_KEYWORDS = [
    "expansion",
    "extension",
    "add-on",
    "supplement",
    "module",
    "scenario",
    "campaign",
]
