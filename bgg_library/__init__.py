"""
BGG Library Package - BoardGameGeek collection sync and library grouping.

This package provides:
1. A client for the BoardGameGeek XML API2
2. Idempotent import of a user's BGG collection into local storage
3. Grouping of a library into base games and their expansions
"""

__version__ = "0.1.0"
__author__ = "BGG Library Team"

# Main package imports for convenience
from .service import LibraryService
from .api import BGGClient
from .database import GameCatalog, UserLibrary
from .sync import CollectionSyncEngine
from .grouping import group_library
from .models import Game, GameDetails, UserGame, GroupedGame, SearchResult, SyncOutcome
from .logging_config import setup_logging

__all__ = [
    "LibraryService",
    "BGGClient",
    "GameCatalog",
    "UserLibrary",
    "CollectionSyncEngine",
    "group_library",
    "Game",
    "GameDetails",
    "UserGame",
    "GroupedGame",
    "SearchResult",
    "SyncOutcome",
    "setup_logging",
]
