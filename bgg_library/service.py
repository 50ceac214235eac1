"""
Library service: the entry points the rest of the application calls.

Wires the BGG client, the catalog and library stores, the sync engine and
the grouping functions together.
"""

import logging
import threading
from pathlib import Path
from typing import List, Optional

from .api import BGGClient
from .config import DATABASE_PATH, DEFAULT_STATUS
from .database import GameCatalog, UserLibrary
from .error_handling import InvalidRelationship, NotFound
from .grouping import group_library, library_stats
from .models import Game, GroupedGame, SearchResult, SyncOutcome, UserGame
from .sync import CollectionSyncEngine

logger = logging.getLogger(__name__)


class LibraryService:
    """
    High-level operations on the game catalog and user libraries.
    """

    def __init__(self, db_path: Path = DATABASE_PATH, client: Optional[BGGClient] = None,
                 sync_engine: Optional[CollectionSyncEngine] = None):
        """
        Initialize the library service.

        Args:
            db_path: Path to the SQLite database
            client: BGG client; a default one is created when omitted
            sync_engine: Preconfigured sync engine (mainly for tests)
        """
        self.db_path = Path(db_path)
        self.client = client or BGGClient()
        self.catalog = GameCatalog(self.db_path)
        self.library = UserLibrary(self.db_path)
        self.sync_engine = sync_engine or CollectionSyncEngine(self.client, self.catalog, self.library)

    def search_games(self, term: str) -> List[SearchResult]:
        """Search BGG; at most ten results, empty list when nothing matches."""
        return self.client.search(term)

    def add_game(self, user_id: str, bgg_id: int, status: str = DEFAULT_STATUS) -> UserGame:
        """
        Fetch a game from BGG, store it in the catalog and add it to a library.

        Raises:
            NotFound: BGG has no such game
        """
        details = self.client.fetch_details(int(bgg_id))
        game = self.catalog.upsert(details)
        user_game, created = self.library.ensure_in_library(user_id, game.id, status)
        if created:
            logger.info(f"Added {game.name} to library of {user_id}")
        else:
            logger.info(f"{game.name} was already in library of {user_id}")
        return user_game

    def sync_collection(self, username: str, user_id: str,
                        cancel_event: Optional[threading.Event] = None,
                        refresh_existing: bool = False, owned_only: bool = True) -> SyncOutcome:
        """
        Import a BGG collection into a user's library.

        Safe to call repeatedly: each call only adds games not yet present.
        """
        return self.sync_engine.sync(username, user_id, cancel_event=cancel_event,
                                     refresh_existing=refresh_existing, owned_only=owned_only)

    def group_library(self, user_id: str) -> List[GroupedGame]:
        """Current library of a user grouped into base games and expansions."""
        return group_library(self.library.get_library(user_id))

    def set_expansion_relationship(self, bgg_id, is_expansion: bool, base_game_bgg_id=None) -> Game:
        """
        Manually set whether a game is an expansion, and of which base game.

        Raises:
            InvalidRelationship: The game would expand itself
            NotFound: Unknown game
        """
        return self.catalog.set_expansion_relationship(bgg_id, is_expansion, base_game_bgg_id)

    def group_games(self, user_id: str, dragged_user_game_id: int, target_user_game_id: int) -> Game:
        """
        Make the dragged library entry an expansion of the target entry.

        If the target is itself an expansion with a known base game, the
        dragged game joins that base game instead.

        Raises:
            NotFound: Either entry is missing or belongs to another user
            InvalidRelationship: Both entries refer to the same game
        """
        dragged = self.library.get(dragged_user_game_id)
        target = self.library.get(target_user_game_id)
        if dragged is None or target is None or dragged.user_id != str(user_id) or target.user_id != str(user_id):
            raise NotFound("Could not find games for grouping")

        if target.game.is_expansion and target.game.base_game_bgg_id:
            base_bgg_id = target.game.base_game_bgg_id
        else:
            base_bgg_id = target.game.bgg_id
        if base_bgg_id == dragged.game.bgg_id:
            raise InvalidRelationship(f"{dragged.game.name} cannot be grouped under itself")
        return self.catalog.set_expansion_relationship(dragged.game.bgg_id, True, base_bgg_id)

    def ungroup_game(self, bgg_id) -> Game:
        """Turn a game back into a standalone base game."""
        return self.catalog.set_expansion_relationship(bgg_id, False)

    def update_customizations(self, bgg_id, **fields) -> Game:
        return self.catalog.update_customizations(bgg_id, **fields)

    def update_user_game(self, user_game_id: int, **fields) -> UserGame:
        return self.library.update(user_game_id, **fields)

    def remove_game(self, user_game_id: int) -> None:
        self.library.remove(user_game_id)

    def get_statistics(self, user_id: str) -> dict:
        """
        Get statistics about a user's library.

        Returns:
            Dictionary with library totals plus the catalog size
        """
        stats = library_stats(self.library.get_library(user_id))
        stats['total_games_in_catalog'] = self.catalog.count()
        return stats

    def close(self) -> None:
        self.client.close()
