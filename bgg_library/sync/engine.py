"""
Collection sync engine.

Imports a user's BGG collection into the catalog and the user's library.
Each run fetches the listing once, then resolves every entry on a small
worker pool. Runs are idempotent: entries already in the library are left
alone, so re-running a sync only fills in what an earlier (possibly
truncated) run missed.
"""

import logging
import sqlite3
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Collection, List, Optional, Sequence, Tuple

from ..config import EXPANSION_HEURISTICS, MAX_RETRIES, RETRY_DELAY, SYNC_WORKERS
from ..database import GameCatalog, UserLibrary
from ..error_handling import BGGError, SyncFailed, call_with_retries
from ..expansions import apply_expansion_heuristics
from ..models import CollectionItem, Game, SyncFailure, SyncOutcome

logger = logging.getLogger(__name__)

ADDED = "added"
ALREADY_PRESENT = "already_present"
FAILED = "failed"
CANCELLED = "cancelled"


class CollectionSyncEngine:
    """
    Orchestrates listing fetch, game resolution and library attachment.
    """

    def __init__(self, client, catalog: GameCatalog, library: UserLibrary,
                 workers: int = SYNC_WORKERS, max_retries: int = MAX_RETRIES,
                 retry_delay: float = RETRY_DELAY, use_heuristics: bool = EXPANSION_HEURISTICS,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Initialize the sync engine.

        Args:
            client: BGG client exposing fetch_collection and fetch_details
            catalog: Game catalog store
            library: User library store
            workers: Maximum number of items resolved concurrently
            max_retries: Attempts per request for transient errors
            retry_delay: Base backoff delay in seconds
            use_heuristics: Correct BGG expansion tagging against the user's library
            sleep: Sleep function used for backoff (injectable for tests)
        """
        self.client = client
        self.catalog = catalog
        self.library = library
        self.workers = max(1, workers)
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.use_heuristics = use_heuristics
        self._sleep = sleep

    def _with_retries(self, func, *args, **kwargs):
        return call_with_retries(func, *args, max_retries=self.max_retries,
                                 retry_delay=self.retry_delay, sleep=self._sleep, **kwargs)

    def fetch_listing(self, username: str, owned_only: bool = True) -> List[CollectionItem]:
        """
        Fetch the collection listing, retrying transient errors.

        Raises:
            SyncFailed: The listing could not be fetched
        """
        try:
            return self._with_retries(self.client.fetch_collection, username, owned_only=owned_only)
        except BGGError as e:
            logger.error(f"Failed to fetch BGG collection for {username}: {e}")
            raise SyncFailed(f"Could not fetch the BGG collection of '{username}': {e} Please try again.") from e

    def sync(self, username: str, user_id: str, cancel_event: Optional[threading.Event] = None,
             refresh_existing: bool = False, owned_only: bool = True) -> SyncOutcome:
        """
        Import a user's BGG collection into their library.

        The listing BGG returns for large collections may be incomplete;
        calling sync again picks up the missing games without duplicating
        the ones already imported.

        Args:
            username: BGG username
            user_id: Local user owning the library
            cancel_event: When set, items not yet started are skipped
            refresh_existing: Also refresh catalog metadata of games already in the library
            owned_only: Only import games marked as owned on BGG

        Returns:
            Counts of added, already present, failed and cancelled entries

        Raises:
            ValueError: Blank username
            SyncFailed: The listing itself could not be fetched
        """
        username = (username or "").strip()
        if not username:
            raise ValueError("A BGG username is required")

        outcome = SyncOutcome(username=username)
        logger.info(f"Syncing BGG collection of {username} into library of {user_id}")

        listing = self.fetch_listing(username, owned_only=owned_only)
        outcome.total = len(listing)
        if not listing:
            logger.warning(f"BGG returned an empty collection for {username}")
            outcome.summarize()
            return outcome

        present = self.library.library_bgg_ids(user_id)
        known_games: List[Game] = []
        if self.use_heuristics:
            known_games = [ug.game for ug in self.library.get_library(user_id) if ug.game is not None]

        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="bgg-sync") as executor:
            futures = {
                executor.submit(self._process_item, item, user_id, present, known_games,
                                cancel_event, refresh_existing): item
                for item in listing
            }
            for done, future in enumerate(as_completed(futures), 1):
                item = futures[future]
                result, error = future.result()
                self._record(outcome, item, result, error)
                logger.debug(f"[{done}/{outcome.total}] {item.name}: {result}")

        message = outcome.summarize()
        logger.info(message)
        return outcome

    @staticmethod
    def _record(outcome: SyncOutcome, item: CollectionItem, result: str, error: Optional[str]) -> None:
        if result == ADDED:
            outcome.added += 1
        elif result == ALREADY_PRESENT:
            outcome.already_present += 1
        elif result == CANCELLED:
            outcome.cancelled += 1
        else:
            outcome.failed += 1
            outcome.failures.append(SyncFailure(bgg_id=item.bgg_id, name=item.name, error=error or "unknown error"))

    def _process_item(self, item: CollectionItem, user_id: str, present: Collection[int],
                      known_games: Sequence[Game], cancel_event: Optional[threading.Event],
                      refresh_existing: bool) -> Tuple[str, Optional[str]]:
        """Resolve one listing entry and attach it to the library."""
        if cancel_event is not None and cancel_event.is_set():
            return CANCELLED, None

        if item.bgg_id in present and not refresh_existing:
            logger.debug(f"Game {item.name} already in library of {user_id}")
            return ALREADY_PRESENT, None

        try:
            details = self._with_retries(self.client.fetch_details, item.bgg_id)

            if self.use_heuristics:
                is_expansion, base_id = apply_expansion_heuristics(details, known_games)
                if (is_expansion, base_id) != (details.is_expansion, details.base_game_bgg_id):
                    logger.info(
                        f"Smart detection corrected: {details.name} - was "
                        f"{'expansion' if details.is_expansion else 'base'}, now "
                        f"{'expansion' if is_expansion else 'base'}"
                    )
                    details.is_expansion = is_expansion
                    details.base_game_bgg_id = base_id

            game = self.catalog.upsert(details)
            _, created = self.library.ensure_in_library(user_id, game.id, item.status)
        except (BGGError, sqlite3.Error) as e:
            logger.warning(f"Error importing game {item.name} ({item.bgg_id}): {e}")
            return FAILED, str(e)
        except Exception as e:
            # Any other error fails only this item
            logger.exception(f"Unexpected error importing game {item.name} ({item.bgg_id})")
            return FAILED, f"{type(e).__name__}: {e}"

        if created:
            logger.info(f"Successfully imported {game.name}")
            return ADDED, None
        return ALREADY_PRESENT, None
