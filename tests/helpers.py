"""
Shared builders and fakes for the test suite.
"""

import copy
import threading
from typing import Dict, Iterable, List, Optional

from bgg_library.error_handling import NotFound
from bgg_library.models import CollectionItem, Game, GameDetails, UserGame


def thing_xml(bgg_id: int, name: str, item_type: str = "boardgame", year: Optional[int] = 2000,
              base_ids: Iterable[int] = (), extra: str = "") -> bytes:
    """Build a minimal /thing response."""
    links = "".join(
        f'<link type="boardgameexpansion" id="{base}" value="Base {base}" inbound="true"/>'
        for base in base_ids
    )
    year_xml = f'<yearpublished value="{year}"/>' if year is not None else ""
    return (
        f'<?xml version="1.0" encoding="utf-8"?>'
        f'<items termsofuse="https://boardgamegeek.com/xmlapi/termsofuse">'
        f'<item type="{item_type}" id="{bgg_id}">'
        f'<name type="primary" sortindex="1" value="{name}"/>'
        f'{year_xml}{links}{extra}'
        f'</item></items>'
    ).encode("utf-8")


def make_details(bgg_id: int, name: str, **kwargs) -> GameDetails:
    return GameDetails(bgg_id=bgg_id, name=name, **kwargs)


def make_user_game(ug_id: int, bgg_id: int, name: str, is_expansion: bool = False,
                   base_game_bgg_id: Optional[int] = None, status: str = "owned",
                   custom_title: Optional[str] = None, date_added: Optional[str] = None,
                   personal_rating: Optional[float] = None, **game_fields) -> UserGame:
    """Build a library entry with its game attached, without touching a database."""
    game = Game(id=bgg_id, bgg_id=bgg_id, name=name, is_expansion=is_expansion,
                base_game_bgg_id=base_game_bgg_id, custom_title=custom_title, **game_fields)
    return UserGame(id=ug_id, user_id="user-1", game_id=game.id, status=status,
                    personal_rating=personal_rating, date_added=date_added, game=game)


def make_listing(ids: Iterable[int], status: str = "owned") -> List[CollectionItem]:
    return [CollectionItem(bgg_id=i, name=f"Game {i}", status=status) for i in ids]


class FakeBGGClient:
    """
    In-memory stand-in for BGGClient.

    Args:
        listings: Successive collection listings; the last one repeats
        details: GameDetails per BGG id
        failures: Per BGG id, either one exception raised on every call or
            a list of exceptions raised on successive calls
    """

    def __init__(self, listings: Optional[List[List[CollectionItem]]] = None,
                 details: Optional[Dict[int, GameDetails]] = None,
                 failures: Optional[Dict[int, object]] = None):
        self.listings = list(listings or [])
        self.details = dict(details or {})
        self.failures = dict(failures or {})
        self.listing_error: Optional[Exception] = None
        self.detail_calls: List[int] = []
        self.listing_calls = 0
        self._lock = threading.Lock()

    def fetch_collection(self, username: str, owned_only: bool = True) -> List[CollectionItem]:
        self.listing_calls += 1
        if self.listing_error is not None:
            raise self.listing_error
        if not self.listings:
            return []
        if len(self.listings) > 1:
            return self.listings.pop(0)
        return list(self.listings[0])

    def fetch_details(self, bgg_id: int) -> GameDetails:
        with self._lock:
            self.detail_calls.append(bgg_id)
            pending = self.failures.get(bgg_id)
            if isinstance(pending, Exception):
                raise pending
            if pending:
                raise pending.pop(0)
        if bgg_id not in self.details:
            raise NotFound(f"BGG item {bgg_id} not found")
        return copy.deepcopy(self.details[bgg_id])

    def search(self, term: str, limit: int = 10):
        return []

    def close(self) -> None:
        pass
