"""
Shared data models for the BGG Library package.
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class SearchResult:
    """One hit from the BGG search endpoint."""
    bgg_id: int
    name: str
    year_published: Optional[int] = None


@dataclass
class CollectionItem:
    """One entry of a user's BGG collection listing."""
    bgg_id: int
    name: str
    year_published: Optional[int] = None
    status: str = "owned"
    num_plays: int = 0


@dataclass
class GameDetails:
    """
    Game metadata as supplied by BGG.

    Fields BGG did not send stay None so the catalog never blanks out
    data it already holds.
    """
    bgg_id: int
    name: str
    year_published: Optional[int] = None
    min_players: Optional[int] = None
    max_players: Optional[int] = None
    playing_time: Optional[int] = None
    min_age: Optional[int] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    rating: Optional[float] = None
    complexity: Optional[float] = None
    categories: Optional[List[str]] = None
    mechanics: Optional[List[str]] = None
    designers: Optional[List[str]] = None
    publishers: Optional[List[str]] = None
    is_expansion: bool = False
    base_game_bgg_id: Optional[int] = None


@dataclass
class Game:
    """Canonical catalog row, one per BGG id."""
    id: int
    bgg_id: int
    name: str
    year_published: Optional[int] = None
    min_players: Optional[int] = None
    max_players: Optional[int] = None
    playing_time: Optional[int] = None
    min_age: Optional[int] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    rating: Optional[float] = None
    complexity: Optional[float] = None
    categories: Optional[List[str]] = None
    mechanics: Optional[List[str]] = None
    designers: Optional[List[str]] = None
    publishers: Optional[List[str]] = None
    is_expansion: bool = False
    base_game_bgg_id: Optional[int] = None
    relationship_locked: bool = False
    # User overrides, never touched by sync
    core_mechanic: Optional[str] = None
    additional_mechanic_1: Optional[str] = None
    additional_mechanic_2: Optional[str] = None
    custom_title: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class UserGame:
    """A game in one user's library."""
    id: int
    user_id: str
    game_id: int
    status: str = "owned"
    personal_rating: Optional[float] = None
    notes: Optional[str] = None
    date_added: Optional[str] = None
    game: Optional[Game] = None


@dataclass
class GroupedGame:
    """A base game with the expansions the user owns for it."""
    base_game: UserGame
    expansions: List[UserGame] = field(default_factory=list)
    total_count: int = 1


@dataclass
class SyncFailure:
    """A collection entry that could not be imported."""
    bgg_id: int
    name: str
    error: str


@dataclass
class SyncOutcome:
    """Result of one collection sync run."""
    username: str
    total: int = 0
    added: int = 0
    already_present: int = 0
    failed: int = 0
    cancelled: int = 0
    failures: List[SyncFailure] = field(default_factory=list)
    message: str = ""

    def summarize(self) -> str:
        """Build the human readable summary and store it on the outcome."""
        if self.total == 0:
            self.message = f"No games found in the BGG collection of '{self.username}'"
            return self.message
        parts = [
            f"{self.added} added",
            f"{self.already_present} already in library",
            f"{self.failed} failed",
        ]
        if self.cancelled:
            parts.append(f"{self.cancelled} cancelled")
        self.message = f"Collection sync complete: {', '.join(parts)}"
        if self.failed or self.cancelled:
            self.message += ". Run the sync again to pick up the remaining games."
        return self.message
