"""
Library grouping: base games with their expansions nested underneath.

Everything here is pure and works on a snapshot of a user's library, so
callers simply recompute after any change.
"""

from collections import Counter
from typing import Dict, Iterable, List, Optional

from .config import GAME_STATUSES
from .models import Game, GroupedGame, UserGame

GAME_TYPES = ("all", "base_games", "expansions")

SORT_OPTIONS = {
    "name": "Alphabetical",
    "date_added": "Recently Added",
    "bgg_rating": "BGG Rating",
    "personal_rating": "Personal Rating",
    "min_players": "Min Players",
    "max_players": "Max Players",
    "core_mechanic": "Core Mechanic",
    "playing_time": "Playing Time",
}


def display_title(game: Game) -> str:
    """Custom title if the user set one, BGG name otherwise."""
    return game.custom_title or game.name


def _title_key(group: GroupedGame):
    game = group.base_game.game
    title = display_title(game)
    return title.casefold(), title, game.bgg_id


def group_library(user_games: Iterable[UserGame]) -> List[GroupedGame]:
    """
    Group a user's library into base games and their expansions.

    Base games are collected first so an expansion finds its base no
    matter where either appears in the input. Expansions whose base game
    is not in the library (or is unset) become standalone entries.

    Args:
        user_games: Library entries with their games attached

    Returns:
        Groups sorted by display title, case-insensitively
    """
    user_games = [ug for ug in user_games if ug.game is not None]
    base_groups: Dict[int, GroupedGame] = {}
    standalone: List[GroupedGame] = []

    # Pass 1: base games
    for user_game in user_games:
        if not user_game.game.is_expansion:
            base_groups[user_game.game.bgg_id] = GroupedGame(base_game=user_game, expansions=[], total_count=1)

    # Pass 2: attach expansions
    for user_game in user_games:
        game = user_game.game
        if not game.is_expansion:
            continue
        group = base_groups.get(game.base_game_bgg_id) if game.base_game_bgg_id is not None else None
        if group is not None:
            group.expansions.append(user_game)
            group.total_count += 1
        else:
            standalone.append(GroupedGame(base_game=user_game, expansions=[], total_count=1))

    return sorted(list(base_groups.values()) + standalone, key=_title_key)


def filter_groups(groups: Iterable[GroupedGame], query: str = "", status: Optional[str] = None,
                  game_type: str = "all") -> List[GroupedGame]:
    """
    Filter groups by title, status and game type.

    Args:
        groups: Output of group_library
        query: Case-insensitive substring of the base entry's display title
        status: Keep groups whose base or any expansion has this status
        game_type: "all", "base_games" (base entry is not an expansion) or
            "expansions" (group holds at least one expansion)
    """
    if status is not None and status not in GAME_STATUSES:
        raise ValueError(f"Unknown status {status!r}")
    if game_type not in GAME_TYPES:
        raise ValueError(f"Unknown game type {game_type!r}; expected one of {', '.join(GAME_TYPES)}")

    needle = (query or "").strip().casefold()
    result = []
    for group in groups:
        if needle and needle not in display_title(group.base_game.game).casefold():
            continue
        if status is not None:
            if group.base_game.status != status and not any(e.status == status for e in group.expansions):
                continue
        if game_type == "base_games" and group.base_game.game.is_expansion:
            continue
        if game_type == "expansions" and not (group.expansions or group.base_game.game.is_expansion):
            continue
        result.append(group)
    return result


def sort_groups(groups: Iterable[GroupedGame], sort_by: str = "name") -> List[GroupedGame]:
    """
    Sort groups by one of SORT_OPTIONS. Ratings and date sort descending,
    everything else ascending; ties keep alphabetical order.
    """
    if sort_by not in SORT_OPTIONS:
        raise ValueError(f"Unknown sort option {sort_by!r}")

    ordered = sorted(groups, key=_title_key)
    if sort_by == "name":
        return ordered

    def key(group: GroupedGame):
        entry = group.base_game
        game = entry.game
        if sort_by == "date_added":
            return entry.date_added or ""
        if sort_by == "bgg_rating":
            return game.rating or 0
        if sort_by == "personal_rating":
            return entry.personal_rating or 0
        if sort_by == "core_mechanic":
            return (game.core_mechanic or "").casefold()
        return getattr(game, sort_by) or 0

    descending = sort_by in ("date_added", "bgg_rating", "personal_rating")
    return sorted(ordered, key=key, reverse=descending)


def library_stats(user_games: Iterable[UserGame]) -> Dict[str, object]:
    """
    Count owned games, split into base games and expansions.

    Returns:
        Dictionary with totals and a per-status breakdown
    """
    user_games = [ug for ug in user_games if ug.game is not None]
    owned = [ug for ug in user_games if ug.status == "owned"]
    by_status = Counter(ug.status for ug in user_games)
    return {
        'total_entries': len(user_games),
        'total_owned': len(owned),
        'owned_expansions': sum(1 for ug in owned if ug.game.is_expansion),
        'owned_base_games': sum(1 for ug in owned if not ug.game.is_expansion),
        'by_status': {status: by_status.get(status, 0) for status in GAME_STATUSES},
    }
