"""
Heuristics that correct base-game/expansion tagging coming from BGG.

BGG imports sometimes mark standalone games as expansions, or point an
expansion at a base game the user does not own. These checks compare a
freshly fetched game against the games already in the user's library.
"""

import logging
from typing import Optional, Sequence, Tuple, Union

from .config import EXPANSION_KEYWORDS
from .models import Game, GameDetails

logger = logging.getLogger(__name__)

GameLike = Union[Game, GameDetails]


def _shares_credits(game: GameLike, other: GameLike) -> bool:
    """True if the two games share a publisher or a designer."""
    publishers = set(game.publishers or []) & set(other.publishers or [])
    designers = set(game.designers or []) & set(other.designers or [])
    return bool(publishers or designers)


def is_likely_expansion(game: GameLike, potential_base: GameLike) -> bool:
    """
    Guess whether `game` extends `potential_base`.

    Checks, in order: a "Base: Subtitle" name, an expansion keyword in the
    name backed by shared credits, and a release one to three years after
    the base with shared credits and a similar name.
    """
    name = game.name.lower()
    base_name = potential_base.name.lower()

    if ":" in name and name.startswith(base_name):
        return True

    year = game.year_published
    base_year = potential_base.year_published

    if any(keyword in name for keyword in EXPANSION_KEYWORDS):
        if _shares_credits(game, potential_base) and year and base_year and year >= base_year:
            return True

    if year and base_year:
        year_diff = year - base_year
        # Published well before the supposed base game
        if year_diff < -1:
            return False
        if 0 <= year_diff <= 3:
            similar_name = base_name.split(" ")[0] in name or name.split(" ")[0] in base_name
            return _shares_credits(game, potential_base) and similar_name

    return False


def has_expansion_indicators(game: GameLike) -> bool:
    """True if the title alone looks like an expansion."""
    name = game.name.lower()
    if ":" in name and "edition" not in name:
        return True
    indicators = ["expansion", "extension", "add-on", "supplement", "module", "scenario pack", "campaign"]
    return any(indicator in name for indicator in indicators)


def apply_expansion_heuristics(details: GameDetails,
                               known_games: Sequence[GameLike] = ()) -> Tuple[bool, Optional[int]]:
    """
    Decide the expansion relationship to store for freshly fetched details.

    Args:
        details: Game as tagged by BGG
        known_games: Games already in the user's library

    Returns:
        Tuple of (is_expansion, base_game_bgg_id)
    """
    # BGG says it's a base game: trust it
    if not details.is_expansion:
        return False, None

    known = {g.bgg_id: g for g in known_games if g.bgg_id != details.bgg_id}

    if details.base_game_bgg_id is not None and details.base_game_bgg_id in known:
        supposed_base = known[details.base_game_bgg_id]
        if is_likely_expansion(details, supposed_base):
            return True, details.base_game_bgg_id
        logger.info(f"Smart detection: {details.name} is likely NOT an expansion of {supposed_base.name}")
        return False, None

    for potential_base in known.values():
        if potential_base.is_expansion:
            continue
        if is_likely_expansion(details, potential_base):
            logger.info(f"Smart detection: found potential base game {potential_base.name} for {details.name}")
            return True, potential_base.bgg_id

    if not has_expansion_indicators(details):
        logger.info(f"Smart detection: {details.name} marked as expansion but appears to be standalone")
        return False, None

    return True, details.base_game_bgg_id
