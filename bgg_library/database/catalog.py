"""
Game catalog operations.

One row per BGG id. Rows are created the first time a BGG id is resolved,
refreshed on every later resolution, and never deleted by sync.
"""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Optional

from ..error_handling import InvalidRelationship, NotFound
from ..models import Game, GameDetails
from .models import connect, create_database

logger = logging.getLogger(__name__)

# Columns BGG supplies; an absent (None) value never overwrites stored data
SCALAR_FIELDS = [
    "year_published", "min_players", "max_players", "playing_time", "min_age",
    "description", "image_url", "thumbnail_url", "rating", "complexity",
]
LIST_FIELDS = ["categories", "mechanics", "designers", "publishers"]
CUSTOM_FIELDS = ["core_mechanic", "additional_mechanic_1", "additional_mechanic_2", "custom_title"]

# core_mechanic is only seeded on insert; refreshes leave the user's choice alone
_INSERT_COLUMNS = ["bgg_id", "name"] + SCALAR_FIELDS + LIST_FIELDS + ["is_expansion", "base_game_bgg_id", "core_mechanic"]

_UPSERT_SQL = f"""
    INSERT INTO games ({", ".join(_INSERT_COLUMNS)}, created_at, updated_at)
    VALUES ({", ".join("?" for _ in _INSERT_COLUMNS)}, datetime('now'), datetime('now'))
    ON CONFLICT(bgg_id) DO UPDATE SET
        name = excluded.name,
        {", ".join(f"{c} = COALESCE(excluded.{c}, games.{c})" for c in SCALAR_FIELDS + LIST_FIELDS)},
        is_expansion = CASE WHEN games.relationship_locked THEN games.is_expansion
                            ELSE excluded.is_expansion END,
        base_game_bgg_id = CASE WHEN games.relationship_locked THEN games.base_game_bgg_id
                                ELSE excluded.base_game_bgg_id END,
        updated_at = datetime('now')
"""


def _load_list(raw: Optional[str]):
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning(f"Ignoring unreadable JSON list in games table: {raw[:60]!r}")
        return None


def row_to_game(row: sqlite3.Row) -> Game:
    """Build a Game from a games row (or a join exposing the same column names)."""
    return Game(
        id=row["id"],
        bgg_id=row["bgg_id"],
        name=row["name"],
        year_published=row["year_published"],
        min_players=row["min_players"],
        max_players=row["max_players"],
        playing_time=row["playing_time"],
        min_age=row["min_age"],
        description=row["description"],
        image_url=row["image_url"],
        thumbnail_url=row["thumbnail_url"],
        rating=row["rating"],
        complexity=row["complexity"],
        categories=_load_list(row["categories"]),
        mechanics=_load_list(row["mechanics"]),
        designers=_load_list(row["designers"]),
        publishers=_load_list(row["publishers"]),
        is_expansion=bool(row["is_expansion"]),
        base_game_bgg_id=row["base_game_bgg_id"],
        relationship_locked=bool(row["relationship_locked"]),
        core_mechanic=row["core_mechanic"],
        additional_mechanic_1=row["additional_mechanic_1"],
        additional_mechanic_2=row["additional_mechanic_2"],
        custom_title=row["custom_title"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _normalize_bgg_id(value, label: str = "BGG id") -> Optional[int]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidRelationship(f"{label} must be numeric, got {value!r}")


class GameCatalog:
    """
    Catalog of games keyed by BGG id.
    """

    def __init__(self, db_path: Path):
        """
        Initialize the catalog.

        Args:
            db_path: Path to the SQLite database
        """
        self.db_path = Path(db_path)
        create_database(self.db_path)

    def upsert(self, details: GameDetails) -> Game:
        """
        Insert a game, or refresh it if the BGG id is already known.

        Absent fields keep their stored value and a manually edited expansion
        relationship is kept. A new row gets its first mechanic as core
        mechanic; after that user overrides are never written.
        The statement is atomic, so concurrent callers converge on one row.

        Args:
            details: Metadata fetched from BGG

        Returns:
            The stored row
        """
        values = [int(details.bgg_id), details.name]
        values += [getattr(details, f) for f in SCALAR_FIELDS]
        values += [None if getattr(details, f) is None else json.dumps(getattr(details, f)) for f in LIST_FIELDS]
        base_id = details.base_game_bgg_id if details.is_expansion else None
        if base_id is not None and int(base_id) == int(details.bgg_id):
            base_id = None
        values += [int(bool(details.is_expansion)), base_id]
        values.append(details.mechanics[0] if details.mechanics else None)

        conn = connect(self.db_path)
        try:
            conn.execute(_UPSERT_SQL, values)
            conn.commit()
            row = conn.execute("SELECT * FROM games WHERE bgg_id = ?", (int(details.bgg_id),)).fetchone()
        finally:
            conn.close()
        logger.debug(f"Upserted game {details.bgg_id} ({details.name})")
        return row_to_game(row)

    def get(self, game_id: int) -> Optional[Game]:
        conn = connect(self.db_path)
        try:
            row = conn.execute("SELECT * FROM games WHERE id = ?", (game_id,)).fetchone()
        finally:
            conn.close()
        return row_to_game(row) if row else None

    def get_by_bgg_id(self, bgg_id: int) -> Optional[Game]:
        conn = connect(self.db_path)
        try:
            row = conn.execute("SELECT * FROM games WHERE bgg_id = ?", (int(bgg_id),)).fetchone()
        finally:
            conn.close()
        return row_to_game(row) if row else None

    def set_expansion_relationship(self, bgg_id, is_expansion: bool, base_game_bgg_id=None) -> Game:
        """
        Mark a game as an expansion of another game, or as a base game.

        The relationship belongs to the catalog row, so it is shared by
        every library holding the game. Once edited here it is locked
        against being overwritten by later syncs.

        Args:
            bgg_id: Game to change
            is_expansion: Whether the game is an expansion
            base_game_bgg_id: BGG id of the base game (ignored when is_expansion is False)

        Raises:
            InvalidRelationship: The game would expand itself, or an id is not numeric
            NotFound: No game with this BGG id
        """
        game_bgg_id = _normalize_bgg_id(bgg_id)
        if game_bgg_id is None:
            raise InvalidRelationship("A BGG id is required")
        base_id = _normalize_bgg_id(base_game_bgg_id, "Base game BGG id")
        if base_id is not None and base_id == game_bgg_id:
            raise InvalidRelationship(f"Game {game_bgg_id} cannot be an expansion of itself")
        if not is_expansion:
            base_id = None

        conn = connect(self.db_path)
        try:
            cursor = conn.execute("""
                UPDATE games SET
                    is_expansion = ?, base_game_bgg_id = ?, relationship_locked = 1,
                    updated_at = datetime('now')
                WHERE bgg_id = ?
            """, (int(bool(is_expansion)), base_id, game_bgg_id))
            if cursor.rowcount == 0:
                raise NotFound(f"Game {game_bgg_id} is not in the catalog")
            conn.commit()
            row = conn.execute("SELECT * FROM games WHERE bgg_id = ?", (game_bgg_id,)).fetchone()
        finally:
            conn.close()

        if is_expansion:
            logger.info(f"Game {game_bgg_id} is now an expansion of {base_id}")
        else:
            logger.info(f"Game {game_bgg_id} is now a base game")
        return row_to_game(row)

    def update_customizations(self, bgg_id, **fields) -> Game:
        """
        Set user overrides (core/additional mechanics, custom title).

        Only the keywords passed are written; passing None clears a value.

        Raises:
            ValueError: Unknown field name
            NotFound: No game with this BGG id
        """
        unknown = set(fields) - set(CUSTOM_FIELDS)
        if unknown:
            raise ValueError(f"Not a customizable field: {', '.join(sorted(unknown))}")
        game = self.get_by_bgg_id(bgg_id)
        if game is None:
            raise NotFound(f"Game {bgg_id} is not in the catalog")
        if not fields:
            return game

        assignments = ", ".join(f"{name} = ?" for name in fields)
        conn = connect(self.db_path)
        try:
            conn.execute(
                f"UPDATE games SET {assignments}, updated_at = datetime('now') WHERE bgg_id = ?",
                list(fields.values()) + [int(bgg_id)],
            )
            conn.commit()
        finally:
            conn.close()
        logger.info(f"Updated {', '.join(fields)} for game {bgg_id}")
        return self.get_by_bgg_id(bgg_id)

    def count(self) -> int:
        conn = connect(self.db_path)
        try:
            return conn.execute("SELECT COUNT(*) FROM games").fetchone()[0]
        finally:
            conn.close()
