"""
User library operations.

A library row associates one user with one catalog game. The store, not
its callers, guarantees there is at most one row per (user, game).
"""

import logging
import sqlite3
from pathlib import Path
from typing import List, Optional, Set, Tuple

from ..config import DEFAULT_STATUS, GAME_STATUSES
from ..error_handling import DuplicateAssociation, NotFound
from ..models import UserGame
from .catalog import row_to_game
from .models import connect, create_database

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("status", "personal_rating", "notes")

_SELECT_JOINED = """
    SELECT ug.id AS ug_id, ug.user_id, ug.game_id, ug.status, ug.personal_rating,
           ug.notes, ug.date_added, g.*
    FROM user_games ug
    JOIN games g ON g.id = ug.game_id
"""


def _row_to_user_game(row: sqlite3.Row) -> UserGame:
    return UserGame(
        id=row["ug_id"],
        user_id=row["user_id"],
        game_id=row["game_id"],
        status=row["status"],
        personal_rating=row["personal_rating"],
        notes=row["notes"],
        date_added=row["date_added"],
        game=row_to_game(row),
    )


def _validate_status(status: str) -> None:
    if status not in GAME_STATUSES:
        raise ValueError(f"Unknown status {status!r}; expected one of {', '.join(GAME_STATUSES)}")


def _validate_rating(rating) -> None:
    if rating is not None and not 1 <= float(rating) <= 10:
        raise ValueError(f"Personal rating must be between 1 and 10, got {rating}")


class UserLibrary:
    """
    Per-user game libraries.
    """

    def __init__(self, db_path: Path):
        """
        Initialize the library store.

        Args:
            db_path: Path to the SQLite database
        """
        self.db_path = Path(db_path)
        create_database(self.db_path)

    def _insert(self, conn: sqlite3.Connection, user_id: str, game_id: int, status: str) -> None:
        try:
            conn.execute(
                "INSERT INTO user_games (user_id, game_id, status) VALUES (?, ?, ?)",
                (str(user_id), int(game_id), status),
            )
        except sqlite3.IntegrityError as e:
            if "UNIQUE" in str(e):
                raise DuplicateAssociation(f"Game {game_id} is already in the library of {user_id}") from e
            if "FOREIGN KEY" in str(e):
                raise NotFound(f"Game {game_id} is not in the catalog") from e
            raise

    def ensure_in_library(self, user_id: str, game_id: int, status: str = DEFAULT_STATUS) -> Tuple[UserGame, bool]:
        """
        Add a game to a library unless it is already there.

        Args:
            user_id: Owner of the library
            game_id: Internal catalog id of the game
            status: Status for a new row; an existing row keeps its own

        Returns:
            Tuple of (row, created)
        """
        _validate_status(status)
        conn = connect(self.db_path)
        try:
            created = True
            try:
                self._insert(conn, user_id, game_id, status)
                conn.commit()
            except DuplicateAssociation:
                conn.rollback()
                created = False
            row = conn.execute(
                _SELECT_JOINED + " WHERE ug.user_id = ? AND ug.game_id = ?",
                (str(user_id), int(game_id)),
            ).fetchone()
        finally:
            conn.close()

        if row is None:
            raise NotFound(f"Game {game_id} is not in the catalog")
        if created:
            logger.debug(f"Added game {game_id} to library of {user_id} as {status}")
        return _row_to_user_game(row), created

    def add_to_library(self, user_id: str, game_id: int, status: str = DEFAULT_STATUS) -> UserGame:
        """Add a game to a library; an existing association is returned unchanged."""
        user_game, _ = self.ensure_in_library(user_id, game_id, status)
        return user_game

    def get(self, user_game_id: int) -> Optional[UserGame]:
        conn = connect(self.db_path)
        try:
            row = conn.execute(_SELECT_JOINED + " WHERE ug.id = ?", (int(user_game_id),)).fetchone()
        finally:
            conn.close()
        return _row_to_user_game(row) if row else None

    def get_library(self, user_id: str) -> List[UserGame]:
        """All games of a user, most recently added first."""
        conn = connect(self.db_path)
        try:
            rows = conn.execute(
                _SELECT_JOINED + " WHERE ug.user_id = ? ORDER BY ug.date_added DESC, ug.id DESC",
                (str(user_id),),
            ).fetchall()
        finally:
            conn.close()
        return [_row_to_user_game(row) for row in rows]

    def find_by_bgg_id(self, user_id: str, bgg_id: int) -> Optional[UserGame]:
        conn = connect(self.db_path)
        try:
            row = conn.execute(
                _SELECT_JOINED + " WHERE ug.user_id = ? AND g.bgg_id = ?",
                (str(user_id), int(bgg_id)),
            ).fetchone()
        finally:
            conn.close()
        return _row_to_user_game(row) if row else None

    def library_bgg_ids(self, user_id: str) -> Set[int]:
        """BGG ids of every game in a user's library."""
        conn = connect(self.db_path)
        try:
            rows = conn.execute(
                "SELECT g.bgg_id FROM user_games ug JOIN games g ON g.id = ug.game_id WHERE ug.user_id = ?",
                (str(user_id),),
            ).fetchall()
        finally:
            conn.close()
        return {row[0] for row in rows}

    def update(self, user_game_id: int, **fields) -> UserGame:
        """
        Edit status, personal rating or notes of a library entry.

        Raises:
            ValueError: Unknown field or invalid value
            NotFound: No such library entry
        """
        unknown = set(fields) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Not an editable field: {', '.join(sorted(unknown))}")
        if "status" in fields:
            _validate_status(fields["status"])
        if "personal_rating" in fields:
            _validate_rating(fields["personal_rating"])

        if fields:
            assignments = ", ".join(f"{name} = ?" for name in fields)
            conn = connect(self.db_path)
            try:
                cursor = conn.execute(
                    f"UPDATE user_games SET {assignments}, updated_at = datetime('now') WHERE id = ?",
                    list(fields.values()) + [int(user_game_id)],
                )
                if cursor.rowcount == 0:
                    raise NotFound(f"Library entry {user_game_id} does not exist")
                conn.commit()
            finally:
                conn.close()

        user_game = self.get(user_game_id)
        if user_game is None:
            raise NotFound(f"Library entry {user_game_id} does not exist")
        return user_game

    def remove(self, user_game_id: int) -> None:
        """
        Delete a library entry. The catalog game itself is kept.

        Raises:
            NotFound: No such library entry
        """
        conn = connect(self.db_path)
        try:
            cursor = conn.execute("DELETE FROM user_games WHERE id = ?", (int(user_game_id),))
            if cursor.rowcount == 0:
                raise NotFound(f"Library entry {user_game_id} does not exist")
            conn.commit()
        finally:
            conn.close()
        logger.info(f"Removed library entry {user_game_id}")
