import logging
import os
import sqlite3

from ..config import DB_TIMEOUT, GAME_STATUSES

logger = logging.getLogger(__name__)

_STATUS_LIST = ", ".join(f"'{s}'" for s in GAME_STATUSES)


def connect(db_path, timeout: float = DB_TIMEOUT) -> sqlite3.Connection:
    """Open a connection with row access by column name and foreign keys on."""
    conn = sqlite3.connect(str(db_path), timeout=timeout)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def create_database(db_path="bgg_library.db"):
    """Create the database and tables for the game catalog and user libraries."""

    # Ensure database directory exists (only if path contains directory)
    db_dir = os.path.dirname(str(db_path))
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)

    conn = connect(db_path)
    cursor = conn.cursor()

    try:
        # WAL lets readers proceed while a sync is writing
        cursor.execute("PRAGMA journal_mode = WAL")

        # Games table with JSON arrays for categories, mechanics, designers, publishers
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS games (
                id INTEGER PRIMARY KEY,
                bgg_id INTEGER UNIQUE NOT NULL,
                name TEXT NOT NULL,
                year_published INTEGER,
                min_players INTEGER,
                max_players INTEGER,
                playing_time INTEGER,
                min_age INTEGER,
                description TEXT,
                image_url TEXT,
                thumbnail_url TEXT,
                rating REAL,
                complexity REAL,
                categories TEXT,  -- JSON array
                mechanics TEXT,   -- JSON array
                designers TEXT,   -- JSON array
                publishers TEXT,  -- JSON array
                is_expansion INTEGER NOT NULL DEFAULT 0,
                base_game_bgg_id INTEGER CHECK (base_game_bgg_id IS NULL OR base_game_bgg_id != bgg_id),
                relationship_locked INTEGER NOT NULL DEFAULT 0,
                core_mechanic TEXT,
                additional_mechanic_1 TEXT,
                additional_mechanic_2 TEXT,
                custom_title TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        cursor.execute(f"""
            CREATE TABLE IF NOT EXISTS user_games (
                id INTEGER PRIMARY KEY,
                user_id TEXT NOT NULL,
                game_id INTEGER NOT NULL REFERENCES games(id) ON DELETE CASCADE,
                status TEXT NOT NULL DEFAULT 'owned' CHECK (status IN ({_STATUS_LIST})),
                personal_rating REAL,
                notes TEXT,
                date_added TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE (user_id, game_id)
            )
        """)
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_user_games_user ON user_games(user_id)")

        # Add missing columns to databases created by older versions
        columns_to_add = [
            ("relationship_locked", "INTEGER NOT NULL DEFAULT 0"),
            ("additional_mechanic_1", "TEXT"),
            ("additional_mechanic_2", "TEXT"),
            ("custom_title", "TEXT"),
        ]
        for column_name, column_def in columns_to_add:
            try:
                cursor.execute(f"ALTER TABLE games ADD COLUMN {column_name} {column_def}")
                logger.info(f"Added {column_name} column to existing database")
            except sqlite3.OperationalError:
                # Column already exists, ignore
                pass

        conn.commit()
    finally:
        conn.close()
    logger.info(f"Database ready at {db_path}")


if __name__ == "__main__":
    create_database()
