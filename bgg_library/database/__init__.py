"""
Database module for the game catalog and user libraries.

This module handles:
- Database schema creation
- Game catalog upserts keyed by BGG id
- User library associations
"""

from .catalog import GameCatalog
from .library import UserLibrary
from .models import connect, create_database

__all__ = [
    "GameCatalog",
    "UserLibrary",
    "connect",
    "create_database",
]
