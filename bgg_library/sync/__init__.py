"""
Collection synchronization with BoardGameGeek.
"""

from .engine import CollectionSyncEngine

__all__ = [
    "CollectionSyncEngine",
]
