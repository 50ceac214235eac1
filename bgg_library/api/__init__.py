"""
BoardGameGeek XML API2 access.

This package handles:
- HTTP requests to the search, thing and collection endpoints
- Parsing the XML answers into typed records
"""

from .client import BGGClient, RequestThrottle
from .parser import parse_collection, parse_game_details, parse_search_results

__all__ = [
    "BGGClient",
    "RequestThrottle",
    "parse_collection",
    "parse_game_details",
    "parse_search_results",
]
