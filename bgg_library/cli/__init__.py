"""
Command-line interface for the BGG Library package.

This module provides CLI commands for:
- Searching BGG
- Syncing a BGG collection into a library
- Browsing and regrouping a library
"""

from .main import main

__all__ = [
    "main",
]
