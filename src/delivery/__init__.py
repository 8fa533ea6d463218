"""
Local persistence for the CLI.

Components:
- StateStore: SQLite JSON key-value store for sessions and review cards
"""

from .state_store import StateStore

__all__ = ["StateStore"]
