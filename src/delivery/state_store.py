"""
SQLite State Store.

Local key-value persistence for the engine's caller-held arrays:
- Saved sessions, each carrying its learning state (concepts, links, summary)
- Review cards
- The active session id

Values are stored as JSON documents under string keys, mirroring the
browser client's local storage. Reads never raise: a missing or corrupt
entry is logged and the caller gets the default.

Database location: ~/.cogniguide/state.db
"""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any

from loguru import logger

from src.core.models import ReviewCard, SavedSession

CARDS_KEY = "review_cards"
SESSIONS_KEY = "sessions"
ACTIVE_SESSION_KEY = "active_session"


class StateStore:
    """SQLite-backed JSON key-value store."""

    DEFAULT_DB_PATH = Path.home() / ".cogniguide" / "state.db"

    def __init__(self, db_path: Path | None = None):
        """
        Initialize the state store.

        Args:
            db_path: Custom database path (defaults to ~/.cogniguide/state.db)
        """
        self.db_path = Path(db_path).expanduser() if db_path else self.DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn: sqlite3.Connection | None = None
        self._init_schema()

        logger.debug(f"StateStore initialized at {self.db_path}")

    @property
    def conn(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path))
        return self._conn

    def _init_schema(self) -> None:
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        self.conn.commit()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    # =========================================================================
    # Raw JSON access
    # =========================================================================

    def get_json(self, key: str, default: Any = None) -> Any:
        row = self.conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        if row is None:
            return default
        try:
            return json.loads(row[0])
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse stored value for {key!r}: {e}")
            return default

    def set_json(self, key: str, value: Any) -> None:
        self.conn.execute(
            """
            INSERT INTO kv_store (key, value, updated_at)
            VALUES (?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
            """,
            (key, json.dumps(value, ensure_ascii=False)),
        )
        self.conn.commit()

    def delete(self, key: str) -> None:
        self.conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        self.conn.commit()

    # =========================================================================
    # Typed accessors
    # =========================================================================

    def get_active_session(self) -> str | None:
        return self.get_json(ACTIVE_SESSION_KEY)

    def set_active_session(self, session_id: str) -> None:
        self.set_json(ACTIVE_SESSION_KEY, session_id)

    def get_session(self, session_id: str) -> SavedSession | None:
        return next((s for s in self.load_sessions() if s.id == session_id), None)

    def upsert_session(self, session: SavedSession) -> None:
        """Replace the stored session with the same id, or append it."""
        sessions = [s for s in self.load_sessions() if s.id != session.id]
        sessions.append(session)
        self.save_sessions(sessions)

    def load_cards(self) -> list[ReviewCard]:
        cards = []
        for raw in self.get_json(CARDS_KEY, []) or []:
            try:
                cards.append(ReviewCard.from_dict(raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable stored card: {e}")
        return cards

    def save_cards(self, cards: list[ReviewCard]) -> None:
        self.set_json(CARDS_KEY, [card.to_dict() for card in cards])

    def load_sessions(self) -> list[SavedSession]:
        sessions = []
        for raw in self.get_json(SESSIONS_KEY, []) or []:
            try:
                sessions.append(SavedSession.from_dict(raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable stored session: {e}")
        return sessions

    def save_sessions(self, sessions: list[SavedSession]) -> None:
        self.set_json(SESSIONS_KEY, [s.to_dict() for s in sessions])
