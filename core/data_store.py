"""Lightweight SQLite store for the assistant service.

Holds four tables:
  - reminders        user reminders, append-only
  - feedback         free-text feedback, write-once
  - command_history  every open-ended query and the reply it got
  - preferences      key/value client settings, upserted by key

Uses thread-local connections and WAL mode so Flask's threaded server
can read while another request writes. Writes are serialised by a lock.
"""

import logging
import sqlite3
import threading
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class DataStore:
    """SQLite-backed store for reminders, feedback, history and preferences."""

    def __init__(self, db_path: str = "nova.db"):
        self._db_path = db_path
        self._local = threading.local()
        self._write_lock = threading.Lock()
        self._connections: List[sqlite3.Connection] = []
        self._conn_lock = threading.Lock()

        # Initialize schema on main connection
        conn = self._get_conn()
        self._init_tables(conn)
        logger.info("DataStore ready (db=%s)", self._db_path)

    def _get_conn(self) -> sqlite3.Connection:
        """Get a thread-local connection (SQLite isn't thread-safe)."""
        if getattr(self._local, "conn", None) is None:
            conn = sqlite3.connect(self._db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
            self._local.conn = conn
            with self._conn_lock:
                self._connections.append(conn)
        return self._local.conn

    def _init_tables(self, conn: sqlite3.Connection):
        """Create tables if they don't exist."""
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS reminders (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                reminder TEXT NOT NULL,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP
            );

            CREATE TABLE IF NOT EXISTS feedback (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                feedback TEXT NOT NULL,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP
            );

            CREATE TABLE IF NOT EXISTS command_history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                command TEXT NOT NULL,
                response TEXT,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP
            );

            CREATE TABLE IF NOT EXISTS preferences (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                key TEXT UNIQUE NOT NULL,
                value TEXT,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
            );
        """)
        conn.commit()

    def _write(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        conn = self._get_conn()
        with self._write_lock:
            cursor = conn.execute(sql, params)
            conn.commit()
        return cursor

    # ─── Reminders ───

    def add_reminder(self, text: str) -> int:
        """Insert a reminder and return its row id."""
        cursor = self._write("INSERT INTO reminders (reminder) VALUES (?)", (text,))
        logger.debug("Reminder %d added", cursor.lastrowid)
        return cursor.lastrowid

    def get_reminders(self) -> List[str]:
        """Return reminder texts, newest first."""
        rows = self._get_conn().execute(
            "SELECT reminder FROM reminders ORDER BY created_at DESC, id DESC"
        ).fetchall()
        return [r["reminder"] for r in rows]

    # ─── Feedback ───

    def add_feedback(self, text: str) -> int:
        cursor = self._write("INSERT INTO feedback (feedback) VALUES (?)", (text,))
        return cursor.lastrowid

    # ─── Command history ───

    def record_command(self, command: str) -> int:
        """Insert a history row with no response yet. Returns the row id."""
        cursor = self._write(
            "INSERT INTO command_history (command) VALUES (?)", (command,)
        )
        return cursor.lastrowid

    def set_command_response(self, entry_id: int, response: str):
        """Attach the reply to the history row created by record_command()."""
        self._write(
            "UPDATE command_history SET response = ? WHERE id = ?",
            (response, entry_id),
        )

    def get_history(self, limit: int = 10) -> List[Dict]:
        """Return the most recent commands, newest first.

        Returns list of {id, command, response, created_at} dicts.
        """
        rows = self._get_conn().execute("""
            SELECT id, command, response, created_at FROM command_history
            ORDER BY created_at DESC, id DESC
            LIMIT ?
        """, (limit,)).fetchall()
        return [dict(r) for r in rows]

    # ─── Preferences ───

    def get_preferences(self) -> Dict[str, Optional[str]]:
        rows = self._get_conn().execute(
            "SELECT key, value FROM preferences ORDER BY key"
        ).fetchall()
        return {r["key"]: r["value"] for r in rows}

    def set_preference(self, key: str, value: Optional[str]):
        """Insert or update one preference."""
        self._write("""
            INSERT INTO preferences (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = CURRENT_TIMESTAMP
        """, (key, value))

    def close(self):
        """Close every connection opened by this store."""
        with self._conn_lock:
            for conn in self._connections:
                try:
                    conn.close()
                except sqlite3.Error as exc:
                    logger.error("DataStore close error: %s", exc)
            self._connections.clear()
        self._local = threading.local()
