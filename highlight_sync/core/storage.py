from __future__ import annotations

import os
import sqlite3
from dataclasses import dataclass
from typing import Any

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;

CREATE TABLE IF NOT EXISTS app_settings (
  key TEXT PRIMARY KEY,
  value TEXT,
  updated_at TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS records (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  title TEXT NOT NULL UNIQUE,
  record_type TEXT NOT NULL,
  url TEXT,
  content TEXT,
  comment TEXT,
  annotation TEXT,
  tags TEXT,
  created_at TEXT DEFAULT (datetime('now')),
  updated_at TEXT DEFAULT (datetime('now'))
);
"""


@dataclass
class DB:
    conn: sqlite3.Connection

    def init(self) -> None:
        self.conn.executescript(SCHEMA_SQL)
        self.conn.commit()

    def close(self) -> None:
        self.conn.close()

    # ==================== App Settings ====================

    def get_setting(self, key: str, default: str | None = None) -> str | None:
        """Get a setting value by key."""
        cur = self.conn.execute(
            "SELECT value FROM app_settings WHERE key = ?",
            (key,)
        )
        row = cur.fetchone()
        return row[0] if row else default

    def set_setting(self, key: str, value: str) -> None:
        """Set a setting value (upsert)."""
        self.conn.execute(
            """
            INSERT INTO app_settings (key, value, updated_at)
            VALUES (?, ?, datetime('now'))
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = datetime('now')
            """,
            (key, value)
        )
        self.conn.commit()

    # ==================== Records ====================

    def get_record(self, title: str) -> dict[str, Any] | None:
        cur = self.conn.execute(
            """
            SELECT id, title, record_type, url, content, comment, annotation, tags,
                   created_at, updated_at
            FROM records WHERE title = ?
            """,
            (title,),
        )
        row = cur.fetchone()
        return dict(row) if row else None

    def create_record(
        self,
        title: str,
        record_type: str,
        url: str | None = None,
        content: str | None = None,
    ) -> int:
        cur = self.conn.execute(
            "INSERT INTO records (title, record_type, url, content) VALUES (?, ?, ?, ?)",
            (title, record_type, url, content),
        )
        self.conn.commit()
        return int(cur.lastrowid)

    def update_record(self, title: str, **fields: Any) -> bool:
        """Update the given columns of a record. Returns False if no such record."""
        allowed = {"url", "content", "comment", "annotation", "tags"}
        unknown = set(fields) - allowed
        if unknown:
            raise ValueError(f"Unknown record fields: {sorted(unknown)}")
        if not fields:
            return self.get_record(title) is not None
        assignments = ", ".join(f"{name} = ?" for name in fields)
        cur = self.conn.execute(
            f"UPDATE records SET {assignments}, updated_at = datetime('now') WHERE title = ?",
            (*fields.values(), title),
        )
        self.conn.commit()
        return cur.rowcount > 0


def init_db(db_path: str) -> DB:
    """Open (and create if needed) the state database at ``db_path``."""
    if db_path != ":memory:":
        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row

    db = DB(conn=conn)
    db.init()
    return db
