"""SQLite cache backend."""

from __future__ import annotations

from pathlib import Path
import sqlite3

from llmactions.cache.base import CacheEngine
from llmactions.errors import CacheKeyError


class SqliteCache(CacheEngine):
    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self._init_db()

    def _init_db(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS cache_entries (
                    key TEXT PRIMARY KEY,
                    content TEXT NOT NULL
                )
                """
            )
            conn.commit()

    def get(self, key: str) -> str:
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT content FROM cache_entries WHERE key = ?", (key,)
            ).fetchone()
        if row is None:
            raise CacheKeyError(key)
        return row[0]

    def has(self, key: str) -> bool:
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT 1 FROM cache_entries WHERE key = ?", (key,)
            ).fetchone()
        return row is not None

    def set(self, key: str, content: str) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                "INSERT OR REPLACE INTO cache_entries (key, content) VALUES (?, ?)",
                (key, content),
            )
            conn.commit()

    def delete(self, key: str) -> None:
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute("DELETE FROM cache_entries WHERE key = ?", (key,))
            conn.commit()
        if cursor.rowcount == 0:
            raise CacheKeyError(key)
