from __future__ import annotations

import asyncio
import os
import sqlite3
import threading
from datetime import datetime, timezone
from typing import Protocol

RESUME_KEY_PREFIX = "resume:"


def resume_key(resume_id: str) -> str:
    return f"{RESUME_KEY_PREFIX}{resume_id}"


class KeyValueStore(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> bool: ...

    async def list(self, pattern: str) -> list[str]: ...


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SqliteKeyValueStore:
    """String key-value store on a single sqlite table.

    Blocking sqlite calls run in a worker thread so callers on the event
    loop are not stalled.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._conn_lock = threading.Lock()

    def _get_connection(self) -> sqlite3.Connection:
        with self._conn_lock:
            if self._conn is not None:
                return self._conn

            directory = os.path.dirname(self._db_path)
            if directory:
                os.makedirs(directory, exist_ok=True)

            conn = sqlite3.connect(
                self._db_path,
                check_same_thread=False,
                timeout=5,
                isolation_level=None,
            )
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
            conn.execute("PRAGMA busy_timeout=5000;")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_entries (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                """
            )
            self._conn = conn
            return conn

    def _get_sync(self, key: str) -> str | None:
        conn = self._get_connection()
        with self._conn_lock:
            cur = conn.execute("SELECT value FROM kv_entries WHERE key = ?", (key,))
            row = cur.fetchone()
        return row[0] if row else None

    def _set_sync(self, key: str, value: str) -> bool:
        conn = self._get_connection()
        with self._conn_lock:
            conn.execute(
                """
                INSERT INTO kv_entries (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (key, value, _utc_now()),
            )
        return True

    def _list_sync(self, pattern: str) -> list[str]:
        conn = self._get_connection()
        with self._conn_lock:
            cur = conn.execute(
                "SELECT value FROM kv_entries WHERE key GLOB ? ORDER BY updated_at DESC",
                (pattern,),
            )
            rows = cur.fetchall()
        return [row[0] for row in rows]

    async def get(self, key: str) -> str | None:
        return await asyncio.to_thread(self._get_sync, key)

    async def set(self, key: str, value: str) -> bool:
        return await asyncio.to_thread(self._set_sync, key, value)

    async def list(self, pattern: str) -> list[str]:
        return await asyncio.to_thread(self._list_sync, pattern)

    def close(self) -> None:
        with self._conn_lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
