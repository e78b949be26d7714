from __future__ import annotations

import sqlite3
from pathlib import Path


def default_store_path() -> Path:
    from .config import get_paths

    return get_paths().store_db


def connect(db_path: Path | str) -> sqlite3.Connection:
    path = Path(db_path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    try:
        conn.execute("PRAGMA journal_mode = WAL")
    except sqlite3.OperationalError:
        conn.execute("PRAGMA journal_mode = DELETE")
    conn.execute("PRAGMA synchronous = NORMAL")
    return conn


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS kv (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );
        CREATE TABLE IF NOT EXISTS wallet_history (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            created_at INTEGER NOT NULL,
            type TEXT NOT NULL,
            amount INTEGER NOT NULL,
            mint_url TEXT,
            note TEXT
        );
        CREATE TABLE IF NOT EXISTS wallet_quotes (
            quote_id TEXT PRIMARY KEY,
            mint_url TEXT NOT NULL,
            amount INTEGER NOT NULL,
            request TEXT NOT NULL,
            created_at INTEGER NOT NULL,
            claimed_at INTEGER
        );
        """
    )
    conn.commit()
