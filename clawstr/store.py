from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from types import TracebackType

from . import db
from .errors import StoreError

logger = logging.getLogger(__name__)


class KeyValueStore:
    """String key/value table backed by a local SQLite file.

    The connection is opened on first use and can be closed at any time;
    the next call reopens it. Other subsystems may keep their own keys in
    the same table.
    """

    def __init__(self, db_path: Path | str | None = None):
        self.db_path = Path(db_path).expanduser() if db_path else db.default_store_path()
        self._conn: sqlite3.Connection | None = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            try:
                conn = db.connect(self.db_path)
                db.initialize_schema(conn)
            except (sqlite3.Error, OSError) as exc:
                raise StoreError(f"Failed to open store at {self.db_path}: {exc}") from exc
            logger.debug("opened store %s", self.db_path)
            self._conn = conn
        return self._conn

    def get(self, key: str) -> str | None:
        try:
            row = self.conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to read {key!r}: {exc}") from exc
        if row is None:
            return None
        return str(row["value"])

    def set(self, key: str, value: str) -> None:
        try:
            self.conn.execute(
                "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)", (key, value)
            )
            self.conn.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to write {key!r}: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self.conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            self.conn.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to delete {key!r}: {exc}") from exc

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def close(self) -> None:
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None
        logger.debug("closed store %s", self.db_path)

    def __enter__(self) -> KeyValueStore:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
