"""Timestamp cursors for incremental fetching.

Two values live in the key/value store:

``latest``
    Substituted when a polling command is given ``--since latest``. Only
    changed by explicit administration (set, roll forward, reset).
``last_seen``
    Advanced automatically after every successful poll to one second past
    the newest event returned. Never decreases under automatic advance.

Rolling forward copies ``last_seen + 1`` into ``latest`` so the next
``--since latest`` poll starts where the previous one stopped.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from .errors import InvalidTimestampError, MissingLatestTimestampError, StoreError
from .store import KeyValueStore

logger = logging.getLogger(__name__)

LATEST_KEY = "latest_timestamp"
LAST_SEEN_KEY = "last_seen_timestamp"
LATEST_SENTINEL = "latest"

_INT_RE = re.compile(r"-?[0-9]+")

# Cursors are signed 64-bit values.
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


def parse_timestamp(value: str, *, allow_latest: bool = False) -> int:
    """Parse a strict decimal integer, rejecting whitespace and fractions."""

    if not isinstance(value, str) or _INT_RE.fullmatch(value) is None:
        raise InvalidTimestampError(str(value), allow_latest=allow_latest)
    # int() refuses very long digit strings, so cap the length first.
    if len(value.lstrip("-")) > 19:
        raise InvalidTimestampError(value, allow_latest=allow_latest)
    parsed = int(value)
    if not INT64_MIN <= parsed <= INT64_MAX:
        raise InvalidTimestampError(value, allow_latest=allow_latest)
    return parsed


@dataclass(frozen=True)
class CursorState:
    latest: int | None
    last_seen: int | None

    def to_json(self) -> dict[str, int | None]:
        return {"latest": self.latest, "lastSeen": self.last_seen}


class TimestampCursor:
    def __init__(self, store: KeyValueStore):
        self.store = store

    def _read_int(self, key: str) -> int | None:
        raw = self.store.get(key)
        if raw is None:
            return None
        try:
            return parse_timestamp(raw)
        except InvalidTimestampError as exc:
            raise StoreError(f"Stored value for {key!r} is not an integer: {raw!r}") from exc

    def _write_int(self, key: str, value: int) -> None:
        value = int(value)
        if not INT64_MIN <= value <= INT64_MAX:
            raise InvalidTimestampError(str(value), allow_latest=False)
        self.store.set(key, str(value))

    def get_latest(self) -> int | None:
        return self._read_int(LATEST_KEY)

    def get_last_seen(self) -> int | None:
        return self._read_int(LAST_SEEN_KEY)

    def set_latest(self, value: int) -> None:
        self._write_int(LATEST_KEY, value)
        logger.debug("latest timestamp set to %s", value)

    def set_last_seen(self, value: int) -> None:
        self._write_int(LAST_SEEN_KEY, value)
        logger.debug("last seen timestamp set to %s", value)

    def resolve_param(self, value: str | None) -> int | None:
        """Resolve a ``--since``/``--until`` value to unix seconds.

        ``None`` means no bound was requested. ``"latest"`` resolves to the
        stored latest timestamp and fails if none has been stored.
        """

        if value is None:
            return None
        if value == LATEST_SENTINEL:
            latest = self.get_latest()
            if latest is None:
                raise MissingLatestTimestampError()
            return latest
        return parse_timestamp(value, allow_latest=True)

    def advance_last_seen(self, timestamps: Iterable[int]) -> int | None:
        """Move ``last_seen`` to ``max(timestamps) + 1`` if that is newer.

        Returns the value written, or ``None`` when nothing changed.
        """

        values = [int(ts) for ts in timestamps]
        if not values:
            return None
        candidate = max(values) + 1
        current = self.get_last_seen()
        if current is not None and candidate <= current:
            logger.debug("last seen timestamp unchanged at %s (candidate %s)", current, candidate)
            return None
        self.set_last_seen(candidate)
        return candidate

    def advance_from_events(self, events: Iterable[Mapping[str, Any]]) -> int | None:
        return self.advance_last_seen(int(event["created_at"]) for event in events)

    def roll_forward(self) -> int:
        last_seen = self.get_last_seen()
        next_value = (last_seen if last_seen is not None else 0) + 1
        self.set_latest(next_value)
        return next_value

    def reset(self) -> CursorState:
        self.set_latest(0)
        self.set_last_seen(0)
        return CursorState(latest=0, last_seen=0)

    def inspect(self) -> CursorState:
        return CursorState(latest=self.get_latest(), last_seen=self.get_last_seen())
