from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from .cursor import TimestampCursor
from .types import NostrEvent, NostrFilter

logger = logging.getLogger(__name__)


class EventQuery(Protocol):
    def query(self, filter: NostrFilter, relays: Sequence[str]) -> list[NostrEvent]: ...


@dataclass
class PollResult:
    events: list[NostrEvent]
    filter: NostrFilter
    last_seen: int | None = None


def apply_time_bounds(
    filter: NostrFilter, *, since: int | None, until: int | None
) -> NostrFilter:
    bounded = dict(filter)
    if since is not None:
        bounded["since"] = since
    if until is not None:
        bounded["until"] = until
    return bounded


def poll(
    cursor: TimestampCursor,
    transport: EventQuery,
    filter: NostrFilter,
    relays: Sequence[str],
    *,
    since: str | None = None,
    until: str | None = None,
) -> PollResult:
    """Run one incremental query and advance the last-seen watermark.

    Both bounds are resolved before any network call. A transport failure
    propagates and leaves the cursor untouched.
    """

    resolved_since = cursor.resolve_param(since)
    resolved_until = cursor.resolve_param(until)
    bounded = apply_time_bounds(filter, since=resolved_since, until=resolved_until)
    events = transport.query(bounded, relays)
    last_seen = cursor.advance_from_events(events)
    if last_seen is not None:
        logger.debug("advanced last seen to %s after %d events", last_seen, len(events))
    return PollResult(events=events, filter=bounded, last_seen=last_seen)
