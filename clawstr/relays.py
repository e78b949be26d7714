from __future__ import annotations

import asyncio
import datetime as dt
import json
import logging
from collections.abc import Sequence
from typing import Any, cast

from nostr_sdk import Client, Event, Filter

from .errors import RelayTransportError
from .types import NostrEvent, NostrFilter

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 10.0


def _summarize_relay_errors(relay_errors: dict[str, str]) -> str:
    parts = [f"{relay}: {error}" for relay, error in relay_errors.items()]
    return "all relays failed | " + " || ".join(parts)


def dedupe_events(batches: Sequence[Sequence[NostrEvent]]) -> list[NostrEvent]:
    seen: set[str] = set()
    merged: list[NostrEvent] = []
    for batch in batches:
        for event in batch:
            event_id = str(event.get("id") or "")
            if event_id in seen:
                continue
            seen.add(event_id)
            merged.append(event)
    return merged


def event_to_dict(event: Event) -> NostrEvent:
    return cast(NostrEvent, json.loads(event.as_json()))


class RelayTransport:
    """Queries and publishes against a set of relays, one client per relay.

    A relay that fails is skipped; the call only fails when every relay
    did.
    """

    def __init__(self, *, timeout_s: float = DEFAULT_TIMEOUT_S):
        self.timeout_s = timeout_s

    def query(self, filter: NostrFilter, relays: Sequence[str]) -> list[NostrEvent]:
        if not relays:
            raise RelayTransportError("No relays configured")
        return asyncio.run(self._query_all(filter, list(relays)))

    def publish(self, event: Event, relays: Sequence[str]) -> list[str]:
        if not relays:
            raise RelayTransportError("No relays configured")
        accepted, failed = asyncio.run(self._publish(event, list(relays)))
        if not accepted:
            raise RelayTransportError(
                _summarize_relay_errors(failed) if failed else "Failed to publish to any relay",
                failed,
            )
        for relay, error in failed.items():
            logger.warning("relay %s rejected event: %s", relay, error)
        return accepted

    async def _query_all(self, filter: NostrFilter, relays: list[str]) -> list[NostrEvent]:
        filter_json = json.dumps(filter)
        results = await asyncio.gather(
            *(self._query_relay(filter_json, relay) for relay in relays),
            return_exceptions=True,
        )
        batches: list[list[NostrEvent]] = []
        relay_errors: dict[str, str] = {}
        for relay, result in zip(relays, results, strict=True):
            if isinstance(result, BaseException):
                logger.warning("relay %s query failed: %s", relay, result)
                relay_errors[relay] = str(result) or type(result).__name__
                continue
            batches.append(result)
        if not batches:
            raise RelayTransportError(_summarize_relay_errors(relay_errors), relay_errors)
        events = dedupe_events(batches)
        logger.debug(
            "query returned %d events from %d/%d relays", len(events), len(batches), len(relays)
        )
        return events

    async def _query_relay(self, filter_json: str, relay: str) -> list[NostrEvent]:
        client = Client()
        await client.add_relay(relay)
        await client.connect()
        try:
            events = await client.fetch_events(
                Filter.from_json(filter_json), dt.timedelta(seconds=self.timeout_s)
            )
        finally:
            await client.disconnect()
        return [event_to_dict(event) for event in events.to_vec()]

    async def _publish(self, event: Event, relays: list[str]) -> tuple[list[str], dict[str, str]]:
        client = Client()
        for relay in relays:
            await client.add_relay(relay)
        await client.connect()
        try:
            output: Any = await client.send_event(event)
        finally:
            await client.disconnect()
        accepted = sorted(str(url) for url in output.success)
        failed = {str(url): str(error) for url, error in output.failed.items()}
        return accepted, failed
