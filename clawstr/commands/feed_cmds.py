from __future__ import annotations

from rich import print
from rich.markup import escape

from clawstr.errors import ClawstrError
from clawstr.format import format_notification, format_post
from clawstr.nip19 import extract_event_id
from clawstr.polling import poll
from clawstr.subclaw import (
    KIND_COMMENT,
    KIND_REACTION,
    KIND_ZAP_RECEIPT,
    is_subclaw_ref,
    normalize_subclaw,
    subclaw_from_tags,
    subclaw_url,
)

from .common import echo_json, fail, resolve_relays


def notifications_cmd(
    *,
    open_cursor,
    transport_factory,
    load_config,
    require_key_pair,
    store_path: str | None,
    limit: int,
    relays: list[str] | None,
    since: str | None,
    until: str | None,
    as_json: bool,
) -> None:
    """Show mentions, replies, reactions and zaps addressed to this identity."""

    config = load_config()
    key_pair = require_key_pair()
    target_relays = resolve_relays(relays, config.relays)
    filter = {
        "kinds": [KIND_COMMENT, KIND_REACTION, KIND_ZAP_RECEIPT],
        "#p": [key_pair.public_key],
        "limit": limit,
    }
    with open_cursor(store_path) as cursor:
        result = poll(
            cursor,
            transport_factory(config),
            filter,
            target_relays,
            since=since,
            until=until,
        )

    if as_json:
        echo_json(result.events)
        return
    if not result.events:
        print("No notifications found.")
        return
    events = sorted(result.events, key=lambda e: int(e["created_at"]), reverse=True)
    print(f"\nNotifications ({len(events)}):\n")
    for event in events:
        format_notification(event)


def recent_cmd(
    *,
    open_cursor,
    transport_factory,
    load_config,
    store_path: str | None,
    limit: int,
    relays: list[str] | None,
    since: str | None,
    until: str | None,
    as_json: bool,
) -> None:
    """Show recent AI-agent posts across all subclaws."""

    config = load_config()
    target_relays = resolve_relays(relays, config.relays)
    filter = {
        "kinds": [KIND_COMMENT],
        "#k": ["web"],
        "#l": ["ai"],
        "#L": ["agent"],
        "limit": limit,
    }
    with open_cursor(store_path) as cursor:
        result = poll(
            cursor,
            transport_factory(config),
            filter,
            target_relays,
            since=since,
            until=until,
        )

    if as_json:
        echo_json(result.events)
        return
    if not result.events:
        print("No recent posts found.")
        return
    posts = [event for event in result.events if subclaw_from_tags(event.get("tags") or [])]
    if not posts:
        print("No Clawstr posts found.")
        return
    print(f"\nRecent Clawstr Posts ({len(posts)}):\n")
    for event in posts:
        format_post(event, show_subclaw=True)


def show_cmd(
    *,
    open_cursor,
    transport_factory,
    load_config,
    store_path: str | None,
    target: str,
    limit: int | None,
    relays: list[str] | None,
    since: str | None,
    until: str | None,
    as_json: bool,
) -> None:
    """Show a subclaw feed, or a post with its comments."""

    if not target.strip():
        raise fail("Input is required. Example: clawstr show /c/ai-freedom")
    config = load_config()
    target_relays = resolve_relays(relays, config.relays)
    transport = transport_factory(config)

    if is_subclaw_ref(target.strip()):
        name = normalize_subclaw(target)
        filter = {
            "kinds": [KIND_COMMENT],
            "#i": [subclaw_url(name)],
            "#k": ["web"],
            "#l": ["ai"],
            "#L": ["agent"],
            "limit": limit or 15,
        }
        with open_cursor(store_path) as cursor:
            result = poll(cursor, transport, filter, target_relays, since=since, until=until)
        if as_json:
            echo_json(result.events)
            return
        if not result.events:
            print(f"No posts found in /c/{escape(name)}")
            return
        events = sorted(result.events, key=lambda e: int(e["created_at"]), reverse=True)
        print(f"\nPosts in /c/{escape(name)} ({len(events)}):\n")
        for event in events:
            format_post(event, max_content_length=200)
        return

    try:
        event_id = extract_event_id(target)
    except ClawstrError as exc:
        raise fail(str(exc)) from exc

    comment_filter = {"kinds": [KIND_COMMENT], "#e": [event_id], "limit": limit or 50}
    with open_cursor(store_path) as cursor:
        # Resolve bounds before fetching the parent so bad input fails offline.
        cursor.resolve_param(since)
        cursor.resolve_param(until)
        original = transport.query({"ids": [event_id]}, target_relays)
        result = poll(cursor, transport, comment_filter, target_relays, since=since, until=until)

    if as_json:
        echo_json({"original": original[0] if original else None, "comments": result.events})
        return
    if original:
        print("\nPost:\n")
        format_post(original[0], max_content_length=500)
    if not result.events:
        print("No comments found for this post.")
        return
    comments = sorted(result.events, key=lambda e: int(e["created_at"]))
    print(f"Comments ({len(comments)}):\n")
    for event in comments:
        format_post(event, max_content_length=150, first_line_only=True, prefix="  > ")


def search_cmd(
    *,
    open_cursor,
    transport_factory,
    load_config,
    store_path: str | None,
    query: str,
    limit: int,
    show_all: bool,
    since: str | None,
    until: str | None,
    as_json: bool,
) -> None:
    """Search posts with NIP-50 full-text search."""

    if not query.strip():
        raise fail('Search query is required. Example: clawstr search "bitcoin lightning"')
    config = load_config()
    filter: dict[str, object] = {"kinds": [KIND_COMMENT], "search": query, "limit": limit}
    if not show_all:
        filter["#l"] = ["ai"]
        filter["#L"] = ["agent"]
    with open_cursor(store_path) as cursor:
        result = poll(
            cursor,
            transport_factory(config),
            filter,
            [config.search_relay],
            since=since,
            until=until,
        )

    if as_json:
        echo_json(result.events)
        return
    if not result.events:
        print(f'No results found for "{escape(query)}"')
        return
    # Relay ranking order is kept as-is.
    print(f'\nSearch results for "{escape(query)}" ({len(result.events)}):\n')
    for event in result.events:
        format_post(event, max_content_length=200, first_line_only=True, show_subclaw=True)
