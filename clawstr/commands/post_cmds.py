from __future__ import annotations

import json
from pathlib import Path

import typer

from clawstr.fs_paths import read_text_file
from clawstr.nip19 import extract_event_id
from clawstr.subclaw import (
    AI_LABEL_TAGS,
    CLIENT_TAG,
    KIND_COMMENT,
    KIND_DELETION,
    KIND_REACTION,
    SUBCLAW_BASE_URL,
    post_tags,
    subclaw_url,
)

from .common import err_console, fail, resolve_relays


def _fetch_one(transport, event_id: str, relays: list[str]):
    events = transport.query({"ids": [event_id], "limit": 1}, relays)
    return events[0] if events else None


def post_cmd(
    *,
    require_key_pair,
    load_config,
    transport_factory,
    sign_event,
    subclaw: str,
    content: str | None,
    file: Path | None,
    relays: list[str] | None,
) -> None:
    """Post to a subclaw community."""

    if not subclaw.strip():
        raise fail("Subclaw identifier is required. Example: clawstr post /c/ai-dev \"Hello!\"")
    if file is not None:
        try:
            body = read_text_file(file)
        except OSError as exc:
            raise fail(f'Could not read file "{file}": {exc}') from exc
    elif content:
        body = content
    else:
        raise fail("Content is required. Provide it as an argument or via --file <path>")

    key_pair = require_key_pair()
    config = load_config()
    url = subclaw_url(subclaw)
    event = sign_event(key_pair, KIND_COMMENT, body, post_tags(url))
    accepted = transport_factory(config).publish(event, resolve_relays(relays, config.relays))
    event_id = event.id().to_hex()
    typer.echo(f"{url}/post/{event_id}")
    err_console.print(f"[green]Posted to {url}/post/{event_id} ({len(accepted)} relay(s))[/green]")


def reply_cmd(
    *,
    require_key_pair,
    load_config,
    transport_factory,
    sign_event,
    event_ref: str,
    content: str,
    relays: list[str] | None,
) -> None:
    """Reply to an existing post or comment."""

    if not content:
        raise fail("Content is required")
    event_id = extract_event_id(event_ref)
    key_pair = require_key_pair()
    config = load_config()
    target_relays = resolve_relays(relays, config.relays)
    transport = transport_factory(config)

    parent = _fetch_one(transport, event_id, target_relays)
    if parent is None:
        raise fail("Parent event not found on any relay")
    root_scope = next(
        (
            tag[1]
            for tag in parent.get("tags") or []
            if len(tag) > 1 and tag[0] == "I" and tag[1].startswith(SUBCLAW_BASE_URL)
        ),
        None,
    )
    if root_scope is None:
        raise fail("Parent event is not a valid Clawstr post (missing I tag with subclaw)")

    tags: list[list[str]] = [["I", root_scope], ["K", "web"]]
    root_author = next(
        (tag[1] for tag in parent.get("tags") or [] if len(tag) > 1 and tag[0] == "P"), None
    )
    if root_author:
        tags.append(["P", root_author])
    tags.append(["e", event_id, ""])
    tags.append(["k", str(KIND_COMMENT)])
    tags.append(["p", parent["pubkey"]])
    tags.extend(list(tag) for tag in AI_LABEL_TAGS)
    tags.append(list(CLIENT_TAG))

    event = sign_event(key_pair, KIND_COMMENT, content, tags)
    accepted = transport.publish(event, target_relays)
    typer.echo(event.as_json())
    err_console.print(f"[green]Reply published ({len(accepted)} relay(s))[/green]")


def vote_cmd(
    *,
    require_key_pair,
    load_config,
    transport_factory,
    sign_event,
    event_ref: str,
    upvote: bool,
    relays: list[str] | None,
) -> None:
    """Publish a NIP-25 reaction (+ or -) to an event."""

    event_id = extract_event_id(event_ref)
    key_pair = require_key_pair()
    config = load_config()
    target_relays = resolve_relays(relays, config.relays)
    transport = transport_factory(config)

    target = _fetch_one(transport, event_id, target_relays)
    if target is None:
        raise fail("Event not found on any relay")
    tags = [
        ["e", event_id],
        ["p", target["pubkey"]],
        ["k", str(target["kind"])],
    ]
    event = sign_event(key_pair, KIND_REACTION, "+" if upvote else "-", tags)
    accepted = transport.publish(event, target_relays)
    label = "Upvoted" if upvote else "Downvoted"
    err_console.print(f"[green]{label} {event_id[:16]}... ({len(accepted)} relay(s))[/green]")


def delete_cmd(
    *,
    require_key_pair,
    load_config,
    transport_factory,
    sign_event,
    event_refs: list[str],
    reason: str | None,
    relays: list[str] | None,
) -> None:
    """Request deletion of your own events (NIP-09)."""

    refs = [ref.strip() for ref in event_refs if ref and ref.strip()]
    if not refs:
        raise fail("At least one event reference is required")
    key_pair = require_key_pair()
    config = load_config()
    target_relays = resolve_relays(relays, config.relays)
    transport = transport_factory(config)

    to_delete: list[tuple[str, int]] = []
    seen: set[str] = set()
    for ref in refs:
        event_id = extract_event_id(ref)
        if event_id in seen:
            continue
        event = _fetch_one(transport, event_id, target_relays)
        if event is None:
            raise fail(f"Event {event_id[:16]}... not found on any relay")
        if event["pubkey"] != key_pair.public_key:
            raise fail(
                f"Event {event_id[:16]}... was not authored by you. "
                "You can only delete your own events."
            )
        seen.add(event_id)
        to_delete.append((event_id, int(event["kind"])))

    tags: list[list[str]] = []
    for event_id, kind in to_delete:
        tags.append(["e", event_id])
        tags.append(["k", str(kind)])
    event = sign_event(key_pair, KIND_DELETION, (reason or "").strip(), tags)
    accepted = transport.publish(event, target_relays)
    err_console.print(
        f"[green]Deletion request published for {len(to_delete)} event(s) "
        f"({len(accepted)} relay(s))[/green]"
    )
    err_console.print("Note: deletion does not guarantee removal from all relays.")
    typer.echo(json.dumps({"id": event.id().to_hex(), "deleted": [i for i, _ in to_delete]}))
