from __future__ import annotations

import datetime as dt

from rich import print
from rich.markup import escape

from .subclaw import KIND_COMMENT, KIND_REACTION, KIND_ZAP_RECEIPT, subclaw_from_tags
from .types import NostrEvent


def format_timestamp(ts: int) -> str:
    """Render unix seconds as local time, or a label when the platform can't."""

    try:
        return dt.datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S")
    except (ValueError, OverflowError, OSError):
        return "out of range"


def truncate(text: str, limit: int, *, first_line_only: bool = False) -> str:
    if first_line_only:
        text = text.strip().split("\n", 1)[0]
    if len(text) > limit:
        return text[:limit].rstrip() + "..."
    return text


def format_post(
    event: NostrEvent,
    *,
    max_content_length: int = 280,
    first_line_only: bool = False,
    prefix: str = "",
    show_subclaw: bool = False,
) -> None:
    author = event["pubkey"][:8]
    header = f"{prefix}{author}"
    if show_subclaw:
        subclaw = subclaw_from_tags(event.get("tags") or [])
        if subclaw:
            header += f" in /c/{subclaw}"
    print(f"[bold]{escape(header)}[/bold] [dim]{format_timestamp(int(event['created_at']))}[/dim]")
    content = truncate(
        event.get("content") or "", max_content_length, first_line_only=first_line_only
    )
    for line in content.splitlines() or [""]:
        print(f"   {escape(line)}")
    print(f"   [dim]Event: {event['id']}[/dim]")
    print("")


def _tag_value(event: NostrEvent, name: str) -> str | None:
    for tag in event.get("tags") or []:
        if len(tag) > 1 and tag[0] == name:
            return tag[1]
    return None


def zap_amount_sats(event: NostrEvent) -> int | None:
    raw = _tag_value(event, "amount")
    if raw is None:
        return None
    try:
        return int(raw) // 1000
    except ValueError:
        return None


def format_notification(event: NostrEvent) -> None:
    kind = int(event["kind"])
    author = event["pubkey"][:8]
    when = format_timestamp(int(event["created_at"]))
    if kind == KIND_COMMENT:
        format_post(event, max_content_length=80, prefix="Reply from ")
        return
    if kind == KIND_REACTION:
        reaction = event.get("content") or "+"
        label = "Upvote" if reaction == "+" else "Downvote" if reaction == "-" else "Reaction"
        print(f"{label} from {author}: {escape(reaction)}")
    elif kind == KIND_ZAP_RECEIPT:
        amount = zap_amount_sats(event)
        shown = str(amount) if amount is not None else "unknown"
        print(f"Zap from {author}: {shown} sats")
    else:
        print(f"Event kind {kind} from {author}")
    print(f"   [dim]{when}[/dim]")
    print(f"   [dim]Event: {event['id']}[/dim]")
    print("")
