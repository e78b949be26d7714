from __future__ import annotations

from typing import Any, TypedDict


class NostrEvent(TypedDict):
    id: str
    pubkey: str
    created_at: int
    kind: int
    tags: list[list[str]]
    content: str
    sig: str


NostrFilter = dict[str, Any]
