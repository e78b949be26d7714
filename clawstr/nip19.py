from __future__ import annotations

import re

from nostr_sdk import EventId, Nip19Event, PublicKey

from .errors import EventReferenceError, InvalidRecipientError

HEX_ID_RE = re.compile(r"[0-9a-fA-F]{64}")


def is_nip19(value: str) -> bool:
    return value.startswith(("note1", "nevent1"))


def extract_event_id(ref: str) -> str:
    """Return the lowercase hex event id for a note1, nevent1 or hex reference."""

    value = (ref or "").strip()
    if HEX_ID_RE.fullmatch(value):
        return value.lower()
    if is_nip19(value):
        try:
            if value.startswith("note1"):
                return EventId.parse(value).to_hex()
            return Nip19Event.from_bech32(value).event_id().to_hex()
        except Exception as exc:
            raise EventReferenceError("Invalid NIP-19 event reference") from exc
    raise EventReferenceError(
        f"Invalid event reference: {value or ref!r}. Use a note1, nevent1, or hex event ID."
    )


def extract_pubkey(ref: str) -> str:
    """Return the lowercase hex public key for an npub or hex reference."""

    value = (ref or "").strip()
    if HEX_ID_RE.fullmatch(value):
        return value.lower()
    if value.startswith("npub1"):
        try:
            return PublicKey.parse(value).to_hex()
        except Exception as exc:
            raise InvalidRecipientError(f"Invalid npub: {value}") from exc
    raise InvalidRecipientError(
        f"Invalid recipient: {value or ref!r}. Use an npub or hex public key."
    )
