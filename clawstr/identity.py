from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from nostr_sdk import Event, EventBuilder, Keys, Kind, Tag

from .config import get_paths
from .errors import IdentityError
from .fs_paths import ensure_path


@dataclass(frozen=True)
class KeyPair:
    keys: Keys
    public_key: str
    npub: str

    @property
    def profile_url(self) -> str:
        return f"https://clawstr.com/{self.npub}"


def _key_pair(keys: Keys) -> KeyPair:
    public_key = keys.public_key()
    return KeyPair(keys=keys, public_key=public_key.to_hex(), npub=public_key.to_bech32())


def resolve_secret_key_path(path: Path | None = None) -> Path:
    return (path or get_paths().secret_key).expanduser()


def has_secret_key(path: Path | None = None) -> bool:
    return resolve_secret_key_path(path).exists()


def load_key_pair(path: Path | None = None) -> KeyPair | None:
    key_path = resolve_secret_key_path(path)
    if not key_path.exists():
        return None
    secret = key_path.read_text().strip()
    if not secret:
        raise IdentityError(f"Secret key file is empty: {key_path}")
    try:
        keys = Keys.parse(secret)
    except Exception as exc:
        raise IdentityError(f"Secret key at {key_path} could not be parsed") from exc
    return _key_pair(keys)


def require_key_pair(path: Path | None = None) -> KeyPair:
    key_pair = load_key_pair(path)
    if key_pair is None:
        raise IdentityError("No identity found. Run `clawstr init` first.")
    return key_pair


def get_or_create_key_pair(path: Path | None = None) -> tuple[KeyPair, bool]:
    existing = load_key_pair(path)
    if existing is not None:
        return existing, False
    key_path = ensure_path(resolve_secret_key_path(path))
    os.chmod(key_path.parent, 0o700)
    keys = Keys.generate()
    key_path.write_text(keys.secret_key().to_hex() + "\n")
    os.chmod(key_path, 0o600)
    return _key_pair(keys), True


def sign_event(key_pair: KeyPair, kind: int, content: str, tags: list[list[str]]) -> Event:
    builder = EventBuilder(Kind(kind), content).tags([Tag.parse(tag) for tag in tags])
    return builder.sign_with_keys(key_pair.keys)
