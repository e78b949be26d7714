from __future__ import annotations

import datetime as dt
import json
import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_HOME = Path("~/.clawstr")

DEFAULT_RELAYS = [
    "wss://relay.ditto.pub",
    "wss://relay.primal.net",
    "wss://relay.damus.io",
    "wss://nos.lol",
]

# NIP-50 search is only reliably supported by this relay.
DEFAULT_SEARCH_RELAY = "wss://relay.ditto.pub"

DEFAULT_MINT = "https://mint.minibits.cash/Bitcoin"

CONFIG_VERSION = 1

CONFIG_ENV_OVERRIDES = {
    "relays": "CLAWSTR_RELAYS",
    "search_relay": "CLAWSTR_SEARCH_RELAY",
    "query_timeout_s": "CLAWSTR_QUERY_TIMEOUT_S",
    "default_mint": "CLAWSTR_DEFAULT_MINT",
}

# config.json keys are camelCase; the dataclass is not.
FILE_KEYS = {
    "version": "version",
    "publicKey": "public_key",
    "relays": "relays",
    "searchRelay": "search_relay",
    "queryTimeoutS": "query_timeout_s",
    "defaultMint": "default_mint",
    "profile": "profile",
    "createdAt": "created_at",
}


@dataclass(frozen=True)
class ClawstrPaths:
    config_dir: Path
    secret_key: Path
    config: Path
    store_db: Path
    wallet_dir: Path


def get_home_dir() -> Path:
    return Path(os.getenv("CLAWSTR_HOME") or DEFAULT_HOME).expanduser()


def get_paths() -> ClawstrPaths:
    home = get_home_dir()
    store_db = os.getenv("CLAWSTR_STORE_DB")
    return ClawstrPaths(
        config_dir=home,
        secret_key=home / "secret.key",
        config=get_config_path(),
        store_db=Path(store_db).expanduser() if store_db else home / "store.db",
        wallet_dir=home / "wallet",
    )


def get_config_path(path: Path | None = None) -> Path:
    if path is not None:
        return path.expanduser()
    override = os.getenv("CLAWSTR_CONFIG")
    if override:
        return Path(override).expanduser()
    return get_home_dir() / "config.json"


def read_config_file(path: Path | None = None) -> dict[str, Any]:
    config_path = get_config_path(path)
    if not config_path.exists():
        return {}
    raw = config_path.read_text()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError("invalid config json") from exc
    if not isinstance(data, dict):
        raise ValueError("config must be an object")
    return data


def write_config_file(data: dict[str, Any], path: Path | None = None) -> Path:
    config_path = get_config_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(data, ensure_ascii=False, indent=2) + "\n")
    os.chmod(config_path, 0o600)
    return config_path


def get_env_overrides() -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, env_var in CONFIG_ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value is not None:
            overrides[key] = value
    return overrides


@dataclass
class ClawstrConfig:
    version: int = CONFIG_VERSION
    relays: list[str] = field(default_factory=lambda: list(DEFAULT_RELAYS))
    search_relay: str = DEFAULT_SEARCH_RELAY
    query_timeout_s: int = 10
    default_mint: str = DEFAULT_MINT
    public_key: str | None = None
    profile: dict[str, str] | None = None
    created_at: str | None = None

    def to_file_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for file_key, attr in FILE_KEYS.items():
            value = getattr(self, attr)
            if value is None:
                continue
            data[file_key] = value
        return data


def new_config(
    *, profile: dict[str, str] | None = None, public_key: str | None = None
) -> ClawstrConfig:
    cfg = load_config()
    cfg.public_key = public_key
    cfg.profile = profile or None
    cfg.created_at = dt.datetime.now(dt.UTC).isoformat().replace("+00:00", "Z")
    return cfg


def _parse_int(value: object, default: int, *, key: str) -> int:
    if value is None:
        return default
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid int for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default


def _coerce_str_list(value: object, *, key: str) -> list[str] | None:
    if value is None:
        return None
    if isinstance(value, list):
        items: list[str] = []
        for item in value:
            if isinstance(item, str) and item.strip():
                items.append(item.strip())
        return items
    if isinstance(value, str):
        return [p.strip() for p in value.split(",") if p.strip()]
    warnings.warn(f"Invalid list for {key}: {value!r}", RuntimeWarning, stacklevel=2)
    return None


def load_config(path: Path | None = None) -> ClawstrConfig:
    cfg = ClawstrConfig()
    config_path = get_config_path(path)
    if config_path.exists():
        try:
            data = json.loads(config_path.read_text())
        except json.JSONDecodeError:
            data = {}
        if isinstance(data, dict):
            cfg = _apply_dict(cfg, data)
    cfg = _apply_env(cfg)
    return cfg


def _apply_dict(cfg: ClawstrConfig, data: dict[str, Any]) -> ClawstrConfig:
    for file_key, value in data.items():
        key = FILE_KEYS.get(file_key)
        if key is None:
            continue
        if key in {"version", "query_timeout_s"}:
            setattr(cfg, key, _parse_int(value, getattr(cfg, key), key=file_key))
            continue
        if key == "relays":
            parsed = _coerce_str_list(value, key=file_key)
            if parsed:
                cfg.relays = parsed
            continue
        if key == "profile":
            if isinstance(value, dict):
                cfg.profile = {str(k): str(v) for k, v in value.items() if v is not None}
            continue
        setattr(cfg, key, value)
    return cfg


def _apply_env(cfg: ClawstrConfig) -> ClawstrConfig:
    overrides = get_env_overrides()
    relays = _coerce_str_list(overrides.get("relays"), key="relays")
    if relays:
        cfg.relays = relays
    cfg.search_relay = overrides.get("search_relay", cfg.search_relay)
    cfg.query_timeout_s = _parse_int(
        overrides.get("query_timeout_s"), cfg.query_timeout_s, key="query_timeout_s"
    )
    cfg.default_mint = overrides.get("default_mint", cfg.default_mint)
    return cfg
