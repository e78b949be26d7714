from pathlib import Path

import pytest

from clawstr.errors import StoreError
from clawstr.store import KeyValueStore


def test_get_missing_key_returns_none(tmp_path: Path) -> None:
    store = KeyValueStore(tmp_path / "store.db")
    try:
        assert store.get("latest_timestamp") is None
    finally:
        store.close()


def test_set_overwrites_and_delete_removes(tmp_path: Path) -> None:
    store = KeyValueStore(tmp_path / "store.db")
    try:
        store.set("latest_timestamp", "100")
        store.set("latest_timestamp", "200")
        assert store.get("latest_timestamp") == "200"
        store.delete("latest_timestamp")
        assert store.get("latest_timestamp") is None
    finally:
        store.close()


def test_values_survive_close_and_reopen(tmp_path: Path) -> None:
    db_path = tmp_path / "nested" / "store.db"
    with KeyValueStore(db_path) as store:
        store.set("last_seen_timestamp", "1700000010")
    assert db_path.exists()

    with KeyValueStore(db_path) as store:
        assert store.get("last_seen_timestamp") == "1700000010"


def test_close_is_idempotent_and_next_call_reopens(tmp_path: Path) -> None:
    store = KeyValueStore(tmp_path / "store.db")
    store.set("k", "v")
    assert store.is_open
    store.close()
    store.close()
    assert not store.is_open

    assert store.get("k") == "v"
    assert store.is_open
    store.close()


def test_unrelated_keys_are_left_alone(tmp_path: Path) -> None:
    with KeyValueStore(tmp_path / "store.db") as store:
        store.set("wallet_mint", "https://mint.example")
        store.set("latest_timestamp", "5")
        store.delete("latest_timestamp")
        assert store.get("wallet_mint") == "https://mint.example"
        assert store.get("latest_timestamp") is None


def test_default_path_follows_clawstr_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CLAWSTR_HOME", str(tmp_path / "home"))
    store = KeyValueStore()
    assert store.db_path == tmp_path / "home" / "store.db"


def test_store_db_env_override(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CLAWSTR_STORE_DB", str(tmp_path / "custom.db"))
    store = KeyValueStore()
    assert store.db_path == tmp_path / "custom.db"


def test_unopenable_path_raises_store_error(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file")
    store = KeyValueStore(blocker / "store.db")
    with pytest.raises(StoreError, match="Failed to open store"):
        store.get("latest_timestamp")
