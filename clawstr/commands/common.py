from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape

from clawstr.config import read_config_file, write_config_file
from clawstr.cursor import TimestampCursor
from clawstr.errors import ClawstrError
from clawstr.store import KeyValueStore
from clawstr.wallet import WalletHistory

err_console = Console(stderr=True)


def store_from_path(store_path: str | None) -> KeyValueStore:
    return KeyValueStore(store_path)


@contextmanager
def open_cursor(store_path: str | None) -> Iterator[TimestampCursor]:
    store = store_from_path(store_path)
    try:
        yield TimestampCursor(store)
    finally:
        store.close()


@contextmanager
def open_history(store_path: str | None = None) -> Iterator[WalletHistory]:
    history = WalletHistory(store_path)
    try:
        yield history
    finally:
        history.close()


def fail(message: str) -> typer.Exit:
    err_console.print(f"[red]Error: {escape(message)}[/red]")
    return typer.Exit(code=1)


@contextmanager
def exit_on_error() -> Iterator[None]:
    try:
        yield
    except ClawstrError as exc:
        raise fail(str(exc)) from exc


def echo_json(data: Any) -> None:
    typer.echo(json.dumps(data, ensure_ascii=False, indent=2))


def read_config_or_exit() -> dict[str, Any]:
    try:
        return read_config_file()
    except ValueError as exc:
        err_console.print(f"[red]Invalid config file: {exc}[/red]")
        raise typer.Exit(code=1) from exc


def write_config_or_exit(data: dict[str, Any]) -> None:
    try:
        write_config_file(data)
    except OSError as exc:
        err_console.print(f"[red]Failed to write config: {exc}[/red]")
        raise typer.Exit(code=1) from exc


def resolve_relays(relays: list[str] | None, default: list[str]) -> list[str]:
    return [r for r in relays or [] if r.strip()] or list(default)
