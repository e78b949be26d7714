from __future__ import annotations

import typer
from rich import print

from clawstr.cursor import CursorState, parse_timestamp
from clawstr.errors import InvalidTimestampError
from clawstr.format import format_timestamp

from .common import echo_json, fail


def _describe(value: int | None) -> str:
    if value is None:
        return "not set"
    return f"{value} ({format_timestamp(value)})"


def _parse_admin_value(raw: str) -> int:
    try:
        return parse_timestamp(raw)
    except InvalidTimestampError as exc:
        raise fail(str(exc)) from exc


def print_status(state: CursorState) -> None:
    print("")
    print("Timestamp status:")
    print(f"  Latest (used by --since latest): {_describe(state.latest)}")
    print(f"  Last seen (auto-tracked):        {_describe(state.last_seen)}")
    print("")


def timestamp_cmd(
    *,
    open_cursor,
    store_path: str | None,
    get: bool,
    set_value: str | None,
    set_last_seen: str | None,
    rollforward: bool,
    reset: bool,
    as_json: bool,
) -> None:
    """View or update the stored timestamps."""

    if set_value is not None:
        value = _parse_admin_value(set_value)
        with open_cursor(store_path) as cursor:
            cursor.set_latest(value)
        print(f"Latest timestamp set to {_describe(value)}")
        return

    if set_last_seen is not None:
        value = _parse_admin_value(set_last_seen)
        with open_cursor(store_path) as cursor:
            cursor.set_last_seen(value)
        print(f"Last seen timestamp set to {_describe(value)}")
        return

    if rollforward:
        with open_cursor(store_path) as cursor:
            value = cursor.roll_forward()
        print(f"Latest timestamp rolled forward to {_describe(value)}")
        return

    if reset:
        with open_cursor(store_path) as cursor:
            cursor.reset()
        print("Latest and last seen timestamps reset to 0")
        return

    with open_cursor(store_path) as cursor:
        state = cursor.inspect()

    if get:
        typer.echo("not set" if state.latest is None else str(state.latest))
        return

    if as_json:
        echo_json(state.to_json())
        return

    print_status(state)
