from __future__ import annotations

from pathlib import Path


def ensure_path(path: str | Path) -> Path:
    resolved = Path(path).expanduser()
    resolved.parent.mkdir(parents=True, exist_ok=True)
    return resolved


def read_text_file(path: str | Path) -> str:
    return Path(path).expanduser().read_text(encoding="utf-8")
