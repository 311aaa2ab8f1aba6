"""Filesystem helpers for run artifacts."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


def ensure_dir(path: str | Path) -> Path:
    target = Path(path)
    target.mkdir(parents=True, exist_ok=True)
    return target


def ensure_parent(path: str | Path) -> Path:
    """Create the parent directory of ``path`` and return ``path`` as a ``Path``."""

    target = Path(path)
    ensure_dir(target.parent)
    return target


def save_json(path: str | Path, data: dict[str, Any]) -> None:
    target = ensure_parent(path)
    target.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


def load_json(path: str | Path) -> dict[str, Any]:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def save_text(path: str | Path, text: str) -> None:
    ensure_parent(path).write_text(text, encoding="utf-8")
