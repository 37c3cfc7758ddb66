from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from dependency_age.core.models import Package


class LockFileError(Exception):
    pass


def read_lock_file(path: Path) -> list[Package]:
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise LockFileError(f"Lock file not found: {path}") from exc
    except OSError as exc:
        raise LockFileError(f"Could not read lock file {path}: {exc}") from exc

    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise LockFileError(f"Invalid JSON in lock file {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise LockFileError(f"Unexpected lock file structure in {path}")

    return [
        *_parse_section(data.get("packages"), is_dev=False),
        *_parse_section(data.get("packages-dev"), is_dev=True),
    ]


def _parse_section(entries: Any, *, is_dev: bool) -> list[Package]:
    if not isinstance(entries, list):
        return []
    return [
        Package(name=entry["name"], version=entry["version"], is_dev=is_dev)
        for entry in entries
        if isinstance(entry, dict)
        and isinstance(entry.get("name"), str)
        and isinstance(entry.get("version"), str)
    ]
