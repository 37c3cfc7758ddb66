from __future__ import annotations

from typing import Any


def p2_payload(name: str, versions: list[tuple[str, str]]) -> dict[str, Any]:
    return {
        "packages": {
            name: [{"version": version, "time": time} for version, time in versions]
        }
    }
