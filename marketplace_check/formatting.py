"""Canonical formatting of marketplace.json."""

from __future__ import annotations

import json
from typing import Any


def _sort_key(entry: Any) -> tuple[int, str]:
    if isinstance(entry, dict) and isinstance(entry.get("name"), str):
        return 0, entry["name"]
    return 1, ""


def format_registry(doc: dict[str, Any]) -> str:
    """Render marketplace.json with plugins sorted by name.

    Key order inside each object is preserved. Formatting the output again
    yields the same text.
    """
    formatted = dict(doc)
    plugins = doc.get("plugins")
    if isinstance(plugins, list):
        formatted["plugins"] = sorted(plugins, key=_sort_key)
    return json.dumps(formatted, indent=2, ensure_ascii=False) + "\n"
