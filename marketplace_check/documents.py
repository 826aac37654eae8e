"""Loading of marketplace.json and plugin.json documents."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from marketplace_check.errors import ParseError

_JSON_TYPES: dict[str, type | tuple[type, ...]] = {
    "string": str,
    "array": list,
    "object": dict,
    "boolean": bool,
}


def parse_document(text: str, source: str) -> dict[str, Any]:
    """Parse JSON text that must hold a single object.

    Args:
        text: Document contents
        source: Path or label used in error messages

    Raises:
        ParseError: If the text is not valid JSON or not an object.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(
            source, f"Invalid JSON\n  Line {e.lineno}, column {e.colno}: {e.msg}"
        ) from e

    if not isinstance(data, dict):
        raise ParseError(source, f"Document must be a JSON object, got {type(data).__name__}")

    return data


def load_document(path: Path | str) -> dict[str, Any]:
    """Read and parse a JSON document from disk.

    Fails fast: no field-level check is meaningful without a parsed document.

    Raises:
        ParseError: If the file is missing, unreadable or malformed.
    """
    path = Path(path)
    source = str(path)

    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ParseError(source, "File not found") from e
    except IsADirectoryError as e:
        raise ParseError(source, "Expected a file but found a directory") from e
    except PermissionError as e:
        raise ParseError(source, "Permission denied reading file") from e
    except UnicodeDecodeError as e:
        raise ParseError(
            source, "File is not valid UTF-8\n  Ensure file is text, not binary"
        ) from e
    except OSError as e:
        raise ParseError(source, f"Cannot read file: {e}") from e

    return parse_document(text, source)


def get_field(doc: Any, key: str, expected_type: str | None = None) -> Any | None:
    """Look up a possibly nested field without raising.

    ``key`` may be dotted (``owner.name``). When ``expected_type`` is one of
    the JSON type names ``string``, ``array``, ``object`` or ``boolean``, a
    value of any other type is treated as absent.
    """
    value: Any = doc
    for part in key.split("."):
        if not isinstance(value, dict) or part not in value:
            return None
        value = value[part]

    if expected_type is not None and not isinstance(value, _JSON_TYPES[expected_type]):
        return None

    return value
