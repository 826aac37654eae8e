"""Schema validation for marketplace.json and plugin.json.

JSON Schema documents are generated from ``FIELD_TYPES`` so that the
marketplace entry schema and the plugin manifest schema never drift apart.
Checks that are not plain type/shape rules (semver warnings, registry-only
fields, duplicate names, remote source descriptors) run alongside the schema
and every check always runs, so one call can report many problems.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError, UnknownType
from referencing.exceptions import Unresolvable

from marketplace_check.constants import (
    FIELD_TYPES,
    KEBAB_CASE_PATTERN,
    KEBAB_CASE_RE,
    KNOWN_REMOTE_SOURCES,
    RECOMMENDED_MANIFEST_FIELDS,
    REGISTRY_ONLY_FIELDS,
    SEMVER_RE,
    STRING_LIST_FIELDS,
)
from marketplace_check.documents import get_field
from marketplace_check.report import Report


class Mode(Enum):
    REGISTRY = "registry"
    PLUGIN_MANIFEST = "plugin-manifest"


def _field_schema(field: str, *, require_author_name: bool = False) -> dict[str, Any]:
    types = FIELD_TYPES[field]
    variants: list[dict[str, Any]] = []
    for json_type in types:
        variant: dict[str, Any] = {"type": json_type}
        if json_type == "array" and field in STRING_LIST_FIELDS:
            variant["items"] = {"type": "string"}
        if field == "author":
            variant["properties"] = {
                "name": {"type": "string"},
                "email": {"type": "string", "format": "email"},
                "url": {"type": "string", "format": "uri"},
            }
            if require_author_name:
                variant["required"] = ["name"]
        variants.append(variant)

    if len(variants) == 1:
        return variants[0]
    return {"oneOf": variants}


# Marketplace manifest schema
MARKETPLACE_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["name", "owner", "plugins"],
    "additionalProperties": True,  # Allow custom fields
    "properties": {
        "name": {
            "type": "string",
            "pattern": KEBAB_CASE_PATTERN,
            "description": "Marketplace identifier (kebab-case)",
        },
        "owner": {
            "type": "object",
            "required": ["name"],
            "properties": {
                "name": {"type": "string", "minLength": 1},
                "email": {"type": "string", "format": "email"},
            },
        },
        "plugins": {"type": "array", "items": {"type": "object"}},
        "metadata": {
            "type": "object",
            "properties": {
                "description": {"type": "string"},
                "version": {"type": "string"},
                "pluginRoot": {"type": "string"},
            },
        },
    },
}

# Plugin entry schema for marketplace.json plugins array
MARKETPLACE_PLUGIN_ENTRY_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["name", "source"],
    "additionalProperties": True,
    "properties": {
        "name": {"type": "string", "pattern": KEBAB_CASE_PATTERN},
        # Descriptor contents are checked by _check_source for clearer messages
        "source": {"type": ["string", "object"]},
        **{field: _field_schema(field) for field in FIELD_TYPES},
    },
}

# Plugin manifest schema: entry fields minus marketplace-only ones, closed
PLUGIN_MANIFEST_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["name"],
    "additionalProperties": False,
    "properties": {
        "name": {
            "type": "string",
            "pattern": KEBAB_CASE_PATTERN,
            "description": "Unique identifier (kebab-case, no spaces)",
        },
        **{
            field: _field_schema(field, require_author_name=True)
            for field in FIELD_TYPES
            if field not in REGISTRY_ONLY_FIELDS
        },
    },
}


def _location(error: Any) -> str:
    return " -> ".join(str(part) for part in error.path) or "root"


def validate_json_schema(data: Any, schema: dict[str, Any], context: str) -> list[str]:
    """Run ``schema`` (Draft 7) over ``data``.

    Each violation becomes ``"<context>: <path>: <message>"``. A schema that
    cannot be applied, or a document nested past the interpreter's limit,
    yields a single message instead of an exception.
    """
    try:
        Draft7Validator.check_schema(schema)
    except SchemaError as e:
        return [f"{context}: built-in schema is malformed: {e.message}"]

    validator = Draft7Validator(schema)
    try:
        violations = list(validator.iter_errors(data))
    except RecursionError:
        return [f"{context}: document nested too deeply to validate"]
    except (Unresolvable, UnknownType) as e:
        return [f"{context}: schema could not be applied: {e}"]

    return [f"{context}: {_location(v)}: {v.message}" for v in violations]


def is_kebab_case(value: str) -> bool:
    return bool(KEBAB_CASE_RE.match(value))


def is_semver(value: str) -> bool:
    return bool(SEMVER_RE.match(value))


def _check_version(report: Report, value: Any, context: str) -> None:
    if isinstance(value, str) and not is_semver(value):
        report.warning(
            f"{context}: version '{value}' is not a valid semantic version "
            "(expected MAJOR.MINOR.PATCH)"
        )


def _check_source(report: Report, source: Any, context: str) -> None:
    if isinstance(source, str):
        if not source.strip():
            report.error(f"{context}: source: path must not be empty")
        return
    if not isinstance(source, dict):
        return  # type error already reported by the schema

    kind = source.get("source")
    if kind not in KNOWN_REMOTE_SOURCES:
        report.error(
            f"{context}: source: unknown source kind {kind!r} "
            f"(valid: {', '.join(sorted(KNOWN_REMOTE_SOURCES))})"
        )
        return

    location_key = "repo" if kind == "github" else "url"
    location = source.get(location_key)
    if not isinstance(location, str) or not location:
        report.error(f"{context}: source: '{kind}' source requires a '{location_key}' string")

    for optional in ("path", "branch"):
        if optional in source and not isinstance(source[optional], str):
            report.error(f"{context}: source -> {optional}: must be a string")


def validate_registry(doc: dict[str, Any], context: str = "marketplace.json") -> Report:
    """Validate marketplace.json structure and every plugin entry."""
    report = Report()

    for message in validate_json_schema(doc, MARKETPLACE_SCHEMA, context):
        report.error(message)

    _check_version(report, get_field(doc, "metadata.version"), f"{context}: metadata")

    plugins = get_field(doc, "plugins", "array")
    if plugins is None:
        return report
    if not plugins:
        report.warning(f"{context}: plugins list is empty")

    seen: dict[str, int] = {}
    for i, entry in enumerate(plugins):
        if not isinstance(entry, dict):
            continue  # reported by the marketplace schema
        name = entry.get("name", "unknown")
        entry_context = f"{context} plugins[{i}] ({name})"

        for message in validate_json_schema(entry, MARKETPLACE_PLUGIN_ENTRY_SCHEMA, entry_context):
            report.error(message)
        if "source" in entry:
            _check_source(report, entry["source"], entry_context)
        _check_version(report, entry.get("version"), entry_context)

        if isinstance(name, str) and "name" in entry:
            if name in seen:
                report.error(
                    f"{context}: duplicate plugin name '{name}' "
                    f"(plugins[{seen[name]}] and plugins[{i}])"
                )
            else:
                seen[name] = i

    return report


def validate_manifest(
    doc: dict[str, Any], expected_name: str | None = None, context: str = "plugin.json"
) -> Report:
    """Validate a plugin's own manifest.

    Args:
        doc: Parsed plugin.json content
        expected_name: Plugin name declared by the marketplace, if known
        context: Prefix for messages, usually the plugin name

    Returns:
        Report with schema errors and metadata warnings
    """
    report = Report()

    for field in REGISTRY_ONLY_FIELDS:
        if field in doc:
            report.error(
                f"{context}: '{field}' is a marketplace-only field and is not allowed "
                "in plugin.json"
            )

    # Registry-only fields were reported above; keep them out of the closed schema
    remaining = {k: v for k, v in doc.items() if k not in REGISTRY_ONLY_FIELDS}
    for message in validate_json_schema(remaining, PLUGIN_MANIFEST_SCHEMA, context):
        report.error(message)

    for field in RECOMMENDED_MANIFEST_FIELDS:
        if field not in doc:
            report.warning(f"{context}: missing recommended field '{field}'")
    _check_version(report, doc.get("version"), context)

    name = get_field(doc, "name", "string")
    if expected_name is not None and name is not None and name != expected_name:
        report.error(
            f"{context}: plugin.json name '{name}' does not match marketplace name "
            f"'{expected_name}'"
        )

    return report


def validate_document(
    doc: dict[str, Any],
    mode: Mode,
    expected_name: str | None = None,
    context: str | None = None,
) -> Report:
    """Validate a loaded document in registry or plugin-manifest mode."""
    if mode is Mode.REGISTRY:
        return validate_registry(doc, context or "marketplace.json")
    return validate_manifest(doc, expected_name, context or "plugin.json")
