"""Check that changed plugins bump plugin.json and their marketplace entry together.

For every plugin with changed files since a base revision, four versions are
compared: plugin.json and the marketplace entry, each at the base revision
and in the working tree. Both must have moved, and they must agree.
"""

from __future__ import annotations

import posixpath
from pathlib import Path
from typing import Any

from marketplace_check.console import DebugConsole
from marketplace_check.constants import MARKETPLACE_FILE, PLUGIN_MANIFEST_FILE
from marketplace_check.documents import get_field, load_document, parse_document
from marketplace_check.errors import ParseError
from marketplace_check.git import Git
from marketplace_check.report import Report


def _normalize_prefix(path: str) -> str:
    normalized = posixpath.normpath(path.replace("\\", "/"))
    if normalized in (".", ""):
        return ""
    return normalized.rstrip("/") + "/"


def plugin_source_dirs(registry_doc: dict[str, Any]) -> dict[str, str]:
    """Map plugin names to their source directory prefix (``plugins/foo/``).

    Remote sources have no local directory and are left out.
    """
    plugin_root = get_field(registry_doc, "metadata.pluginRoot", "string")
    plugin_map: dict[str, str] = {}
    for entry in get_field(registry_doc, "plugins", "array") or []:
        if not isinstance(entry, dict):
            continue
        name = entry.get("name")
        source = entry.get("source")
        if not isinstance(name, str) or not isinstance(source, str):
            continue
        if plugin_root and not source.startswith(("./", "../", "/")):
            source = posixpath.join(plugin_root, source)
        plugin_map[name] = _normalize_prefix(source)
    return plugin_map


def affected_plugins(changed_files: list[str], plugin_map: dict[str, str]) -> list[str]:
    """Plugins with at least one changed file under their source directory."""
    changed = [f.replace("\\", "/").removeprefix("./") for f in changed_files]
    return [
        name
        for name, prefix in plugin_map.items()
        if any(path.startswith(prefix) for path in changed)
    ]


def changed_files_since(git: Git, base_ref: str) -> list[str]:
    """Paths changed in the working tree relative to ``base_ref``."""
    return git.diff(base_ref)


def _parse_at(raw: bytes, label: str) -> dict[str, Any]:
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ParseError(label, "File is not valid UTF-8") from e
    return parse_document(text, label)


def _entry_version(registry_doc: dict[str, Any] | None, name: str) -> tuple[bool, Any]:
    """Return (entry_exists, version) for ``name`` in a marketplace document."""
    for entry in get_field(registry_doc, "plugins", "array") or []:
        if isinstance(entry, dict) and entry.get("name") == name:
            return True, entry.get("version")
    return False, None


def _describe(version: Any) -> str:
    return repr(version) if version is not None else "unset"


def check_version_bumps(
    base_ref: str,
    changed_files: list[str],
    registry_doc: dict[str, Any],
    plugin_map: dict[str, str],
    git: Git,
    repo_root: Path | str = ".",
    registry_file: str = MARKETPLACE_FILE,
) -> Report:
    """Verify paired version bumps for every plugin touched since ``base_ref``.

    Args:
        base_ref: Revision to compare against
        changed_files: Repository-relative paths changed since ``base_ref``
        registry_doc: Current (working tree) marketplace.json
        plugin_map: Plugin name to source directory prefix
        git: Git wrapper for reading files at ``base_ref``
        repo_root: Repository root for working-tree reads
        registry_file: Repository-relative path of marketplace.json

    Returns:
        Report with one error per violated invariant
    """
    report = Report()
    repo_root = Path(repo_root)

    affected = affected_plugins(changed_files, plugin_map)
    if not affected:
        report.note("No plugin files changed")
        return report

    base_registry: dict[str, Any] | None = None
    raw_registry = git.show_file_at(base_ref, registry_file)
    if raw_registry is not None:
        try:
            base_registry = _parse_at(raw_registry, f"{base_ref}:{registry_file}")
        except ParseError as e:
            report.warning(f"Cannot read marketplace at {base_ref}: {e.message}")

    for name in affected:
        manifest_file = f"{plugin_map[name]}{PLUGIN_MANIFEST_FILE}"
        DebugConsole.debug(f"Checking version bump for '{name}' ({manifest_file})")

        raw_manifest = git.show_file_at(base_ref, manifest_file)
        in_base_registry, base_entry_version = _entry_version(base_registry, name)
        new_in_registry = raw_registry is None or (
            base_registry is not None and not in_base_registry
        )
        if raw_manifest is None or new_in_registry:
            report.note(f"{name}: new plugin since {base_ref}, no bump required")
            continue

        try:
            base_manifest = _parse_at(raw_manifest, f"{base_ref}:{manifest_file}")
            head_manifest = load_document(repo_root / manifest_file)
        except ParseError as e:
            report.warning(f"{name}: cannot compare versions, {e}")
            continue

        base_version = get_field(base_manifest, "version")
        head_version = get_field(head_manifest, "version")
        _, head_entry_version = _entry_version(registry_doc, name)

        if head_version == base_version:
            report.error(
                f"{name}: plugin.json version not bumped "
                f"(still {_describe(head_version)} since {base_ref})"
            )
        if base_registry is not None and head_entry_version == base_entry_version:
            report.error(
                f"{name}: marketplace.json version not bumped "
                f"(still {_describe(head_entry_version)} since {base_ref})"
            )
        if head_version != head_entry_version:
            report.error(
                f"{name}: version mismatch - plugin.json {_describe(head_version)}, "
                f"marketplace.json {_describe(head_entry_version)}"
            )

        if head_version != base_version and head_version == head_entry_version:
            report.note(f"{name}: {_describe(base_version)} -> {_describe(head_version)}")

    return report
