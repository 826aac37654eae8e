"""Per-plugin validation and whole-marketplace batch runs."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from marketplace_check.console import DebugConsole
from marketplace_check.constants import (
    COMPARABLE_FIELDS,
    INFO_ONLY_CONFLICT_FIELDS,
    PLUGIN_MANIFEST_FILE,
    PLUGIN_META_DIR,
    README_FILE,
)
from marketplace_check.content import (
    check_component_placement,
    check_hooks,
    check_mcp_servers,
    validate_paths,
)
from marketplace_check.dependencies import dependency_edges, resolve_dependencies
from marketplace_check.documents import get_field, load_document
from marketplace_check.errors import MarketplaceCheckError, ParseError
from marketplace_check.git import Git
from marketplace_check.report import BatchResult, Report
from marketplace_check.schema import validate_manifest, validate_registry
from marketplace_check.sources import materialized_source, registry_root


def _comparable(field: str, value: Any) -> Any:
    if field == "keywords" and isinstance(value, list):
        return sorted(set(map(str, value)))
    return value


def check_manifest_conflicts(
    plugin_name: str, marketplace_entry: dict[str, Any], manifest: dict[str, Any]
) -> Report:
    """Detect conflicts between a marketplace entry and plugin.json.

    Differences are warnings (plugin.json takes precedence); ``author``
    differences are informational only. Keyword lists are compared as sets.
    """
    report = Report()

    for field in COMPARABLE_FIELDS:
        market_value = _comparable(field, marketplace_entry.get(field))
        plugin_value = _comparable(field, manifest.get(field))
        if market_value is None or plugin_value is None or market_value == plugin_value:
            continue

        message = (
            f"{plugin_name}: Conflict in '{field}' - "
            f"marketplace: {market_value!r}, plugin.json: {plugin_value!r} "
            f"(plugin.json takes precedence)"
        )
        if field in INFO_ONLY_CONFLICT_FIELDS:
            report.note(message)
        else:
            report.warning(message)

    return report


def validate_plugin_dir(
    plugin_dir: Path,
    entry: dict[str, Any] | None = None,
    expected_name: str | None = None,
    manifest_path: Path | None = None,
) -> Report:
    """Validate a single plugin's manifest and components.

    Args:
        plugin_dir: Path to the plugin directory
        entry: Plugin entry from marketplace.json, when validating through a
            marketplace. With ``strict: false`` the entry stands in for a
            missing plugin.json.
        expected_name: Name the marketplace declares for this plugin
        manifest_path: Manifest to validate instead of
            ``.claude-plugin/plugin.json`` under ``plugin_dir``

    Returns:
        Report for this plugin

    Raises:
        ParseError: If plugin.json exists but cannot be parsed.
    """
    plugin_name = expected_name or plugin_dir.name
    report = Report()
    manifest_path = manifest_path or plugin_dir / PLUGIN_MANIFEST_FILE
    require_manifest = bool(entry.get("strict", True)) if entry else True

    data: dict[str, Any]
    if manifest_path.is_file():
        data = load_document(manifest_path)
        report.extend(validate_manifest(data, expected_name, context=plugin_name))
        if entry:
            report.extend(check_manifest_conflicts(plugin_name, entry, data))
    elif require_manifest:
        report.error(
            f"{plugin_name}: Missing {PLUGIN_MANIFEST_FILE} (required unless the marketplace "
            "entry sets strict: false)"
        )
        data = {}
    else:
        report.note(f"{plugin_name}: No plugin.json, using marketplace entry (strict: false)")
        data = entry or {}

    if not (plugin_dir / README_FILE).exists():
        report.warning(f"{plugin_name}: Missing {README_FILE}")

    # Component paths from the marketplace entry merge with plugin.json
    components = {**(entry or {}), **data}
    report.extend(check_component_placement(plugin_dir, plugin_name))
    report.extend(validate_paths(plugin_dir, components, plugin_name))
    report.extend(check_hooks(plugin_dir, components, plugin_name))
    report.extend(check_mcp_servers(plugin_dir, components, plugin_name))

    return report


def plugin_dir_for_target(target: Path) -> Path:
    """Map a plugin.json path (or a plugin directory) to the plugin directory."""
    if target.is_dir():
        return target
    if target.parent.name == PLUGIN_META_DIR:
        return target.parent.parent
    return target.parent


def validate_manifest_target(target: Path | str) -> Report:
    """Validate a plugin given directly by its manifest path or directory."""
    target = Path(target)
    if not target.exists():
        raise ParseError(str(target), "File not found")
    if target.is_dir():
        return validate_plugin_dir(target)
    return validate_plugin_dir(plugin_dir_for_target(target), manifest_path=target)


def _find_entry(plugins: list[Any], name: str) -> dict[str, Any] | None:
    for entry in plugins:
        if isinstance(entry, dict) and entry.get("name") == name:
            return entry
    return None


def _check_entry_dependencies(entry: dict[str, Any], plugins: list[Any]) -> Report:
    report = Report()
    names = {e.get("name") for e in plugins if isinstance(e, dict)}
    for source, target, raw in dependency_edges([entry]):
        if target not in names:
            report.error(f"Plugin '{source}' depends on '{raw}' which is not in marketplace")
    return report


def validate_registry_plugin(
    registry_path: Path | str, plugin_name: str, git: Git | None = None
) -> Report:
    """Validate one plugin resolved through the marketplace.

    Only the named plugin is validated. Its dependencies are checked for
    existence, not validated themselves.

    Raises:
        ParseError: If marketplace.json or plugin.json cannot be parsed.
        SourceFetchError: If a remote source cannot be cloned.
    """
    registry = load_document(registry_path)
    plugins = get_field(registry, "plugins", "array") or []
    report = Report()

    entry = _find_entry(plugins, plugin_name)
    if entry is None:
        report.error(f"Plugin '{plugin_name}' not found in marketplace")
        return report
    if "source" not in entry:
        report.error(f"Plugin '{plugin_name}' missing 'source' field")
        return report

    report.extend(_check_entry_dependencies(entry, plugins))

    with materialized_source(
        entry["source"],
        plugin_name,
        registry_root(registry_path),
        git=git,
        plugin_root=get_field(registry, "metadata.pluginRoot", "string"),
    ) as resolved:
        DebugConsole.debug(f"Validating '{plugin_name}' at {resolved.root}")
        report.extend(validate_plugin_dir(resolved.root, entry, expected_name=plugin_name))

    return report


def validate_all(registry_path: Path | str, git: Git | None = None) -> BatchResult:
    """Validate the marketplace and every plugin it lists.

    Plugins are processed in declared order. A parse, fetch or filesystem
    failure is recorded against that plugin and the batch continues.

    Raises:
        ParseError: If marketplace.json itself cannot be parsed.
    """
    registry = load_document(registry_path)
    result = BatchResult()
    result.registry.extend(validate_registry(registry))

    plugins = get_field(registry, "plugins", "array") or []
    result.registry.extend(resolve_dependencies(plugins))

    root = registry_root(registry_path)
    plugin_root = get_field(registry, "metadata.pluginRoot", "string")

    for entry in plugins:
        if not isinstance(entry, dict) or not isinstance(entry.get("name"), str):
            continue  # reported by the marketplace schema
        name = entry["name"]
        if name in result.plugins:
            continue  # duplicate, reported by the marketplace schema
        report = Report()
        result.plugins[name] = report

        if "source" not in entry:
            report.error(f"Plugin '{name}' missing 'source' field")
            continue
        # Dev sandboxes can opt out of validation
        if entry.get("skip", False):
            report.note(f"{name}: Skipped (skip: true in marketplace.json)")
            continue

        try:
            with materialized_source(
                entry["source"], name, root, git=git, plugin_root=plugin_root
            ) as resolved:
                DebugConsole.debug(f"Validating '{name}' at {resolved.root}")
                report.extend(validate_plugin_dir(resolved.root, entry, expected_name=name))
        except (MarketplaceCheckError, OSError) as e:
            report.error(str(e))

    return result
