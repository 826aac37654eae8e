"""Validation of plugin components: skills, agents, commands, hooks and MCP servers."""

from __future__ import annotations

import os.path
import re
from collections.abc import Callable
from pathlib import Path
from typing import Any

from marketplace_check.constants import (
    ACTIVATION_TRIGGER_RE,
    DEFAULT_AGENTS_DIR,
    DEFAULT_COMMANDS_DIR,
    DEFAULT_HOOKS_FILE,
    DEFAULT_MCP_FILE,
    DEFAULT_SKILLS_DIR,
    KEBAB_CASE_RE,
    MAX_DESCRIPTION_LENGTH,
    MAX_NAME_LENGTH,
    PLUGIN_META_DIR,
    PLUGIN_ROOT_VAR,
    SKILL_FILE,
    VALID_AGENT_MODELS,
    VALID_HOOK_EVENTS,
    VALID_HOOK_TYPES,
)
from marketplace_check.documents import get_field, load_document
from marketplace_check.errors import ParseError
from marketplace_check.frontmatter import read_header
from marketplace_check.report import Report


def resolve_plugin_path(
    base_dir: Path, relative_path: str, context: str
) -> tuple[Path | None, str | None]:
    """Resolve a plugin-relative path, refusing paths that escape ``base_dir``.

    Returns:
        Tuple of (resolved_path, error_message). If error, path is None.
    """
    try:
        base = base_dir.resolve()
    except OSError as e:
        return None, f"{context}: Invalid path: {e}"

    # collapse '..' textually before the containment check
    candidate = Path(os.path.normpath(os.path.join(base, relative_path)))
    if not candidate.is_relative_to(base):
        return None, f"{context}: Path escapes base directory: {relative_path}"
    return candidate, None


def _as_path_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [item for item in value if isinstance(item, str)]
    return []


def _check_name(header: dict[str, Any], context: str, report: Report) -> None:
    if "name" not in header or header["name"] is None:
        report.error(f"{context}: Missing required field 'name' in frontmatter")
        return

    name = header["name"]
    if not isinstance(name, str):
        report.error(f"{context}: 'name' must be a string, got {type(name).__name__}")
        return
    if len(name) > MAX_NAME_LENGTH:
        report.error(
            f"{context}: 'name' exceeds {MAX_NAME_LENGTH} characters ({len(name)} chars)"
        )
    if not KEBAB_CASE_RE.match(name):
        report.error(
            f"{context}: 'name' must be kebab-case (lowercase letters, digits, hyphens): {name!r}"
        )


def _check_description(header: dict[str, Any], context: str, report: Report) -> None:
    if "description" not in header or header["description"] is None:
        report.error(f"{context}: Missing required field 'description' in frontmatter")
        return

    description = header["description"]
    if not isinstance(description, str):
        report.error(
            f"{context}: 'description' must be a string, got {type(description).__name__}"
        )
        return
    if not description.strip():
        report.error(f"{context}: Required field 'description' is empty")
        return
    if len(description) > MAX_DESCRIPTION_LENGTH:
        report.error(
            f"{context}: 'description' exceeds {MAX_DESCRIPTION_LENGTH} characters "
            f"({len(description)} chars)"
        )
    if not ACTIVATION_TRIGGER_RE.search(description):
        report.warning(
            f"{context}: 'description' has no activation trigger "
            "(e.g. 'Use when ...') to tell the agent when to use it"
        )


def validate_capability_doc(path: Path | str, context: str | None = None) -> Report:
    """Validate a SKILL.md header: ``name`` and ``description``."""
    path = Path(path)
    context = context or str(path)
    report = Report()

    header = read_header(path, context, report)
    if header is None:
        return report

    _check_name(header, context, report)
    _check_description(header, context, report)
    return report


def validate_agent_doc(path: Path | str, context: str | None = None) -> Report:
    """Validate an agent definition header.

    Agents carry the same ``name``/``description`` rules as skills. ``tools``
    must be a single comma-separated string and ``model`` should be one of
    the known model aliases; unknown models only warn so newer aliases keep
    working.
    """
    path = Path(path)
    context = context or str(path)
    report = Report()

    header = read_header(path, context, report)
    if header is None:
        return report

    _check_name(header, context, report)
    _check_description(header, context, report)

    if "tools" in header and header["tools"] is not None:
        tools = header["tools"]
        if isinstance(tools, list):
            report.error(
                f"{context}: 'tools' must be a comma-separated string, not a list "
                f"(e.g. tools: {', '.join(str(t) for t in tools) or 'Read, Grep'})"
            )
        elif not isinstance(tools, str):
            report.error(
                f"{context}: 'tools' must be a comma-separated string, got {type(tools).__name__}"
            )

    if "model" in header and header["model"] is not None:
        model = header["model"]
        if not isinstance(model, str) or model not in VALID_AGENT_MODELS:
            report.warning(
                f"{context}: Unknown model {model!r} "
                f"(known: {', '.join(sorted(VALID_AGENT_MODELS))})"
            )

    return report


def validate_command_doc(path: Path | str, context: str | None = None) -> Report:
    """Validate a slash-command file: only ``description`` is required."""
    path = Path(path)
    context = context or str(path)
    report = Report()

    header = read_header(path, context, report)
    if header is None:
        return report

    if not header.get("description"):
        report.error(f"{context}: Missing required field 'description' in frontmatter")
    return report


def _validate_skill_dir(skill_dir: Path, context: str, report: Report) -> None:
    skill_md = skill_dir / SKILL_FILE
    if not skill_md.is_file():
        report.error(f"{context}: Missing required {SKILL_FILE} file")
        return
    report.extend(validate_capability_doc(skill_md, f"{context}/{SKILL_FILE}"))


def check_skills(plugin_root: Path, entry: dict[str, Any], plugin_name: str) -> Report:
    """Validate declared skill paths, or the default skills/ directory."""
    report = Report()
    declared = get_field(entry, "skills", "array")

    if declared is None:
        skills_dir = plugin_root / DEFAULT_SKILLS_DIR
        if not skills_dir.exists():
            return report  # Optional component
        if not skills_dir.is_dir():
            report.error(f"{plugin_name}: {DEFAULT_SKILLS_DIR}/ exists but is not a directory")
            return report

        skill_dirs = sorted(d for d in skills_dir.iterdir() if d.is_dir())
        if not skill_dirs:
            report.error(
                f"{plugin_name}/{DEFAULT_SKILLS_DIR}/: Directory exists but contains no "
                "skill subdirectories"
            )
        for skill_dir in skill_dirs:
            _validate_skill_dir(
                skill_dir, f"{plugin_name}/{DEFAULT_SKILLS_DIR}/{skill_dir.name}", report
            )
        return report

    for relative in _as_path_list(declared):
        context = f"{plugin_name}/{relative.removeprefix('./')}"
        skill_path, error = resolve_plugin_path(plugin_root, relative, f"{plugin_name}/skills")
        if error:
            report.error(error)
            continue
        if skill_path is None or not skill_path.exists():
            report.warning(f"{plugin_name}: Declared skill path not found: {relative}")
            continue
        if not skill_path.is_dir():
            report.error(f"{context}: Skill path must be a directory containing {SKILL_FILE}")
            continue
        _validate_skill_dir(skill_path, context, report)

    return report


def _check_markdown_components(
    plugin_root: Path,
    declared: Any,
    default_dir: str,
    kind: str,
    plugin_name: str,
    validate: Callable[[Path, str], Report],
) -> Report:
    report = Report()

    targets: list[tuple[str, Path]] = []
    if declared is None:
        component_dir = plugin_root / default_dir
        if not component_dir.exists():
            return report  # Optional component
        if not component_dir.is_dir():
            report.error(f"{plugin_name}: {default_dir}/ exists but is not a directory")
            return report
        targets.append((default_dir, component_dir))
    else:
        for relative in _as_path_list(declared):
            if not relative.startswith("./"):
                report.warning(
                    f"{plugin_name}: Custom {kind} path should start with './': {relative}"
                )
            full_path, error = resolve_plugin_path(plugin_root, relative, f"{plugin_name}/{kind}s")
            if error:
                report.error(error)
            elif full_path is None or not full_path.exists():
                report.warning(f"{plugin_name}: Custom {kind} path not found: {relative}")
            else:
                targets.append((relative.removeprefix("./"), full_path))

    for label, target in targets:
        if target.is_file():
            report.extend(validate(target, f"{plugin_name}/{label}"))
            continue

        files = sorted(target.glob("*.md"))
        if not files:
            report.warning(f"{plugin_name}/{label}/: Directory exists but contains no .md files")
        for md_file in files:
            report.extend(validate(md_file, f"{plugin_name}/{label}/{md_file.name}"))

    return report


def check_agents(plugin_root: Path, entry: dict[str, Any], plugin_name: str) -> Report:
    return _check_markdown_components(
        plugin_root,
        entry.get("agents"),
        DEFAULT_AGENTS_DIR,
        "agent",
        plugin_name,
        validate_agent_doc,
    )


def check_commands(plugin_root: Path, entry: dict[str, Any], plugin_name: str) -> Report:
    return _check_markdown_components(
        plugin_root,
        entry.get("commands"),
        DEFAULT_COMMANDS_DIR,
        "command",
        plugin_name,
        validate_command_doc,
    )


def validate_paths(
    plugin_root: Path, entry: dict[str, Any], plugin_name: str | None = None
) -> Report:
    """Validate every capability document a plugin declares.

    Args:
        plugin_root: Materialized plugin directory
        entry: Manifest data (plugin.json, or the marketplace entry when the
            plugin has no manifest)
        plugin_name: Name used in messages, defaults to the directory name

    Returns:
        Report covering skills, agents and commands
    """
    plugin_name = plugin_name or plugin_root.name
    report = Report()
    report.extend(check_skills(plugin_root, entry, plugin_name))
    report.extend(check_agents(plugin_root, entry, plugin_name))
    report.extend(check_commands(plugin_root, entry, plugin_name))
    return report


def check_component_placement(plugin_root: Path, plugin_name: str) -> Report:
    """Check that components are at root, not in .claude-plugin/."""
    report = Report()
    meta_dir = plugin_root / PLUGIN_META_DIR

    for component in ("commands", "agents", "skills", "hooks"):
        if (meta_dir / component).exists():
            report.error(
                f"{plugin_name}: {component}/ directory found in {PLUGIN_META_DIR}/ "
                "but must be at plugin root"
            )

    return report


def _load_config(
    plugin_root: Path, inline: Any, default_file: str, context: str, report: Report
) -> dict[str, Any] | None:
    if isinstance(inline, dict):
        return inline

    relative = inline if isinstance(inline, str) else default_file
    if not isinstance(inline, str) and not (plugin_root / default_file).exists():
        return None  # Optional component

    config_path, error = resolve_plugin_path(plugin_root, relative, context)
    if config_path is None:
        report.error(error or f"{context}: Invalid path: {relative}")
        return None
    try:
        return load_document(config_path)
    except ParseError as e:
        report.error(f"{context}: {relative}: {e.message}")
        return None


def _check_command_path(plugin_root: Path, cmd: str, context: str, report: Report) -> None:
    if PLUGIN_ROOT_VAR in cmd:
        # Handles wrapper commands such as bash -lc "${CLAUDE_PLUGIN_ROOT}/x.sh"
        match = re.search(r"\$\{CLAUDE_PLUGIN_ROOT\}/(\S+)", cmd)
        if not match:
            report.error(
                f"{context}: Command contains {PLUGIN_ROOT_VAR} but path could not be "
                f"extracted: {cmd}"
            )
            return
        script_path = match.group(1).strip("\"'")
        full_path, error = resolve_plugin_path(plugin_root, script_path, context)
        if error:
            report.error(error)
        elif full_path is not None and not full_path.exists():
            report.error(f"{context}: Command script not found: {script_path}")
    elif cmd.startswith("/"):
        report.error(f"{context}: Command uses absolute path instead of {PLUGIN_ROOT_VAR}: {cmd}")


def check_hooks(plugin_root: Path, entry: dict[str, Any], plugin_name: str) -> Report:
    """Validate hooks configuration (inline, path, or hooks/hooks.json)."""
    report = Report()
    context = f"{plugin_name}/hooks"
    config = _load_config(plugin_root, entry.get("hooks"), DEFAULT_HOOKS_FILE, context, report)
    if config is None:
        return report

    if "hooks" not in config:
        report.error(f"{plugin_name}: Hooks configuration missing 'hooks' key")
        return report
    hooks = config["hooks"]
    if not isinstance(hooks, dict):
        report.error(f"{plugin_name}: Hooks configuration 'hooks' must be an object")
        return report

    for event_type, matchers in hooks.items():
        if event_type not in VALID_HOOK_EVENTS:
            report.error(
                f"{plugin_name}: Invalid hook event '{event_type}' "
                f"(valid: {', '.join(sorted(VALID_HOOK_EVENTS))})"
            )
        if not isinstance(matchers, list):
            continue

        for matcher in matchers:
            if not isinstance(matcher, dict) or not isinstance(matcher.get("hooks"), list):
                continue
            for hook in matcher["hooks"]:
                if not isinstance(hook, dict):
                    continue
                if "type" in hook and hook["type"] not in VALID_HOOK_TYPES:
                    report.error(
                        f"{plugin_name}: Invalid hook type '{hook['type']}' "
                        f"(valid: {', '.join(sorted(VALID_HOOK_TYPES))})"
                    )
                if hook.get("type") == "command" and "command" in hook:
                    _check_command_path(plugin_root, str(hook["command"]), context, report)

    return report


def check_mcp_servers(plugin_root: Path, entry: dict[str, Any], plugin_name: str) -> Report:
    """Validate MCP server configuration (inline, path, or .mcp.json)."""
    report = Report()
    context = f"{plugin_name}/mcp"
    config = _load_config(plugin_root, entry.get("mcpServers"), DEFAULT_MCP_FILE, context, report)
    if config is None:
        return report

    servers = config.get("mcpServers", config)
    if not isinstance(servers, dict):
        report.error(f"{plugin_name}: MCP configuration missing 'mcpServers' mapping")
        return report

    for server_name, server_config in servers.items():
        if not isinstance(server_config, dict) or "command" not in server_config:
            report.error(f"{plugin_name}: MCP server '{server_name}' missing 'command' field")
            continue
        command = str(server_config["command"])
        if command.startswith("/"):
            report.error(
                f"{plugin_name}: MCP server '{server_name}' uses absolute path instead of "
                f"{PLUGIN_ROOT_VAR}"
            )

    return report
